"""Documentation generator for voice command automata."""

from .errors import (
    CompositionWarning,
    GraphLoadError,
    RenderError,
    SpokenDocsError,
    TemplateCycleError,
    UnresolvedPlaceholderError,
)
from .orchestrator import BuildOrchestrator

__version__ = "1.0.0"

__all__ = [
    "BuildOrchestrator",
    "CompositionWarning",
    "GraphLoadError",
    "RenderError",
    "SpokenDocsError",
    "TemplateCycleError",
    "UnresolvedPlaceholderError",
    "__version__",
]
