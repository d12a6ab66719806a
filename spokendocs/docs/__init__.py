"""README assembly: templates, localisation and Markdown hygiene."""

from .assembler import DocumentAssembler
from .i18n import Localization, LocalizationProvider
from .links import LinkValidator
from .lint import MarkdownLinter

__all__ = [
    "DocumentAssembler",
    "LinkValidator",
    "Localization",
    "LocalizationProvider",
    "MarkdownLinter",
]
