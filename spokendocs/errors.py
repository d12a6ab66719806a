"""Exception taxonomy for documentation builds.

Every error raised for a single unit of work (an automaton, a command or a
module) carries enough context to be reported without re-deriving state:
the module, the command and the language it was raised for. The orchestrator
fills in whatever the raising component could not know via `with_context`.
"""

from __future__ import annotations

from typing import Optional, Sequence


class SpokenDocsError(RuntimeError):
    """Base class for spokendocs failures."""

    def __init__(
        self,
        message: str,
        *,
        module: Optional[str] = None,
        command: Optional[str] = None,
        lang: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.module = module
        self.command = command
        self.lang = lang

    def with_context(
        self,
        *,
        module: Optional[str] = None,
        command: Optional[str] = None,
        lang: Optional[str] = None,
    ) -> "SpokenDocsError":
        """Fill in missing context fields and return self for re-raising."""
        if self.module is None:
            self.module = module
        if self.command is None:
            self.command = command
        if self.lang is None:
            self.lang = lang
        return self

    @property
    def context(self) -> str:
        parts = []
        if self.module:
            parts.append(f"module={self.module}")
        if self.command:
            parts.append(f"command={self.command}")
        if self.lang:
            parts.append(f"lang={self.lang}")
        return ", ".join(parts)

    def __str__(self) -> str:
        context = self.context
        if context:
            return f"{self.message} ({context})"
        return self.message


class ConfigError(SpokenDocsError):
    """Raised when .spokendocs.yml cannot be parsed or has invalid values."""


class DiscoveryError(SpokenDocsError):
    """Raised when a command directory lacks its automata or source file."""


class GraphLoadError(SpokenDocsError):
    """Raised when an automaton file is missing, unreadable or structurally invalid."""

    def __init__(self, message: str, *, source: Optional[str] = None, **context: Optional[str]) -> None:
        super().__init__(message, **context)
        self.source = source

    def __str__(self) -> str:
        base = super().__str__()
        if self.source:
            return f"{self.source}: {base}"
        return base


class TemplateError(SpokenDocsError):
    """Base class for placeholder resolution failures."""


class UnresolvedPlaceholderError(TemplateError):
    """Raised when a label references a placeholder missing from the dictionary."""

    def __init__(
        self,
        placeholder: str,
        *,
        automaton: Optional[str] = None,
        edge: Optional[str] = None,
        **context: Optional[str],
    ) -> None:
        message = f"Unknown placeholder '{{{placeholder}}}'"
        if edge:
            message += f" on edge {edge}"
        if automaton:
            message += f" in {automaton}"
        super().__init__(message, **context)
        self.placeholder = placeholder
        self.automaton = automaton
        self.edge = edge


class TemplateCycleError(TemplateError):
    """Raised when template references form a cycle (A -> B -> A)."""

    def __init__(self, chain: Sequence[str], **context: Optional[str]) -> None:
        rendered = " -> ".join(chain)
        super().__init__(f"Template reference cycle: {rendered}", **context)
        self.chain = tuple(chain)
        self.placeholder = chain[0] if chain else None


class RenderError(SpokenDocsError):
    """Raised when the external graph renderer fails or times out."""

    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"
    FAILED = "failed"

    def __init__(
        self,
        message: str,
        *,
        kind: str = FAILED,
        source: Optional[str] = None,
        **context: Optional[str],
    ) -> None:
        super().__init__(message, **context)
        self.kind = kind
        self.source = source


class CompositionWarning(UserWarning):
    """Emitted when a module automaton lacks a usable marker region."""

    def __init__(self, message: str, *, module: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.module = module

    def __str__(self) -> str:
        if self.module:
            return f"{self.message} (module={self.module})"
        return self.message


__all__ = [
    "CompositionWarning",
    "ConfigError",
    "DiscoveryError",
    "GraphLoadError",
    "RenderError",
    "SpokenDocsError",
    "TemplateCycleError",
    "TemplateError",
    "UnresolvedPlaceholderError",
]
