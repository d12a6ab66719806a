"""Mounts command sub-automata into a module dispatch automaton."""

from __future__ import annotations

import os
import tempfile
import threading
import warnings
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from ..errors import CompositionWarning, GraphLoadError
from ..graph.model import START_STATE
from ..logging import get_logger

_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


@dataclass(frozen=True)
class Transition:
    """One generated dispatch edge from the start state to a command."""

    target: int
    label: str
    source: str = START_STATE

    def to_dot(self, indent: str = "    ") -> str:
        escaped = self.label.replace("\\", "\\\\").replace('"', '\\"')
        return f'{indent}{self.source} -> {self.target} [label="{escaped}"];'


@dataclass(frozen=True)
class MarkedDocument:
    """Automaton text split around its generated region.

    ``head`` ends with the begin marker line and ``tail`` starts with the end
    marker line; ``region`` is everything strictly between them. Lines are
    joined back with the line ending the text was split on.
    """

    head: Tuple[str, ...]
    region: Tuple[str, ...]
    tail: Tuple[str, ...]
    newline: str = "\n"

    def with_region(self, lines: Sequence[str]) -> "MarkedDocument":
        return replace(self, region=tuple(lines))

    def render(self) -> str:
        return self.newline.join(self.head + self.region + self.tail)


@dataclass(frozen=True)
class CompositionResult:
    """Outcome of composing one module automaton."""

    text: str
    changed: bool
    transitions: Tuple[Transition, ...] = ()
    warning: Optional[CompositionWarning] = None

    @property
    def applied(self) -> bool:
        return self.warning is None


class ModuleGraphComposer:
    """Regenerates the marker region of a module automaton."""

    BEGIN_MARKER = "// START GENERATED"
    END_MARKER = "// END GENERATED"

    def __init__(
        self,
        *,
        begin_marker: str | None = None,
        end_marker: str | None = None,
        indent: str = "    ",
    ) -> None:
        self.begin_marker = begin_marker or self.BEGIN_MARKER
        self.end_marker = end_marker or self.END_MARKER
        self.indent = indent
        self.logger = get_logger("compose")

    def split(self, text: str) -> Optional[MarkedDocument]:
        """Return the document split at its markers, or None when unusable."""
        newline = "\r\n" if "\r\n" in text else "\n"
        lines = text.split(newline)
        begin = self._find(lines, self.begin_marker)
        end = self._find(lines, self.end_marker)
        if begin is None or end is None or begin > end:
            return None
        return MarkedDocument(
            head=tuple(lines[: begin + 1]),
            region=tuple(lines[begin + 1 : end]),
            tail=tuple(lines[end:]),
            newline=newline,
        )

    @staticmethod
    def transitions(command_names: Sequence[str]) -> Tuple[Transition, ...]:
        return tuple(
            Transition(target=index, label=f"({name})")
            for index, name in enumerate(command_names, start=1)
        )

    def compose(
        self,
        text: str,
        command_names: Sequence[str],
        *,
        module: str | None = None,
    ) -> CompositionResult:
        """Rewrite the region between the markers; pure, no file access."""
        document = self.split(text)
        if document is None:
            warning = CompositionWarning(
                f"Could not mount module documentation: markers "
                f"'{self.begin_marker}' / '{self.end_marker}' are missing or out of order",
                module=module,
            )
            self.logger.warning("%s", warning)
            warnings.warn(warning, stacklevel=2)
            return CompositionResult(text=text, changed=False, warning=warning)

        transitions = self.transitions(command_names)
        composed = document.with_region([item.to_dot(self.indent) for item in transitions]).render()
        return CompositionResult(
            text=composed,
            changed=composed != text,
            transitions=transitions,
        )

    def compose_file(
        self,
        path: Path,
        command_names: Sequence[str],
        *,
        module: str | None = None,
        dry_run: bool = False,
    ) -> CompositionResult:
        """Compose a module automaton on disk under a per-file lock."""
        with _lock_for(path):
            try:
                original = _read_text(path)
            except FileNotFoundError as exc:
                raise GraphLoadError(
                    "Module automaton not found", source=str(path), module=module
                ) from exc
            except (OSError, UnicodeDecodeError) as exc:
                raise GraphLoadError(
                    f"Module automaton is unreadable: {exc}", source=str(path), module=module
                ) from exc

            result = self.compose(original, command_names, module=module)
            if result.changed and not dry_run:
                _replace_text(path, result.text)
                self.logger.info(
                    "Mounted %d command(s) into %s", len(result.transitions), path.name
                )
            elif result.applied and not result.changed:
                self.logger.debug("%s already up to date", path.name)
            return result

    @staticmethod
    def _find(lines: Sequence[str], marker: str) -> Optional[int]:
        for index, line in enumerate(lines):
            if line.strip().startswith(marker):
                return index
        return None


def _read_text(path: Path) -> str:
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()


def _replace_text(path: Path, content: str) -> None:
    """Write via a sibling temp file so readers never see a partial automaton."""
    handle = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", newline="", dir=path.parent, prefix=f".{path.name}.", delete=False
    )
    try:
        with handle:
            handle.write(content)
        os.replace(handle.name, path)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise


__all__ = [
    "CompositionResult",
    "MarkedDocument",
    "ModuleGraphComposer",
    "Transition",
]
