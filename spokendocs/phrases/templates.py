"""Placeholder templates shared by every automaton in a build."""

from __future__ import annotations

import json
import re
from itertools import islice, product
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

import yaml

from ..errors import ConfigError, TemplateCycleError, UnresolvedPlaceholderError

DEFAULT_MAX_CANDIDATES = 20_000

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_.\-]*)\}")

TemplateValue = Union[str, Sequence[str]]


def split_label(text: str) -> List[Tuple[str, Optional[str]]]:
    """Split text into ``(literal, None)`` and ``("", placeholder)`` segments."""
    segments: List[Tuple[str, Optional[str]]] = []
    position = 0
    for match in PLACEHOLDER_PATTERN.finditer(text):
        if match.start() > position:
            segments.append((text[position : match.start()], None))
        segments.append(("", match.group(1)))
        position = match.end()
    if position < len(text):
        segments.append((text[position:], None))
    return segments


def placeholders_in(text: str) -> List[str]:
    return [match.group(1) for match in PLACEHOLDER_PATTERN.finditer(text)]


class TemplateResolver:
    """Resolves placeholder names to ordered literal candidates.

    Candidates may themselves contain placeholders; they are expanded
    depth-first, first candidate first. Each placeholder keeps at most
    ``max_candidates`` literals, so a dictionary such as
    ``{"pin": "{d}{d}{d}{d}{d}{d}"}`` never materialises every combination.
    Validation walks the reference graph without expanding it.
    """

    def __init__(
        self,
        templates: Mapping[str, TemplateValue] | None = None,
        *,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
    ) -> None:
        if max_candidates < 1:
            raise ValueError("max_candidates must be at least 1")
        self._templates: Dict[str, Tuple[str, ...]] = {}
        for name, value in (templates or {}).items():
            self._templates[name] = _as_candidates(name, value)
        self.max_candidates = max_candidates
        self._checked: Set[str] = set()
        self._cache: Dict[str, Tuple[str, ...]] = {}

    @classmethod
    def from_files(cls, paths: Iterable[Path], **kwargs: Any) -> "TemplateResolver":
        """Merge dictionaries in order; later files override earlier keys."""
        merged: Dict[str, TemplateValue] = {}
        for path in paths:
            merged.update(load_template_file(path))
        return cls(merged, **kwargs)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._templates)

    def check(
        self,
        name: str,
        *,
        automaton: str | None = None,
        edge: str | None = None,
    ) -> None:
        """Raise if `name` or anything it references is unknown or cyclic."""
        self._check(name, (), automaton, edge)

    def resolve(
        self,
        name: str,
        *,
        automaton: str | None = None,
        edge: str | None = None,
    ) -> Tuple[str, ...]:
        """Return the ordered, deduplicated literals for a placeholder."""
        self._check(name, (), automaton, edge)
        return self._literals(name)

    def expand(
        self,
        text: str,
        *,
        automaton: str | None = None,
        edge: str | None = None,
    ) -> Iterator[str]:
        """Yield literal renditions of `text`, first candidate first.

        Placeholders are checked before the first value is yielded, so an
        unknown or cyclic placeholder fails on the first ``next()``.
        """
        for name in placeholders_in(text):
            self._check(name, (), automaton, edge)
        return self._render(text)

    # ------------------------------------------------------------------
    # Internal helpers

    def _check(
        self,
        name: str,
        stack: Tuple[str, ...],
        automaton: str | None,
        edge: str | None,
    ) -> None:
        if name in self._checked:
            return
        if name in stack:
            chain = stack[stack.index(name) :] + (name,)
            raise TemplateCycleError(chain)
        candidates = self._templates.get(name)
        if candidates is None:
            raise UnresolvedPlaceholderError(name, automaton=automaton, edge=edge)
        for candidate in candidates:
            for reference in placeholders_in(candidate):
                self._check(reference, stack + (name,), automaton, edge)
        self._checked.add(name)

    def _literals(self, name: str) -> Tuple[str, ...]:
        cached = self._cache.get(name)
        if cached is None:
            cached = tuple(islice(self._unique(name), self.max_candidates))
            self._cache[name] = cached
        return cached

    def _unique(self, name: str) -> Iterator[str]:
        seen: Set[str] = set()
        for candidate in self._templates[name]:
            for literal in self._render(candidate):
                if literal not in seen:
                    seen.add(literal)
                    yield literal

    def _render(self, text: str) -> Iterator[str]:
        options: List[Tuple[str, ...]] = []
        for literal, placeholder in split_label(text):
            if placeholder is None:
                options.append((literal,))
            else:
                options.append(self._literals(placeholder))
        for combination in product(*options):
            yield "".join(combination)


def load_template_file(path: Path) -> Dict[str, TemplateValue]:
    """Load a JSON or YAML template dictionary, flattening nested mappings."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read template dictionary {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text) if text.strip() else {}
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse template dictionary {path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Template dictionary {path.name} must contain a mapping at the root")
    return flatten_templates(data, source=path.name)


def flatten_templates(
    data: Mapping[str, Any], *, prefix: str = "", source: str = "templates"
) -> Dict[str, TemplateValue]:
    """Flatten ``{"a": {"b": [...]}}`` into ``{"a.b": [...]}``."""
    flat: Dict[str, TemplateValue] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten_templates(value, prefix=f"{name}.", source=source))
        elif isinstance(value, (str, int, float)) and not isinstance(value, bool):
            flat[name] = str(value)
        elif isinstance(value, list) and all(
            isinstance(item, (str, int, float)) and not isinstance(item, bool) for item in value
        ):
            flat[name] = [str(item) for item in value]
        else:
            raise ConfigError(
                f"Template '{name}' in {source} must be a string or a list of strings"
            )
    return flat


def _as_candidates(name: str, value: TemplateValue) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigError(f"Template '{name}' must be a string or a list of strings")


__all__ = [
    "DEFAULT_MAX_CANDIDATES",
    "PLACEHOLDER_PATTERN",
    "TemplateResolver",
    "flatten_templates",
    "load_template_file",
    "placeholders_in",
    "split_label",
]
