"""In-memory automaton representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

START_STATE = "0"


@dataclass(frozen=True)
class Edge:
    """A labeled transition between two states."""

    source: str
    target: str
    label: str = ""

    def describe(self) -> str:
        return f'{self.source} -> {self.target} [label="{self.label}"]'


@dataclass(frozen=True)
class GraphModel:
    """Parsed automaton: states, ordered edges and graph-level attributes.

    Edges keep their declaration order, which is the traversal order used by
    phrase enumeration.
    """

    states: Tuple[str, ...]
    edges: Tuple[Edge, ...]
    accepting: FrozenSet[str]
    attributes: Mapping[str, str] = field(default_factory=dict)
    start: str = START_STATE
    source: Optional[str] = None
    _outgoing: Dict[str, Tuple[Edge, ...]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        grouped: Dict[str, List[Edge]] = {}
        for edge in self.edges:
            grouped.setdefault(edge.source, []).append(edge)
        self._outgoing.update({state: tuple(items) for state, items in grouped.items()})

    def edges_from(self, state: str) -> Tuple[Edge, ...]:
        return self._outgoing.get(state, ())

    def is_accepting(self, state: str) -> bool:
        return state in self.accepting

    @property
    def lang(self) -> Optional[str]:
        return self.attributes.get("lang")

    @property
    def title(self) -> Optional[str]:
        return self.attributes.get("title") or self.attributes.get("label")

    @property
    def desc(self) -> Optional[str]:
        return self.attributes.get("desc")

    @property
    def lang_name(self) -> Optional[str]:
        return self.attributes.get("langName")


__all__ = ["Edge", "GraphModel", "START_STATE"]
