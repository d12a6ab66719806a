"""Example phrase synthesis by bounded automaton traversal."""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import islice
from typing import Dict, Iterator, List, Tuple

from ..graph.model import Edge, GraphModel
from .templates import TemplateResolver, placeholders_in

DEFAULT_LIMIT = 16
DEFAULT_MAX_DEPTH = 24
DEFAULT_MAX_STEPS = 20_000

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class EnumerationLimits:
    """Bounds that keep traversal finite on cyclic automata.

    ``max_depth`` caps the number of edges on a single path and
    ``max_steps`` caps the number of partial paths expanded overall.
    """

    limit: int = DEFAULT_LIMIT
    max_depth: int = DEFAULT_MAX_DEPTH
    max_steps: int = DEFAULT_MAX_STEPS

    def __post_init__(self) -> None:
        if self.limit < 0 or self.max_depth < 0 or self.max_steps < 0:
            raise ValueError("Enumeration limits must be non-negative")


def normalise_phrase(parts: Tuple[str, ...]) -> str:
    joined = " ".join(part.strip() for part in parts if part.strip())
    return _WHITESPACE.sub(" ", joined).strip()


class PhraseEnumerator:
    """Walks an automaton shortest path first and yields accepted example phrases."""

    def __init__(
        self,
        templates: TemplateResolver | None = None,
        limits: EnumerationLimits | None = None,
    ) -> None:
        self.templates = templates or TemplateResolver()
        self.limits = limits or EnumerationLimits()

    def enumerate(self, graph: GraphModel) -> Tuple[str, ...]:
        """Return up to ``limits.limit`` distinct phrases in discovery order."""
        if not graph.accepting or not graph.edges or self.limits.limit == 0:
            return ()
        self._check_placeholders(graph)

        phrases: List[str] = []
        seen: set[str] = set()
        for phrase in self._walk(graph):
            if phrase in seen:
                continue
            seen.add(phrase)
            phrases.append(phrase)
            if len(phrases) >= self.limits.limit:
                break
        return tuple(phrases)

    def _check_placeholders(self, graph: GraphModel) -> None:
        """Every placeholder on every edge must resolve, reached or not."""
        for edge in graph.edges:
            for name in placeholders_in(edge.label):
                self.templates.check(name, automaton=graph.source, edge=edge.describe())

    def _walk(self, graph: GraphModel) -> Iterator[str]:
        """Yield phrases shortest path first.

        Iterative deepening: round ``n`` explores paths of at most ``n`` edges
        in declaration order and yields the ones ending exactly at depth ``n``
        in an accepting state, so a loop declared before an exit edge cannot
        crowd out the short phrases.
        """
        expansions: Dict[Edge, Tuple[str, ...]] = {}
        steps = 0
        for bound in range(1, self.limits.max_depth + 1):
            deeper = False
            stack: List[Tuple[str, Tuple[str, ...], int]] = [(graph.start, (), 0)]
            while stack:
                state, parts, depth = stack.pop()
                steps += 1
                if steps > self.limits.max_steps:
                    return
                if depth == bound:
                    if graph.is_accepting(state):
                        phrase = normalise_phrase(parts)
                        if phrase:
                            yield phrase
                    deeper = deeper or bool(graph.edges_from(state))
                    continue
                pending: List[Tuple[str, Tuple[str, ...], int]] = []
                for edge in graph.edges_from(state):
                    for text in self._expansions(graph, edge, expansions):
                        pending.append((edge.target, parts + (text,), depth + 1))
                stack.extend(reversed(pending))
            if not deeper:
                return

    def _expansions(
        self, graph: GraphModel, edge: Edge, cache: Dict[Edge, Tuple[str, ...]]
    ) -> Tuple[str, ...]:
        cached = cache.get(edge)
        if cached is None:
            expanded = self.templates.expand(
                edge.label, automaton=graph.source, edge=edge.describe()
            )
            cached = tuple(islice(expanded, self.limits.max_steps))
            cache[edge] = cached
        return cached


__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_STEPS",
    "EnumerationLimits",
    "PhraseEnumerator",
    "normalise_phrase",
]
