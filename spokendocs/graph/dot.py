"""Parser for the Graphviz DOT subset used by command automata."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import GraphLoadError
from .model import START_STATE, Edge, GraphModel

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<string>"(?:[^"\\]|\\.)*")
    | (?P<html><)
    | (?P<arrow>->|--)
    | (?P<number>-?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?))
    | (?P<ident>[A-Za-z_\u0080-\uffff][A-Za-z0-9_\u0080-\uffff]*)
    | (?P<punct>[{}\[\]=;,:+])
    """,
    re.VERBOSE | re.DOTALL,
)

_KEYWORDS = {"strict", "graph", "digraph", "node", "edge", "subgraph"}
_TRUTHY = {"true", "yes", "1"}
_ACCEPTING_SHAPES = {"doublecircle", "doubleoctagon"}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    line: int


def tokenize(text: str, *, source: str | None = None) -> List[Token]:
    """Split DOT text into tokens, dropping whitespace and comments."""
    tokens: List[Token] = []
    position = 0
    line = 1
    at_line_start = True
    length = len(text)
    while position < length:
        # `#` lines are C preprocessor output and ignored by Graphviz.
        if at_line_start and text[position] == "#":
            end = text.find("\n", position)
            position = length if end == -1 else end
            continue
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise GraphLoadError(
                f"Unexpected character {text[position]!r} on line {line}", source=source
            )
        kind = match.lastgroup or ""
        value = match.group()
        if kind == "html":
            raise GraphLoadError(f"HTML labels are not supported (line {line})", source=source)
        if kind == "string":
            tokens.append(Token("id", _unquote(value), line))
        elif kind in {"number", "ident"}:
            if kind == "ident" and value.lower() in _KEYWORDS:
                tokens.append(Token("keyword", value.lower(), line))
            else:
                tokens.append(Token("id", value, line))
        elif kind in {"arrow", "punct"}:
            tokens.append(Token(value, value, line))
        line += value.count("\n")
        if kind == "ws":
            at_line_start = at_line_start or "\n" in value
        else:
            at_line_start = False
        position = match.end()
    return tokens


def _unquote(value: str) -> str:
    inner = value[1:-1]
    inner = inner.replace("\\\r\n", "").replace("\\\n", "")
    return inner.replace('\\"', '"')


class _Parser:
    """Recursive-descent parser producing a flattened GraphModel."""

    def __init__(self, tokens: List[Token], source: str | None) -> None:
        self._tokens = tokens
        self._index = 0
        self._source = source
        self.directed = True
        self.attributes: Dict[str, str] = {}
        self.node_order: List[str] = []
        self.node_attrs: Dict[str, Dict[str, str]] = {}
        self.edges: List[Edge] = []

    # ------------------------------------------------------------------
    # Token helpers

    def _peek(self, offset: int = 0) -> Optional[Token]:
        index = self._index + offset
        if index < len(self._tokens):
            return self._tokens[index]
        return None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise self._error("Unexpected end of input")
        self._index += 1
        return token

    def _accept(self, kind: str, value: str | None = None) -> Optional[Token]:
        token = self._peek()
        if token is None or token.kind != kind:
            return None
        if value is not None and token.value != value:
            return None
        self._index += 1
        return token

    def _expect(self, kind: str, value: str | None = None) -> Token:
        token = self._accept(kind, value)
        if token is None:
            found = self._peek()
            wanted = value or kind
            if found is None:
                raise self._error(f"Expected '{wanted}' but reached end of input")
            raise self._error(f"Expected '{wanted}' but found '{found.value}' on line {found.line}")
        return token

    def _error(self, message: str) -> GraphLoadError:
        return GraphLoadError(message, source=self._source)

    # ------------------------------------------------------------------
    # Grammar

    def parse(self) -> None:
        self._accept("keyword", "strict")
        header = self._next()
        if header.kind != "keyword" or header.value not in {"graph", "digraph"}:
            raise self._error(f"Expected 'digraph' or 'graph' on line {header.line}")
        self.directed = header.value == "digraph"
        self._accept("id")
        self._expect("{")
        self._statements(node_defaults={}, edge_defaults={}, top_level=True)
        self._expect("}")
        trailing = self._peek()
        if trailing is not None:
            raise self._error(f"Unexpected content after graph body on line {trailing.line}")

    def _statements(
        self,
        *,
        node_defaults: Dict[str, str],
        edge_defaults: Dict[str, str],
        top_level: bool,
    ) -> None:
        while True:
            token = self._peek()
            if token is None or token.kind == "}":
                return
            if token.kind == ";":
                self._index += 1
                continue
            self._statement(node_defaults, edge_defaults, top_level)

    def _statement(
        self,
        node_defaults: Dict[str, str],
        edge_defaults: Dict[str, str],
        top_level: bool,
    ) -> None:
        token = self._next()
        if token.kind == "keyword" and token.value in {"graph", "node", "edge"}:
            attrs = self._attr_lists()
            if token.value == "graph":
                if top_level:
                    self.attributes.update(attrs)
            elif token.value == "node":
                node_defaults.update(attrs)
            else:
                edge_defaults.update(attrs)
            return
        if (token.kind == "keyword" and token.value == "subgraph") or token.kind == "{":
            if token.kind == "keyword":
                self._accept("id")
                self._expect("{")
            self._statements(
                node_defaults=dict(node_defaults),
                edge_defaults=dict(edge_defaults),
                top_level=False,
            )
            self._expect("}")
            following = self._peek()
            if following is not None and following.kind in {"->", "--"}:
                raise self._error("Subgraphs as edge operands are not supported")
            return
        if token.kind != "id":
            raise self._error(f"Unexpected '{token.value}' on line {token.line}")

        if self._accept("="):
            value = self._expect("id")
            if top_level:
                self.attributes[token.value] = value.value
            return

        chain = [token.value]
        self._skip_port()
        while True:
            arrow = self._accept("->")
            if arrow is None:
                arrow = self._accept("--")
            if arrow is None:
                break
            target = self._next()
            if target.kind != "id":
                raise self._error(f"Expected a state id after '{arrow.value}' on line {arrow.line}")
            chain.append(target.value)
            self._skip_port()
        attrs = self._attr_lists()

        if len(chain) == 1:
            self._declare_node(chain[0], node_defaults, attrs)
            return

        edge_attrs = dict(edge_defaults)
        edge_attrs.update(attrs)
        label = edge_attrs.get("label", "")
        for source, target in zip(chain, chain[1:]):
            self._declare_node(source, node_defaults, {})
            self._declare_node(target, node_defaults, {})
            self.edges.append(Edge(source=source, target=target, label=label))
            if not self.directed:
                self.edges.append(Edge(source=target, target=source, label=label))

    def _skip_port(self) -> None:
        while self._accept(":"):
            self._expect("id")

    def _attr_lists(self) -> Dict[str, str]:
        attrs: Dict[str, str] = {}
        while self._accept("["):
            while not self._accept("]"):
                key = self._expect("id")
                if self._accept("="):
                    attrs[key.value] = self._concat_value()
                else:
                    attrs[key.value] = "true"
                if not self._accept(","):
                    self._accept(";")
        return attrs

    def _concat_value(self) -> str:
        value = self._expect("id").value
        while self._accept("+"):
            value += self._expect("id").value
        return value

    def _declare_node(
        self, node: str, defaults: Dict[str, str], attrs: Dict[str, str]
    ) -> None:
        if node not in self.node_attrs:
            self.node_order.append(node)
            self.node_attrs[node] = dict(defaults)
        self.node_attrs[node].update(attrs)


def _is_accepting(attrs: Dict[str, str]) -> bool:
    if attrs.get("shape", "").lower() in _ACCEPTING_SHAPES:
        return True
    for key in ("accept", "final"):
        if attrs.get(key, "").lower() in _TRUTHY:
            return True
    return False


def parse_dot(text: str, *, source: str | None = None, strict: bool = True) -> GraphModel:
    """Parse DOT text into a GraphModel.

    With ``strict`` (the default, used for automaton files) the graph must
    contain the start state ``0`` and at least one accepting state.
    """
    parser = _Parser(tokenize(text, source=source), source)
    parser.parse()

    accepting = frozenset(
        node for node in parser.node_order if _is_accepting(parser.node_attrs[node])
    )
    if strict:
        if START_STATE not in parser.node_attrs:
            raise GraphLoadError("Automaton has no start state '0'", source=source)
        if not accepting:
            raise GraphLoadError(
                "Automaton has no accepting state (mark one with shape=doublecircle)",
                source=source,
            )

    return GraphModel(
        states=tuple(parser.node_order),
        edges=tuple(parser.edges),
        accepting=accepting,
        attributes=dict(parser.attributes),
        source=source,
    )


def load_graph(path: Path, *, strict: bool = True) -> GraphModel:
    """Read and parse an automaton file."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise GraphLoadError("Automaton file not found", source=str(path)) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise GraphLoadError(f"Automaton file is unreadable: {exc}", source=str(path)) from exc
    return parse_dot(text, source=str(path), strict=strict)


__all__ = ["Token", "load_graph", "parse_dot", "tokenize"]
