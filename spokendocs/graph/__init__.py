"""Automaton model and DOT loading."""

from .dot import load_graph, parse_dot
from .model import START_STATE, Edge, GraphModel

__all__ = ["Edge", "GraphModel", "START_STATE", "load_graph", "parse_dot"]
