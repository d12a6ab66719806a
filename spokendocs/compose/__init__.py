"""Module automaton composition."""

from .composer import CompositionResult, MarkedDocument, ModuleGraphComposer, Transition

__all__ = ["CompositionResult", "MarkedDocument", "ModuleGraphComposer", "Transition"]
