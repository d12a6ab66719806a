"""Phrase synthesis: placeholder templates and automaton traversal."""

from .enumerator import EnumerationLimits, PhraseEnumerator
from .templates import TemplateResolver, load_template_file

__all__ = ["EnumerationLimits", "PhraseEnumerator", "TemplateResolver", "load_template_file"]
