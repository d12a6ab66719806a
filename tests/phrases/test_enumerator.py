"""Tests for phrase enumeration over automata."""

from __future__ import annotations

import pytest

from spokendocs.errors import TemplateCycleError, UnresolvedPlaceholderError
from spokendocs.graph import Edge, GraphModel, parse_dot
from spokendocs.phrases import EnumerationLimits, PhraseEnumerator, TemplateResolver
from spokendocs.phrases.templates import DEFAULT_MAX_CANDIDATES
from tests._fixtures.modules_builder import command_dot


def _graph(edges: list[tuple[str, str, str]], accepting: set[str]) -> GraphModel:
    states: list[str] = ["0"]
    for source, target, _ in edges:
        for state in (source, target):
            if state not in states:
                states.append(state)
    return GraphModel(
        states=tuple(states),
        edges=tuple(Edge(source, target, label) for source, target, label in edges),
        accepting=frozenset(accepting),
    )


def test_enumerate_expands_placeholders() -> None:
    graph = parse_dot(command_dot(edges=(("0", "1", "open {file_type}"),)))
    enumerator = PhraseEnumerator(TemplateResolver({"file_type": ["file", "folder"]}))
    assert enumerator.enumerate(graph) == ("open file", "open folder")


def test_enumerate_concatenates_labels_along_paths() -> None:
    graph = _graph(
        [
            ("0", "1", "open"),
            ("0", "2", "start"),
            ("1", "2", "the {thing}"),
        ],
        {"2"},
    )
    enumerator = PhraseEnumerator(TemplateResolver({"thing": ["file", "editor"]}))
    assert enumerator.enumerate(graph) == ("start", "open the file", "open the editor")


def test_enumerate_skips_empty_labels_and_collapses_whitespace() -> None:
    graph = _graph([("0", "1", ""), ("1", "2", "  new   file ")], {"2"})
    assert PhraseEnumerator().enumerate(graph) == ("new file",)


def test_enumerate_continues_through_accepting_states() -> None:
    graph = _graph([("0", "1", "go"), ("1", "2", "now")], {"1", "2"})
    assert PhraseEnumerator().enumerate(graph) == ("go", "go now")


def test_enumerate_returns_empty_without_accepting_states() -> None:
    graph = _graph([("0", "1", "open")], set())
    assert PhraseEnumerator().enumerate(graph) == ()


def test_enumerate_returns_empty_without_edges() -> None:
    graph = GraphModel(states=("0", "1"), edges=(), accepting=frozenset({"1"}))
    assert PhraseEnumerator().enumerate(graph) == ()


def test_enumerate_terminates_on_cycles() -> None:
    graph = _graph([("0", "1", "a"), ("1", "0", "b")], {"1"})
    phrases = PhraseEnumerator().enumerate(graph)

    assert phrases[0] == "a"
    assert phrases[1] == "a b a"
    assert 0 < len(phrases) <= 16
    assert len(set(phrases)) == len(phrases)


def test_enumerate_respects_depth_bound() -> None:
    graph = _graph([("0", "1", "a"), ("1", "0", "b")], {"1"})
    phrases = PhraseEnumerator(limits=EnumerationLimits(max_depth=3)).enumerate(graph)
    assert phrases == ("a", "a b a")


def test_enumerate_caps_at_sixteen_phrases() -> None:
    graph = _graph([("0", "1", "press {n}")], {"1"})
    resolver = TemplateResolver({"n": [str(index) for index in range(40)]})
    phrases = PhraseEnumerator(resolver).enumerate(graph)

    assert len(phrases) == 16
    assert phrases[0] == "press 0"
    assert phrases[-1] == "press 15"


def test_enumerate_deduplicates_phrases() -> None:
    graph = _graph([("0", "1", "save"), ("0", "2", "save"), ("1", "3", ""), ("2", "3", "")], {"3"})
    assert PhraseEnumerator().enumerate(graph) == ("save",)


def test_enumerate_is_deterministic() -> None:
    graph = _graph(
        [("0", "1", "{verb}"), ("1", "2", "{object}"), ("2", "1", "and")],
        {"2"},
    )
    resolver = TemplateResolver({"verb": ["open", "close"], "object": ["file", "tab", "window"]})
    first = PhraseEnumerator(resolver).enumerate(graph)
    second = PhraseEnumerator(resolver).enumerate(graph)
    assert first == second
    assert first[:3] == ("open file", "open tab", "open window")
    assert first[6] == "open file and file"


def test_enumerate_stops_at_step_budget() -> None:
    graph = _graph([("0", "1", "a"), ("1", "2", "b")], {"2"})
    assert PhraseEnumerator(limits=EnumerationLimits(max_steps=2)).enumerate(graph) == ()


def test_enumerate_fails_on_unresolved_placeholder_even_if_unreachable() -> None:
    graph = _graph([("0", "1", "open"), ("5", "6", "{missing}")], {"1"})
    with pytest.raises(UnresolvedPlaceholderError) as excinfo:
        PhraseEnumerator().enumerate(graph)
    assert excinfo.value.placeholder == "missing"
    assert "5 -> 6" in str(excinfo.value)


def test_enumerate_fails_on_template_cycle() -> None:
    graph = _graph([("0", "1", "{A}")], {"1"})
    resolver = TemplateResolver({"A": ["{B}"], "B": ["{A}"]})
    with pytest.raises(TemplateCycleError):
        PhraseEnumerator(resolver).enumerate(graph)


def test_enumeration_limits_reject_negative_values() -> None:
    with pytest.raises(ValueError):
        EnumerationLimits(limit=-1)


def test_enumerate_prefers_short_paths_over_self_loops() -> None:
    graph = _graph([("0", "0", "please"), ("0", "1", "open")], {"1"})
    phrases = PhraseEnumerator().enumerate(graph)

    assert phrases[0] == "open"
    assert phrases[1] == "please open"
    assert phrases[2] == "please please open"


def test_enumerate_bounds_nested_template_expansion() -> None:
    graph = _graph([("0", "1", "dial {pin}")], {"1"})
    resolver = TemplateResolver(
        {"digit": [str(index) for index in range(10)], "pin": "{digit}" * 6}
    )
    phrases = PhraseEnumerator(resolver).enumerate(graph)

    assert len(phrases) == 16
    assert phrases[0] == "dial 000000"
    assert phrases[1] == "dial 000001"
    assert len(resolver.resolve("pin")) <= DEFAULT_MAX_CANDIDATES
