"""Tests for module automaton composition."""

from __future__ import annotations

from pathlib import Path

import pytest

from spokendocs.compose import ModuleGraphComposer
from spokendocs.errors import CompositionWarning, GraphLoadError
from spokendocs.graph import parse_dot
from tests._fixtures.modules_builder import module_dot


def test_compose_fills_region_with_dispatch_edges() -> None:
    composer = ModuleGraphComposer()
    result = composer.compose(module_dot(), ["create", "delete"], module="files")

    lines = result.text.split("\n")
    begin = lines.index("    // START GENERATED")
    assert lines[begin + 1] == '    0 -> 1 [label="(create)"];'
    assert lines[begin + 2] == '    0 -> 2 [label="(delete)"];'
    assert lines[begin + 3] == "    // END GENERATED"
    assert result.changed
    assert result.applied
    assert [item.target for item in result.transitions] == [1, 2]


def test_compose_replaces_previous_region() -> None:
    text = module_dot(region=['    0 -> 1 [label="(stale)"];', '    0 -> 2 [label="(old)"];'])
    result = ModuleGraphComposer().compose(text, ["open"])

    assert "(stale)" not in result.text
    assert "(old)" not in result.text
    assert '    0 -> 1 [label="(open)"];' in result.text


def test_compose_is_idempotent() -> None:
    composer = ModuleGraphComposer()
    first = composer.compose(module_dot(), ["create", "delete"])
    second = composer.compose(first.text, ["create", "delete"])

    assert second.text == first.text
    assert not second.changed


def test_compose_keeps_text_outside_markers() -> None:
    text = module_dot()
    result = ModuleGraphComposer().compose(text, ["create"])
    begin, end = "    // START GENERATED", "    // END GENERATED"

    assert result.text.split(begin)[0] == text.split(begin)[0]
    assert result.text.split(end)[1] == text.split(end)[1]


def test_compose_with_no_commands_empties_region() -> None:
    text = module_dot(region=['    0 -> 1 [label="(gone)"];'])
    result = ModuleGraphComposer().compose(text, [])

    assert "(gone)" not in result.text
    assert "    // START GENERATED\n    // END GENERATED" in result.text


def test_compose_escapes_quotes_in_labels() -> None:
    result = ModuleGraphComposer().compose(module_dot(), ['say "hi"'])
    assert '    0 -> 1 [label="(say \\"hi\\")"];' in result.text


def test_composed_text_parses_as_automaton() -> None:
    result = ModuleGraphComposer().compose(module_dot(), ["create", "delete"])
    graph = parse_dot(result.text, strict=False)

    assert graph.title == "Files"
    assert [(edge.source, edge.target, edge.label) for edge in graph.edges] == [
        ("0", "1", "(create)"),
        ("0", "2", "(delete)"),
    ]


def test_compose_without_markers_warns_and_keeps_text() -> None:
    text = module_dot(markers=False)
    with pytest.warns(CompositionWarning, match="Could not mount module documentation"):
        result = ModuleGraphComposer().compose(text, ["create"], module="files")

    assert result.text == text
    assert not result.changed
    assert not result.applied
    assert result.warning is not None
    assert result.warning.module == "files"


def test_compose_with_misordered_markers_warns() -> None:
    text = "digraph {\n    // END GENERATED\n    // START GENERATED\n}\n"
    with pytest.warns(CompositionWarning):
        result = ModuleGraphComposer().compose(text, ["create"])
    assert result.text == text


def test_compose_honours_custom_markers() -> None:
    text = "digraph {\n    # begin\n    # end\n}\n"
    composer = ModuleGraphComposer(begin_marker="# begin", end_marker="# end")
    result = composer.compose(text, ["open"])
    assert result.text == 'digraph {\n    # begin\n    0 -> 1 [label="(open)"];\n    # end\n}\n'


def test_compose_file_writes_once_and_is_stable(tmp_path: Path) -> None:
    path = tmp_path / "files.dot"
    path.write_text(module_dot(), encoding="utf-8")
    composer = ModuleGraphComposer()

    first = composer.compose_file(path, ["create", "delete"], module="files")
    written = path.read_text(encoding="utf-8")
    second = composer.compose_file(path, ["create", "delete"], module="files")

    assert first.changed
    assert written == first.text
    assert not second.changed
    assert path.read_text(encoding="utf-8") == written
    assert sorted(item.name for item in tmp_path.iterdir()) == ["files.dot"]


def test_compose_file_dry_run_leaves_file_untouched(tmp_path: Path) -> None:
    path = tmp_path / "files.dot"
    original = module_dot()
    path.write_text(original, encoding="utf-8")

    result = ModuleGraphComposer().compose_file(path, ["create"], dry_run=True)

    assert result.changed
    assert '0 -> 1 [label="(create)"]' in result.text
    assert path.read_text(encoding="utf-8") == original


def test_compose_file_reports_missing_automaton(tmp_path: Path) -> None:
    with pytest.raises(GraphLoadError, match="Module automaton not found"):
        ModuleGraphComposer().compose_file(tmp_path / "files.dot", ["create"], module="files")


def test_compose_keeps_crlf_line_endings() -> None:
    text = "digraph {\r\n    // START GENERATED\r\n    // END GENERATED\r\n}\r\n"

    result = ModuleGraphComposer().compose(text, ["create", "delete"])

    assert result.text == (
        "digraph {\r\n    // START GENERATED\r\n"
        '    0 -> 1 [label="(create)"];\r\n    0 -> 2 [label="(delete)"];\r\n'
        "    // END GENERATED\r\n}\r\n"
    )
    assert result.text.count("\r\n") == result.text.count("\n")


def test_compose_file_keeps_crlf_on_disk(tmp_path: Path) -> None:
    path = tmp_path / "files.dot"
    path.write_bytes(module_dot().replace("\n", "\r\n").encode("utf-8"))
    composer = ModuleGraphComposer()

    composer.compose_file(path, ["create"], module="files")
    data = path.read_bytes()

    assert b'0 -> 1 [label="(create)"];\r\n' in data
    assert data.count(b"\r\n") == data.count(b"\n")
    assert not composer.compose_file(path, ["create"], module="files").changed
