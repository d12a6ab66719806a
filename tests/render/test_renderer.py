"""Tests for the Graphviz image renderer."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

import graphviz
import pytest

from spokendocs.errors import RenderError
from spokendocs.render import GraphvizRenderer, NullRenderer, create_renderer


@pytest.fixture
def automaton(tmp_path: Path) -> Path:
    path = tmp_path / "phrase_en-US.dot"
    path.write_text('digraph { 1 [shape=doublecircle]; 0 -> 1 [label="open"]; }\n', encoding="utf-8")
    return path


def test_render_invokes_graphviz(monkeypatch: pytest.MonkeyPatch, automaton: Path) -> None:
    calls: list[dict[str, Any]] = []

    def fake_render(engine: str, **kwargs: Any) -> str:
        calls.append({"engine": engine, **kwargs})
        Path(kwargs["outfile"]).write_bytes(b"\x89PNG")
        return kwargs["outfile"]

    monkeypatch.setattr(graphviz, "render", fake_render)
    target = automaton.with_suffix(".png")

    written = asyncio.run(GraphvizRenderer().render(automaton, target))

    assert written == target
    assert target.read_bytes() == b"\x89PNG"
    assert calls == [
        {
            "engine": "dot",
            "format": "png",
            "filepath": str(automaton),
            "outfile": str(target),
            "quiet": True,
        }
    ]


def test_render_uses_configured_format(monkeypatch: pytest.MonkeyPatch, automaton: Path) -> None:
    formats: list[str] = []

    def fake_render(engine: str, **kwargs: Any) -> str:
        formats.append(kwargs["format"])
        return kwargs["outfile"]

    monkeypatch.setattr(graphviz, "render", fake_render)
    asyncio.run(GraphvizRenderer(image_format="svg").render(automaton, automaton.with_suffix(".svg")))
    assert formats == ["svg"]


def test_render_reports_missing_executable(monkeypatch: pytest.MonkeyPatch, automaton: Path) -> None:
    def fake_render(engine: str, **kwargs: Any) -> str:
        raise graphviz.ExecutableNotFound(["dot"])

    monkeypatch.setattr(graphviz, "render", fake_render)
    with pytest.raises(RenderError) as excinfo:
        asyncio.run(GraphvizRenderer().render(automaton, automaton.with_suffix(".png")))

    assert excinfo.value.kind == RenderError.NOT_FOUND
    assert excinfo.value.source == str(automaton)


def test_render_reports_malformed_graph(monkeypatch: pytest.MonkeyPatch, automaton: Path) -> None:
    def fake_render(engine: str, **kwargs: Any) -> str:
        raise graphviz.CalledProcessError(1, ["dot"], stderr=b"Error: syntax error in line 1\n")

    monkeypatch.setattr(graphviz, "render", fake_render)
    with pytest.raises(RenderError, match="syntax error in line 1") as excinfo:
        asyncio.run(GraphvizRenderer().render(automaton, automaton.with_suffix(".png")))

    assert excinfo.value.kind == RenderError.MALFORMED


def test_render_reports_missing_source(tmp_path: Path) -> None:
    with pytest.raises(RenderError) as excinfo:
        asyncio.run(GraphvizRenderer().render(tmp_path / "gone.dot", tmp_path / "gone.png"))
    assert excinfo.value.kind == RenderError.MALFORMED


def test_render_times_out(monkeypatch: pytest.MonkeyPatch, automaton: Path) -> None:
    def slow_render(engine: str, **kwargs: Any) -> str:
        time.sleep(0.5)
        return kwargs["outfile"]

    monkeypatch.setattr(graphviz, "render", slow_render)
    with pytest.raises(RenderError, match="did not finish") as excinfo:
        asyncio.run(GraphvizRenderer(timeout=0.05).render(automaton, automaton.with_suffix(".png")))

    assert excinfo.value.kind == RenderError.TIMEOUT


def test_null_renderer_writes_nothing(tmp_path: Path) -> None:
    target = tmp_path / "image.png"
    assert asyncio.run(NullRenderer().render(tmp_path / "a.dot", target)) == target
    assert not target.exists()


def test_create_renderer_honours_enabled_flag() -> None:
    assert isinstance(create_renderer(enabled=False), NullRenderer)
    renderer = create_renderer(engine="neato", image_format="svg", timeout=5)
    assert isinstance(renderer, GraphvizRenderer)
    assert (renderer.engine, renderer.image_format, renderer.timeout) == ("neato", "svg", 5)
