"""Adapters around the Graphviz renderer for automaton images."""

from __future__ import annotations

import asyncio
import functools
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import graphviz

from ..errors import RenderError
from ..logging import get_logger

DEFAULT_TIMEOUT = 30.0


class ImageRenderer(ABC):
    """Contract for turning an automaton file into an image file."""

    @abstractmethod
    async def render(
        self, source: Path, target: Path, *, timeout: Optional[float] = None
    ) -> Path:
        """Render `source` into `target` and return the written path."""


class NullRenderer(ImageRenderer):
    """Renderer used when image generation is disabled."""

    async def render(
        self, source: Path, target: Path, *, timeout: Optional[float] = None
    ) -> Path:
        return target


class GraphvizRenderer(ImageRenderer):
    """Runs Graphviz through the `graphviz` package off the event loop.

    The blocking call executes in the default executor and is bounded by
    ``asyncio.wait_for``; on expiry the caller gets a ``RenderError`` while the
    worker thread is left to finish on its own.
    """

    def __init__(
        self,
        *,
        engine: str = "dot",
        image_format: str | None = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.engine = engine
        self.image_format = image_format
        self.timeout = timeout
        self.logger = get_logger("render")

    async def render(
        self, source: Path, target: Path, *, timeout: Optional[float] = None
    ) -> Path:
        effective_timeout = timeout if timeout is not None else self.timeout
        image_format = self.image_format or target.suffix.lstrip(".") or "png"
        call = functools.partial(
            self._render_sync, source, target, image_format
        )
        loop = asyncio.get_running_loop()
        try:
            written = await asyncio.wait_for(
                loop.run_in_executor(None, call), timeout=effective_timeout
            )
        except asyncio.TimeoutError as exc:
            raise RenderError(
                f"Graphviz did not finish within {effective_timeout:g}s",
                kind=RenderError.TIMEOUT,
                source=str(source),
            ) from exc
        self.logger.debug("Rendered %s -> %s", source.name, written.name)
        return written

    def _render_sync(self, source: Path, target: Path, image_format: str) -> Path:
        if not source.is_file():
            raise RenderError(
                "Graph description not found", kind=RenderError.MALFORMED, source=str(source)
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            written = graphviz.render(
                self.engine,
                format=image_format,
                filepath=str(source),
                outfile=str(target),
                quiet=True,
            )
        except graphviz.ExecutableNotFound as exc:
            raise RenderError(
                f"Graphviz executable '{self.engine}' not found on PATH",
                kind=RenderError.NOT_FOUND,
                source=str(source),
            ) from exc
        except graphviz.CalledProcessError as exc:
            message = _decode(exc.stderr) or f"exit status {exc.returncode}"
            raise RenderError(
                f"Graphviz rejected the graph: {message}",
                kind=RenderError.MALFORMED,
                source=str(source),
            ) from exc
        except (OSError, ValueError) as exc:
            raise RenderError(
                f"Graphviz rendering failed: {exc}",
                kind=RenderError.FAILED,
                source=str(source),
            ) from exc
        return Path(written)


def _decode(stream: object) -> str:
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace").strip()
    if isinstance(stream, str):
        return stream.strip()
    return ""


def create_renderer(
    *,
    enabled: bool = True,
    engine: str = "dot",
    image_format: str | None = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> ImageRenderer:
    if not enabled:
        return NullRenderer()
    return GraphvizRenderer(engine=engine, image_format=image_format, timeout=timeout)


__all__ = ["GraphvizRenderer", "ImageRenderer", "NullRenderer", "create_renderer"]
