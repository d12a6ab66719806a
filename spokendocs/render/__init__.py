"""Image rendering collaborators."""

from .renderer import GraphvizRenderer, ImageRenderer, NullRenderer, create_renderer

__all__ = ["GraphvizRenderer", "ImageRenderer", "NullRenderer", "create_renderer"]
