"""Registry of formula preview renderers keyed by preview mode."""

from __future__ import annotations

from htmlsmith.core.exceptions import TransformerExecutionError
from htmlsmith.core.resolver import PreviewRenderer

from .latex import LatexPreviewRenderer


class RendererRegistry:
    """Registry storing preview renderers."""

    def __init__(self) -> None:
        self._renderers: dict[str, PreviewRenderer] = {}

    def register(self, name: str, renderer: PreviewRenderer) -> None:
        """Register a renderer under a preview mode name."""
        self._renderers[name] = renderer

    def get(self, name: str) -> PreviewRenderer:
        """Return a registered renderer or raise an execution error."""
        try:
            return self._renderers[name]
        except KeyError as exc:
            raise TransformerExecutionError(f"No preview renderer registered for '{name}'") from exc

    def is_registered(self, name: str) -> bool:
        """Return True when a renderer has been registered under the given name."""
        return name in self._renderers

    def names(self) -> list[str]:
        """Return the registered preview modes."""
        return sorted(self._renderers)


registry = RendererRegistry()

registry.register("latex", LatexPreviewRenderer())


def register_renderer(name: str, renderer: PreviewRenderer) -> None:
    """Expose a helper to register external renderers."""
    registry.register(name, renderer)


def get_renderer(name: str) -> PreviewRenderer:
    """Return the renderer bound to a preview mode."""
    return registry.get(name)


def has_renderer(name: str) -> bool:
    """Return True when a renderer is registered for the preview mode."""
    return registry.is_registered(name)


__all__ = [
    "LatexPreviewRenderer",
    "RendererRegistry",
    "get_renderer",
    "has_renderer",
    "register_renderer",
    "registry",
]
