"""Resolution of formula fragments into ready previews."""

from __future__ import annotations

import re
from typing import Protocol

from .diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from .documents import Document, FormulaFragment, SourceRange
from .exceptions import RenderFailedError, TransformerExecutionError
from .previews import PreviewCache, RenderedPreview


_BLANK_LINE = re.compile(r"\n[ \t]*\n")


class PreviewRenderer(Protocol):
    """Synchronous renderer filling a cache for every formula inside a span."""

    def render(
        self,
        document: Document,
        span: SourceRange,
        cache: PreviewCache,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None: ...


def enclosing_block(text: str, span: SourceRange) -> SourceRange:
    """Return the paragraph-like block surrounding ``span``.

    Blocks are delimited by blank lines or the document edges.
    """
    begin = 0
    for match in _BLANK_LINE.finditer(text, 0, span.begin):
        begin = match.end()
    following = _BLANK_LINE.search(text, span.end)
    end = following.start() if following is not None else len(text)
    return SourceRange(min(begin, span.begin), max(end, span.end))


class PreviewResolver:
    """Look up previews, rendering the enclosing block on a cache miss."""

    def __init__(
        self,
        cache: PreviewCache | None = None,
        renderer: PreviewRenderer | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.cache = cache if cache is not None else PreviewCache()
        self.renderer = renderer
        self.emitter = ensure_emitter(emitter)

    def resolve(self, fragment: FormulaFragment) -> RenderedPreview:
        """Return a ready preview for ``fragment`` or raise :class:`RenderFailedError`."""
        document = fragment.origin
        cached = self.cache.get(document, fragment.range)
        if cached is not None and cached.ready:
            return cached

        span = enclosing_block(document.text, fragment.range)
        record_event(
            self.emitter,
            "preview_miss",
            {"begin": span.begin, "end": span.end, "source": fragment.source},
        )
        try:
            self._renderer_for(document).render(
                document, span, self.cache, emitter=self.emitter
            )
        except TransformerExecutionError as exc:
            raise RenderFailedError(fragment, str(exc)) from exc

        preview = self.cache.get(document, fragment.range)
        if preview is None:
            raise RenderFailedError(fragment, "no preview was registered for this range")
        if not preview.ready:
            raise RenderFailedError(fragment, f"preview status is {preview.status.name}")
        return preview

    def _renderer_for(self, document: Document) -> PreviewRenderer:
        if self.renderer is not None:
            return self.renderer
        from htmlsmith.adapters.renderers import get_renderer

        mode = document.config.preview_mode
        if not mode:
            raise TransformerExecutionError("No preview mode is configured for this document")
        return get_renderer(mode)


__all__ = ["PreviewRenderer", "PreviewResolver", "enclosing_block"]
