from pathlib import Path

import pytest

from htmlsmith.adapters import renderers
from htmlsmith.core.config import RenderConfig
from htmlsmith.core.documents import Document, FormulaFragment, SourceRange
from htmlsmith.core.exceptions import RenderFailedError, TransformerExecutionError
from htmlsmith.core.formulas import iter_formulas
from htmlsmith.core.previews import (
    BoundingBox,
    PreviewCache,
    PreviewStatus,
    RenderedPreview,
)
from htmlsmith.core.resolver import PreviewResolver, enclosing_block


class _CountingRenderer:
    """Fake renderer registering a ready preview for every formula of the span."""

    def __init__(self, bbox: BoundingBox = BoundingBox(0.0, 0.0, 10.0, 10.0)) -> None:
        self.bbox = bbox
        self.calls: list[SourceRange] = []

    def render(self, document, span, cache, **_):
        self.calls.append(span)
        for fragment in iter_formulas(document, span):
            output = Path(f"preview-{fragment.range.begin}.png")
            cache.put(document, fragment.range, RenderedPreview(output, self.bbox))


class _SilentRenderer:
    def __init__(self) -> None:
        self.calls = 0

    def render(self, document, span, cache, **_):
        self.calls += 1


class _RaisingRenderer:
    def render(self, document, span, cache, **_):
        raise TransformerExecutionError(
            "pdflatex exited with status 1: ! Undefined control sequence."
        )


class _FailedStatusRenderer:
    def render(self, document, span, cache, **_):
        for fragment in iter_formulas(document, span):
            cache.put(
                document,
                fragment.range,
                RenderedPreview(Path("x.png"), BoundingBox(0, 0, 0, 0), PreviewStatus.FAILED),
            )


def _first_fragment(document: Document) -> FormulaFragment:
    return next(iter_formulas(document))


def test_enclosing_block_stops_at_blank_lines() -> None:
    text = "intro\n\nfirst $a$ and\nsecond $b$\n  \nlast $c$"
    fragment_span = SourceRange(text.index("$b$"), text.index("$b$") + 3)

    block = enclosing_block(text, fragment_span)

    assert text[block.begin : block.end] == "first $a$ and\nsecond $b$"


def test_enclosing_block_defaults_to_document_edges() -> None:
    text = "only $a$ here"
    assert enclosing_block(text, SourceRange(5, 8)) == SourceRange(0, len(text))


def test_cache_hit_skips_renderer() -> None:
    document = Document(text="value $x$")
    fragment = _first_fragment(document)
    cache = PreviewCache()
    preview = RenderedPreview(Path("cached.png"), BoundingBox(0, 1, 2, 3))
    cache.put(document, fragment.range, preview)
    renderer = _CountingRenderer()

    resolved = PreviewResolver(cache, renderer).resolve(fragment)

    assert resolved is preview
    assert renderer.calls == []


def test_resolving_twice_renders_once() -> None:
    document = Document(text="value $x$ and $y$\n\nlater $z$")
    renderer = _CountingRenderer()
    resolver = PreviewResolver(PreviewCache(), renderer)
    fragments = list(iter_formulas(document))

    first = resolver.resolve(fragments[0])
    second = resolver.resolve(fragments[0])
    resolver.resolve(fragments[1])

    assert first is second
    assert len(renderer.calls) == 1
    assert renderer.calls[0] == SourceRange(0, document.text.index("\n\n"))


def test_other_blocks_trigger_their_own_render() -> None:
    document = Document(text="value $x$\n\nlater $z$")
    renderer = _CountingRenderer()
    resolver = PreviewResolver(PreviewCache(), renderer)

    for fragment in iter_formulas(document):
        resolver.resolve(fragment)

    assert len(renderer.calls) == 2


def test_missing_preview_raises_and_leaves_cache_empty() -> None:
    document = Document(text="value $x$")
    cache = PreviewCache()
    renderer = _SilentRenderer()

    with pytest.raises(RenderFailedError) as excinfo:
        PreviewResolver(cache, renderer).resolve(_first_fragment(document))

    assert renderer.calls == 1
    assert len(cache) == 0
    assert excinfo.value.fragment.source == "$x$"


def test_renderer_errors_are_chained() -> None:
    document = Document(text="value $\\foo$")
    cache = PreviewCache()

    with pytest.raises(RenderFailedError, match="Undefined control sequence") as excinfo:
        PreviewResolver(cache, _RaisingRenderer()).resolve(_first_fragment(document))

    assert isinstance(excinfo.value.__cause__, TransformerExecutionError)
    assert len(cache) == 0


def test_non_ready_preview_is_a_failure() -> None:
    document = Document(text="value $x$")

    with pytest.raises(RenderFailedError, match="FAILED"):
        PreviewResolver(PreviewCache(), _FailedStatusRenderer()).resolve(_first_fragment(document))


def test_failed_entries_are_rendered_again() -> None:
    document = Document(text="value $x$")
    fragment = _first_fragment(document)
    cache = PreviewCache()
    cache.put(
        document,
        fragment.range,
        RenderedPreview(Path("old.png"), BoundingBox(0, 0, 0, 0), PreviewStatus.FAILED),
    )
    renderer = _CountingRenderer()

    preview = PreviewResolver(cache, renderer).resolve(fragment)

    assert preview.ready
    assert len(renderer.calls) == 1


def test_renderer_is_looked_up_by_preview_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    renderer = _CountingRenderer()
    monkeypatch.setitem(renderers.registry._renderers, "counting", renderer)
    document = Document(text="value $x$", config=RenderConfig(preview_mode="counting"))

    PreviewResolver().resolve(_first_fragment(document))

    assert len(renderer.calls) == 1


def test_unknown_preview_mode_is_a_render_failure() -> None:
    document = Document(text="value $x$", config=RenderConfig(preview_mode="does-not-exist"))

    with pytest.raises(RenderFailedError, match="does-not-exist"):
        PreviewResolver().resolve(_first_fragment(document))
