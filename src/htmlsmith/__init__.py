"""Primary public API for htmlsmith."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from htmlsmith.adapters.embedding import encode_data_uri, normalise_locator, should_embed
from htmlsmith.adapters.exporter import HtmlExporter
from htmlsmith.adapters.formatter import (
    DefaultImageFormatter,
    ExportContext,
    ImageFormatter,
    ImageNode,
    InlineImageFormatter,
)
from htmlsmith.adapters.renderers import (
    LatexPreviewRenderer,
    get_renderer,
    has_renderer,
    register_renderer,
)
from htmlsmith.core.config import ExportOptions, RenderConfig
from htmlsmith.core.documents import (
    Document,
    FormulaFragment,
    SourceRange,
    propagate_render_config,
)
from htmlsmith.core.exceptions import (
    HtmlExportError,
    InvalidNodeError,
    OversizeResourceError,
    RenderFailedError,
    TransformerExecutionError,
    UnreadableResourceError,
)
from htmlsmith.core.previews import (
    BoundingBox,
    PreviewCache,
    PreviewStatus,
    RenderedPreview,
    ascent,
)
from htmlsmith.core.resolver import PreviewRenderer, PreviewResolver


try:
    __version__ = _pkg_version("htmlsmith")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    "BoundingBox",
    "DefaultImageFormatter",
    "Document",
    "ExportContext",
    "ExportOptions",
    "FormulaFragment",
    "HtmlExportError",
    "HtmlExporter",
    "ImageFormatter",
    "ImageNode",
    "InlineImageFormatter",
    "InvalidNodeError",
    "LatexPreviewRenderer",
    "OversizeResourceError",
    "PreviewCache",
    "PreviewRenderer",
    "PreviewResolver",
    "PreviewStatus",
    "RenderConfig",
    "RenderFailedError",
    "RenderedPreview",
    "SourceRange",
    "TransformerExecutionError",
    "UnreadableResourceError",
    "__version__",
    "ascent",
    "encode_data_uri",
    "get_renderer",
    "has_renderer",
    "normalise_locator",
    "propagate_render_config",
    "register_renderer",
    "should_embed",
]
