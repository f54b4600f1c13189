"""Formatting of image and formula nodes into HTML image markup."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import os
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

from htmlsmith.core.config import ExportOptions, merge_protected_chars, protect_text
from htmlsmith.core.diagnostics import DiagnosticEmitter, NullEmitter, record_event
from htmlsmith.core.documents import Document, FormulaFragment, SourceRange
from htmlsmith.core.exceptions import InvalidNodeError
from htmlsmith.core.previews import RenderedPreview, ascent
from htmlsmith.core.resolver import PreviewResolver

from .embedding import embed_image, is_remote, normalise_locator, should_embed


@dataclass(frozen=True)
class ImageNode:
    """An image or formula occurrence handed over by the exporter."""

    locator: str | None
    range: SourceRange
    formula: FormulaFragment | None = None

    @property
    def suffix(self) -> str:
        if not self.locator:
            return ""
        return Path(normalise_locator(self.locator)).suffix.lower()


@dataclass
class ExportContext:
    """Per-run state shared with formatters."""

    document: Document
    options: ExportOptions = field(default_factory=ExportOptions)
    emitter: DiagnosticEmitter = field(default_factory=NullEmitter)
    output_dir: Path | None = None

    @property
    def protections(self) -> tuple[tuple[str, str], ...]:
        return merge_protected_chars(self.options.protected_chars)

    @property
    def embed_threshold(self) -> int:
        """Embedding limit, preferring the export override over the document default."""
        if self.options.embed_max_size is not None:
            return self.options.embed_max_size
        return self.document.config.embed_max_size


class ImageFormatter(Protocol):
    """Strategy turning an image node into markup."""

    def format(
        self, node: ImageNode, attributes: Mapping[str, str], context: ExportContext
    ) -> str: ...


def render_tag(
    name: str,
    attributes: Mapping[str, str],
    context: ExportContext,
    *,
    content: str | None = None,
) -> str:
    """Serialise an element, protecting attribute values and text content."""
    protections = context.protections
    rendered = "".join(
        f' {key}="{protect_text(str(value), protections)}"' for key, value in attributes.items()
    )
    if content is None:
        return f"<{name}{rendered}>"
    return f"<{name}{rendered}>{protect_text(content, protections)}</{name}>"


OWNED_ATTRIBUTES = frozenset({"src", "data"})


def merge_attributes(
    generated: Mapping[str, str], attributes: Mapping[str, str]
) -> dict[str, str]:
    """Combine generated attributes with caller ones, the caller winning on conflicts.

    The resource reference (``src`` or ``data``) always comes from the formatter.
    """
    merged = dict(generated)
    merged.update(
        (key, value) for key, value in attributes.items() if key not in OWNED_ATTRIBUTES
    )
    return merged


def _default_alt(locator: str) -> str:
    normalised = normalise_locator(locator)
    if not is_remote(normalised):
        return Path(normalised).name
    parsed = urlparse(normalised)
    if parsed.scheme.lower() == "data":
        return ""
    return PurePosixPath(unquote(parsed.path)).name


class DefaultImageFormatter:
    """Plain formatter referencing images by location."""

    def format(
        self, node: ImageNode, attributes: Mapping[str, str], context: ExportContext
    ) -> str:
        if not node.locator:
            raise InvalidNodeError("Image node without a locator")
        alt = _default_alt(node.locator)
        if node.suffix == ".svg":
            generated = {"type": "image/svg+xml", "data": node.locator}
            merged = merge_attributes(generated, attributes)
            fallback = merged.pop("alt", alt)
            return render_tag("object", merged, context, content=fallback)
        merged = merge_attributes({"src": node.locator, "alt": alt}, attributes)
        return render_tag("img", merged, context)


class InlineImageFormatter:
    """Formatter embedding small images and resolving formulas to previews."""

    def __init__(
        self,
        resolver: PreviewResolver | None = None,
        *,
        fallback: ImageFormatter | None = None,
    ) -> None:
        self.resolver = resolver or PreviewResolver()
        self.fallback = fallback or DefaultImageFormatter()

    def format(
        self, node: ImageNode, attributes: Mapping[str, str], context: ExportContext
    ) -> str:
        if node.suffix == ".svg":
            return self.fallback.format(node, attributes, context)

        fragment = node.formula
        if fragment is not None and fragment.origin.config.preview_mode:
            return self._format_formula(fragment, attributes, context)

        if not node.locator:
            raise InvalidNodeError(
                "Formula node reached the image path without a locator; "
                "enable a preview mode to render formulas"
            )
        return self._format_image(node.locator, attributes, context)

    def _format_formula(
        self,
        fragment: FormulaFragment,
        attributes: Mapping[str, str],
        context: ExportContext,
    ) -> str:
        preview = self.resolver.resolve(fragment)
        bounding_box = preview.bounding_box
        # Size the image in the same unit as the offset so the baseline lines up.
        style = (
            f"vertical-align: {ascent(bounding_box):g}pt; "
            f"width: {bounding_box.width:g}pt; height: {bounding_box.height:g}pt"
        )
        generated = {
            "src": self._preview_source(preview, context),
            "alt": self._formula_alt(fragment, preview),
            "style": style,
        }
        return render_tag("img", merge_attributes(generated, attributes), context)

    def _format_image(
        self, locator: str, attributes: Mapping[str, str], context: ExportContext
    ) -> str:
        embeddable = should_embed(
            locator, context.embed_threshold, base_dir=context.document.directory
        )
        source = embed_image(embeddable, locator) if embeddable is not None else None
        if source is not None:
            record_event(
                context.emitter,
                "image_embed",
                {"source": locator, "size": Path(embeddable).stat().st_size},
            )
        else:
            source = locator
            record_event(context.emitter, "image_reference", {"source": locator})
        generated = {"src": source, "alt": _default_alt(locator)}
        return render_tag("img", merge_attributes(generated, attributes), context)

    @staticmethod
    def _formula_alt(fragment: FormulaFragment, preview: RenderedPreview) -> str:
        if fragment.source.strip():
            return fragment.source
        prefix = fragment.origin.config.label_prefix
        return f"{prefix}{preview.output_file.stem}"

    @staticmethod
    def _preview_source(preview: RenderedPreview, context: ExportContext) -> str:
        candidate = Path(preview.output_file)
        if context.output_dir is None or not candidate.is_absolute():
            return candidate.as_posix()
        try:
            return Path(os.path.relpath(candidate, context.output_dir)).as_posix()
        except ValueError:
            return candidate.as_posix()


__all__ = [
    "DefaultImageFormatter",
    "ExportContext",
    "ImageFormatter",
    "ImageNode",
    "InlineImageFormatter",
    "OWNED_ATTRIBUTES",
    "merge_attributes",
    "render_tag",
]
