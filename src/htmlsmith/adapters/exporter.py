"""Minimal HTML export host driving the image formatter."""

from __future__ import annotations

from pathlib import Path
import re

from bs4 import BeautifulSoup

from htmlsmith.core.config import ExportOptions
from htmlsmith.core.diagnostics import DiagnosticEmitter, ensure_emitter
from htmlsmith.core.documents import (
    CloneHook,
    Document,
    SourceRange,
    clone_document,
    propagate_render_config,
)
from htmlsmith.core.exceptions import InvalidNodeError
from htmlsmith.core.formulas import fragment_from_match, iter_tokens
from htmlsmith.core.resolver import PreviewResolver

from .formatter import ExportContext, ImageFormatter, ImageNode, InlineImageFormatter


DEFAULT_CLONE_HOOKS: tuple[CloneHook, ...] = (propagate_render_config,)


def parse_image_tag(markup: str) -> dict[str, str]:
    """Return the attributes of a single ``<img>`` tag."""
    soup = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
    tag = soup.find("img")
    if tag is None:
        raise InvalidNodeError(f"Unable to parse image tag {markup!r}")
    return {str(key): "" if value is None else str(value) for key, value in tag.attrs.items()}


class HtmlExporter:
    """Walk an HTML source, replacing images and formulas with formatter output.

    The formatter is injected so hosts can swap the image strategy without
    patching the exporter. Every export works on a clone of the document;
    clone hooks run before the first node is formatted.
    """

    def __init__(
        self,
        formatter: ImageFormatter | None = None,
        *,
        clone_hooks: tuple[CloneHook, ...] = DEFAULT_CLONE_HOOKS,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.emitter = ensure_emitter(emitter)
        self.formatter = formatter or InlineImageFormatter(PreviewResolver(emitter=self.emitter))
        self.clone_hooks = clone_hooks

    def clone(self, document: Document) -> Document:
        """Return the working copy used for an export run."""
        return clone_document(document, self.clone_hooks)

    def export(
        self,
        document: Document,
        options: ExportOptions | None = None,
        *,
        output_dir: Path | None = None,
    ) -> str:
        """Return the text of ``document`` with images and formulas formatted."""
        working = self.clone(document)
        context = ExportContext(
            document=working,
            options=options or ExportOptions(),
            emitter=self.emitter,
            output_dir=output_dir,
        )
        pieces: list[str] = []
        cursor = 0
        for match in iter_tokens(working.text):
            replacement = self._format_token(match, document, working, context)
            if replacement is None:
                continue
            pieces.append(working.text[cursor : match.start()])
            pieces.append(replacement)
            cursor = match.end()
        pieces.append(working.text[cursor:])
        return "".join(pieces)

    def _format_token(
        self,
        match: re.Match[str],
        origin: Document,
        working: Document,
        context: ExportContext,
    ) -> str | None:
        span = SourceRange(match.start(), match.end())
        if match.group("image") is not None:
            attributes = parse_image_tag(match.group("image"))
            locator = attributes.pop("src", "").strip()
            if not locator:
                raise InvalidNodeError("Image tag without 'src' attribute")
            return self.formatter.format(ImageNode(locator, span), attributes, context)

        if not working.config.preview_mode:
            return None
        fragment = fragment_from_match(match, origin)
        return self.formatter.format(ImageNode(None, span, fragment), {}, context)


__all__ = ["DEFAULT_CLONE_HOOKS", "HtmlExporter", "parse_image_tag"]
