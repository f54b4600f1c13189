"""Implementation of the ``htmlsmith export`` command."""

from __future__ import annotations

import sys

import typer

from htmlsmith.adapters.exporter import HtmlExporter
from htmlsmith.adapters.renderers import has_renderer, registry
from htmlsmith.core.config import DEFAULT_LABEL_PREFIX, ExportOptions, RenderConfig
from htmlsmith.core.documents import Document
from htmlsmith.core.exceptions import HtmlExportError, exception_hint

from .._options import (
    DebugOption,
    DpiOption,
    EmbedMaxSizeOption,
    InputPathArgument,
    LabelPrefixOption,
    OutputPathOption,
    PreviewModeOption,
    VerbosityOption,
    WorkingDirOption,
)
from ..diagnostics import CliEmitter, summarise_export
from ..state import debug_enabled, emit_error, render_message, set_cli_state


def export(
    input_path: InputPathArgument,
    output: OutputPathOption = None,
    embed_max_size: EmbedMaxSizeOption = None,
    preview_mode: PreviewModeOption = None,
    dpi: DpiOption = 150,
    working_dir: WorkingDirOption = None,
    label_prefix: LabelPrefixOption = DEFAULT_LABEL_PREFIX,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
) -> None:
    """Inline small images and render formulas of an HTML document."""
    state = set_cli_state(verbosity=verbose, debug=debug)

    if preview_mode is not None and not has_renderer(preview_mode):
        available = ", ".join(registry.names())
        raise typer.BadParameter(
            f"Unknown preview mode '{preview_mode}' (available: {available}).",
            param_hint="--preview-mode",
        )

    config = RenderConfig(
        preview_mode=preview_mode,
        dpi=dpi,
        working_dir=working_dir,
        label_prefix=label_prefix,
    )
    document = Document.from_path(input_path, config=config)
    exporter = HtmlExporter(emitter=CliEmitter(state))
    output_dir = output.resolve().parent if output is not None else input_path.parent

    try:
        html = exporter.export(
            document,
            ExportOptions(embed_max_size=embed_max_size),
            output_dir=output_dir,
        )
    except HtmlExportError as exc:
        if debug_enabled():
            raise
        hint = exception_hint(exc)
        message = str(exc) if hint is None or hint == str(exc) else f"{exc} ({hint})"
        emit_error(message, exception=exc)
        raise typer.Exit(code=1) from exc

    summary = summarise_export(state)
    if summary:
        render_message("info", summary)

    if output is None:
        sys.stdout.write(html)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html, encoding="utf-8")
    state.console.print(f"[green]Wrote[/] {output}")


__all__ = ["export"]
