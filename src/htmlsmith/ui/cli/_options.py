"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


OUTPUT_PANEL = "Output"
RENDERING_PANEL = "Rendering"
DIAGNOSTICS_PANEL = "Diagnostics"

InputPathArgument = Annotated[
    Path,
    typer.Argument(
        metavar="INPUT",
        help="HTML document whose images and formulas should be processed.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]

OutputPathOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Write the processed HTML to this file instead of stdout.",
        dir_okay=False,
        rich_help_panel=OUTPUT_PANEL,
    ),
]

EmbedMaxSizeOption = Annotated[
    int | None,
    typer.Option(
        "--embed-max-size",
        min=0,
        help="Largest image, in bytes, inlined as a data URI for this export.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

PreviewModeOption = Annotated[
    str | None,
    typer.Option(
        "--preview-mode",
        help="Preview renderer used for formulas (e.g. 'latex'). Formulas are kept as-is "
        "when omitted.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

DpiOption = Annotated[
    int,
    typer.Option(
        "--dpi",
        min=1,
        help="Resolution of rendered formula previews.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

WorkingDirOption = Annotated[
    Path | None,
    typer.Option(
        "--working-dir",
        help="Directory receiving formula previews (defaults to the input directory).",
        file_okay=False,
        rich_help_panel=RENDERING_PANEL,
    ),
]

LabelPrefixOption = Annotated[
    str,
    typer.Option(
        "--label-prefix",
        help="Prefix of the alt text given to previews of empty formulas.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

VerbosityOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase diagnostic verbosity (repeat for more detail).",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks on failure.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]
