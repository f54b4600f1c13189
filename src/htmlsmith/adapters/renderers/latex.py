"""Formula previews rendered through pdflatex and Ghostscript."""

from __future__ import annotations

from hashlib import sha256
import json
import math
from pathlib import Path
import re
import shutil
import subprocess
import tempfile
from typing import Any

from PIL import Image

from htmlsmith.core.diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from htmlsmith.core.documents import Document, FormulaFragment, SourceRange
from htmlsmith.core.exceptions import TransformerExecutionError
from htmlsmith.core.formulas import iter_formulas, math_body
from htmlsmith.core.previews import (
    REFERENCE_BASELINE,
    BoundingBox,
    PreviewCache,
    PreviewStatus,
    RenderedPreview,
)


PAGE_WIDTH = 612.0
PAGE_HEIGHT = 792.0
MANIFEST_NAME = "previews.json"

_HIRES_BBOX = re.compile(r"%%HiResBoundingBox:\s+([-\d.]+)\s+([-\d.]+)\s+([-\d.]+)\s+([-\d.]+)")

# Each formula gets its own page with the baseline REFERENCE_BASELINE bp above
# the bottom edge: zero margins and \topskip put the first baseline on the top
# edge, the picture then moves the box down by the remaining distance.
_PREAMBLE = r"""\documentclass{article}
\usepackage[paperwidth=612bp,paperheight=792bp,margin=0pt]{geometry}
\usepackage{amsmath}
\usepackage{amssymb}
%(preamble)s
\pagestyle{empty}
\setlength{\topskip}{0pt}
\setlength{\parindent}{0pt}
\setlength{\unitlength}{1bp}
\begin{document}
"""

_PAGE = r"""\begin{picture}(0,0)\put(72,-%(drop)s){%(box)s}\end{picture}
\clearpage
"""


def _run_cli(
    command: list[str], *, cwd: Path, description: str
) -> subprocess.CompletedProcess[str]:
    """Execute a local CLI, raising a transformer error on failure."""
    try:
        result = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except OSError as exc:
        raise TransformerExecutionError(f"Failed to execute {description}: {exc}") from exc

    if result.returncode != 0:
        detail = (result.stderr or "").strip() or (result.stdout or "").strip()
        message = f"{description} exited with status {result.returncode}"
        if detail:
            message = f"{message}: {detail.splitlines()[-1]}"
        raise TransformerExecutionError(message)
    return result


def _resolve_executable(name: str) -> str:
    resolved = shutil.which(name)
    if resolved is None:
        raise TransformerExecutionError(f"{name} executable could not be located on PATH")
    return resolved


def parse_bounding_boxes(output: str) -> list[BoundingBox]:
    """Extract per-page HiRes bounding boxes from Ghostscript's bbox device."""
    return [
        BoundingBox(*(float(value) for value in match.groups()))
        for match in _HIRES_BBOX.finditer(output)
    ]


def crop_box(bounding_box: BoundingBox, dpi: int) -> tuple[int, int, int, int]:
    """Convert a bounding box in big points into a pixel crop rectangle."""
    scale = dpi / 72.0
    return (
        math.floor(bounding_box.left * scale),
        math.floor((PAGE_HEIGHT - bounding_box.top) * scale),
        math.ceil(bounding_box.right * scale),
        math.ceil((PAGE_HEIGHT - bounding_box.bottom) * scale),
    )


def build_latex_source(fragments: list[FormulaFragment], preamble: str = "") -> str:
    """Return a document typesetting one fragment per page."""
    drop = f"{PAGE_HEIGHT - REFERENCE_BASELINE:g}"
    pages = [_PAGE % {"drop": drop, "box": _formula_box(fragment)} for fragment in fragments]
    return _PREAMBLE % {"preamble": preamble} + "".join(pages) + "\\end{document}\n"


def _formula_box(fragment: FormulaFragment) -> str:
    body = math_body(fragment)
    if body.startswith("\\begin"):
        return "\\parbox[b]{468bp}{" + body + "}"
    if fragment.display:
        return "\\hbox{$\\displaystyle " + body + "$}"
    return "\\hbox{$" + body + "$}"


class LatexPreviewRenderer:
    """Rasterise formulas with pdflatex, measure and crop them with Ghostscript."""

    def __init__(self, *, compiler: str = "pdflatex", ghostscript: str = "gs") -> None:
        self.compiler = compiler
        self.ghostscript = ghostscript

    def render(
        self,
        document: Document,
        span: SourceRange,
        cache: PreviewCache,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        """Render every formula inside ``span`` and register it in ``cache``."""
        emitter = ensure_emitter(emitter)
        config = document.config
        output_dir = self.output_directory(document)
        output_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = output_dir / MANIFEST_NAME
        manifest = _load_manifest(manifest_path)

        pending: list[tuple[FormulaFragment, str]] = []
        reused = 0
        for fragment in iter_formulas(document, span):
            digest = self.fragment_digest(fragment, preamble=config.preamble, dpi=config.dpi)
            entry = manifest.get(digest)
            target = output_dir / f"{digest}.png"
            if entry is not None and target.exists():
                preview = RenderedPreview(target, BoundingBox(*entry["bbox"]))
                cache.put(document, fragment.range, preview)
                reused += 1
                continue
            pending.append((fragment, digest))

        if reused:
            record_event(emitter, "preview_reused", {"count": reused})
        if not pending:
            return

        record_event(
            emitter,
            "preview_render",
            {"begin": span.begin, "end": span.end, "count": len(pending)},
        )
        with tempfile.TemporaryDirectory(prefix="htmlsmith-") as tmp:
            workdir = Path(tmp)
            boxes, pages = self._typeset(
                [fragment for fragment, _ in pending],
                workdir=workdir,
                preamble=config.preamble,
                dpi=config.dpi,
            )
            for (fragment, digest), bounding_box, page in zip(pending, boxes, pages, strict=True):
                target = output_dir / f"{digest}.png"
                if bounding_box.is_empty():
                    cache.put(
                        document,
                        fragment.range,
                        RenderedPreview(target, bounding_box, PreviewStatus.FAILED),
                    )
                    continue
                with Image.open(page) as image:
                    image.crop(crop_box(bounding_box, config.dpi)).save(target)
                manifest[digest] = {"bbox": list(bounding_box), "source": fragment.source}
                cache.put(document, fragment.range, RenderedPreview(target, bounding_box))

        _save_manifest(manifest_path, manifest)

    def output_directory(self, document: Document) -> Path:
        """Directory receiving the preview images of ``document``."""
        config = document.config
        base = Path(config.working_dir) if config.working_dir is not None else document.directory
        return base / config.image_directory

    @staticmethod
    def fragment_digest(fragment: FormulaFragment, *, preamble: str, dpi: int) -> str:
        """Return a stable identifier for a formula and the options shaping its image."""
        payload = {
            "source": fragment.source,
            "display": fragment.display,
            "preamble": preamble,
            "dpi": dpi,
        }
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return sha256(encoded.encode("utf-8")).hexdigest()

    def _typeset(
        self,
        fragments: list[FormulaFragment],
        *,
        workdir: Path,
        preamble: str,
        dpi: int,
    ) -> tuple[list[BoundingBox], list[Path]]:
        tex_path = workdir / "previews.tex"
        tex_path.write_text(build_latex_source(fragments, preamble), encoding="utf-8")
        pdf_name = tex_path.with_suffix(".pdf").name

        compiler = _resolve_executable(self.compiler)
        ghostscript = _resolve_executable(self.ghostscript)
        _run_cli(
            [compiler, "-interaction=nonstopmode", "-halt-on-error", tex_path.name],
            cwd=workdir,
            description=self.compiler,
        )
        gs_flags = ["-q", "-dBATCH", "-dNOPAUSE", "-dSAFER"]
        measured = _run_cli(
            [ghostscript, *gs_flags, "-sDEVICE=bbox", pdf_name],
            cwd=workdir,
            description="Ghostscript bounding box",
        )
        boxes = parse_bounding_boxes(f"{measured.stderr}\n{measured.stdout}")
        if len(boxes) != len(fragments):
            raise TransformerExecutionError(
                f"Expected {len(fragments)} bounding boxes from Ghostscript, got {len(boxes)}"
            )

        _run_cli(
            [
                ghostscript,
                *gs_flags,
                "-sDEVICE=pngalpha",
                f"-r{dpi}",
                "-dTextAlphaBits=4",
                "-dGraphicsAlphaBits=4",
                "-sOutputFile=page-%d.png",
                pdf_name,
            ],
            cwd=workdir,
            description="Ghostscript rasterisation",
        )
        pages = [workdir / f"page-{index}.png" for index in range(1, len(fragments) + 1)]
        missing = [page.name for page in pages if not page.exists()]
        if missing:
            raise TransformerExecutionError(f"Ghostscript did not produce {', '.join(missing)}")
        return boxes, pages


def _load_manifest(path: Path) -> dict[str, dict[str, Any]]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    return {
        str(key): dict(value)
        for key, value in data.items()
        if isinstance(value, dict) and len(value.get("bbox", ())) == 4
    }


def _save_manifest(path: Path, manifest: dict[str, dict[str, Any]]) -> None:
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False), encoding="utf-8")


__all__ = [
    "MANIFEST_NAME",
    "LatexPreviewRenderer",
    "build_latex_source",
    "crop_box",
    "parse_bounding_boxes",
]
