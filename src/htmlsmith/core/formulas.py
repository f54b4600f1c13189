"""Tokenisation of HTML sources into image tags and formula fragments."""

from __future__ import annotations

from collections.abc import Iterator
import re

from .documents import Document, FormulaFragment, SourceRange


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<skip>
        <!--.*?-->
        |<(?P<raw>pre|code|script|style|textarea)\b[^>]*>.*?</(?P=raw)\s*>
    )
    |(?P<image><img\b[^>]*>)
    |(?P<tag><[a-zA-Z/!][^>]*>)
    |(?P<math>
        \$\$.*?\$\$
        |\\\[.*?\\\]
        |\\\(.*?\\\)
        |\\begin\{(?P<env>[a-zA-Z*]+)\}.*?\\end\{(?P=env)\}
        |(?<!\\)\$(?!\$)(?!\s)(?:\\.|[^$])*?(?<!\\)\$
    )
    """,
    re.DOTALL | re.VERBOSE | re.IGNORECASE,
)

_DISPLAY_PREFIXES = ("$$", "\\[", "\\begin")


def iter_tokens(text: str) -> Iterator[re.Match[str]]:
    """Yield image and math tokens.

    Comments, verbatim elements and the markup of every other tag are skipped,
    so dollar signs inside attribute values never start a formula.
    """
    for match in _TOKEN_PATTERN.finditer(text):
        if match.group("skip") is not None or match.group("tag") is not None:
            continue
        yield match


def is_display_math(source: str) -> bool:
    """Return True when the fragment uses display delimiters."""
    return source.startswith(_DISPLAY_PREFIXES)


def fragment_from_match(match: re.Match[str], origin: Document) -> FormulaFragment:
    """Build a formula fragment from a ``math`` token."""
    source = match.group("math")
    return FormulaFragment(
        source=source,
        range=SourceRange(match.start("math"), match.end("math")),
        origin=origin,
        display=is_display_math(source),
    )


def iter_formulas(
    document: Document, span: SourceRange | None = None
) -> Iterator[FormulaFragment]:
    """Yield the formula fragments of ``document`` lying inside ``span``.

    The whole text is always tokenised so offsets agree with a full-document
    scan regardless of where ``span`` starts.
    """
    for match in iter_tokens(document.text):
        if match.group("math") is None:
            continue
        fragment = fragment_from_match(match, document)
        if span is not None and not span.contains(fragment.range):
            if fragment.range.begin >= span.end:
                break
            continue
        yield fragment


def math_body(fragment: FormulaFragment) -> str:
    """Strip the math delimiters of a fragment, keeping environments intact."""
    source = fragment.source
    if source.startswith("\\begin"):
        return source
    if source.startswith("$$"):
        return source[2:-2].strip()
    if source.startswith(("\\[", "\\(")):
        return source[2:-2].strip()
    return source[1:-1].strip()


__all__ = [
    "fragment_from_match",
    "is_display_math",
    "iter_formulas",
    "iter_tokens",
    "math_body",
]
