"""Custom exception hierarchy for the HTML export pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .documents import FormulaFragment


class HtmlExportError(RuntimeError):
    """Base exception for HTML export failures."""


class UnreadableResourceError(HtmlExportError):
    """Raised when an image resource is missing or cannot be read."""


class OversizeResourceError(HtmlExportError):
    """Raised when an image resource exceeds the embedding threshold."""


class TransformerExecutionError(HtmlExportError):
    """Raised when an external converter fails to execute properly."""


class InvalidNodeError(HtmlExportError):
    """Raised when a formatter receives an unexpected node shape."""


class RenderFailedError(HtmlExportError):
    """Raised when a formula could not be turned into a ready preview."""

    def __init__(self, fragment: FormulaFragment, message: str | None = None) -> None:
        self.fragment = fragment
        begin, end = fragment.range
        detail = message or "renderer did not produce a ready preview"
        super().__init__(
            f"Failed to render formula {fragment.source!r} at [{begin}, {end}): {detail}"
        )


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None
