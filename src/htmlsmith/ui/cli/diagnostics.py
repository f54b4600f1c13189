"""CLI side of export diagnostics: live messages and the end-of-run summary."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from htmlsmith.core.diagnostics import DiagnosticEmitter, format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter(DiagnosticEmitter):
    """Report export diagnostics on the console and keep events for :func:`summarise_export`."""

    def __init__(self, state: CLIState | None = None) -> None:
        self._state = state or get_cli_state()
        self.debug_enabled = self._state.show_tracebacks

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self._state.record_event(name, payload)
        # Per-image chatter only at -vv; the summary covers -v.
        if name.startswith("image_") and self._state.verbosity < 2:
            return
        message = format_event_message(name, payload)
        if message:
            render_message("info", message)


def summarise_export(state: CLIState) -> str | None:
    """Condense the events of one export run into a single line.

    Consumes every recorded event so repeated runs start from an empty store.
    """
    embedded = embedded_bytes = referenced = rendered = reused = 0
    for name, payload in state.consume_events():
        if name == "image_embed":
            embedded += 1
            embedded_bytes += int(payload.get("size") or 0)
        elif name == "image_reference":
            referenced += 1
        elif name == "preview_render":
            rendered += int(payload.get("count") or 0)
        elif name == "preview_reused":
            reused += int(payload.get("count") or 0)

    if not (embedded or referenced or rendered or reused):
        return None
    return (
        f"Embedded {embedded} image(s) ({embedded_bytes} bytes), "
        f"referenced {referenced}; rendered {rendered} formula preview(s), reused {reused}"
    )


__all__ = ["CliEmitter", "summarise_export"]
