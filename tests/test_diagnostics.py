from __future__ import annotations

import logging

import pytest

from htmlsmith.core.diagnostics import (
    LoggingEmitter,
    NullEmitter,
    ensure_emitter,
    format_event_message,
    record_event,
)
from htmlsmith.core.documents import Document
from htmlsmith.core.exceptions import (
    RenderFailedError,
    TransformerExecutionError,
    exception_hint,
    exception_messages,
)
from htmlsmith.core.formulas import iter_formulas
from htmlsmith.ui.cli.diagnostics import CliEmitter, summarise_export
from htmlsmith.ui.cli.state import CLIState, set_cli_state


def _raise_nested_render_error() -> None:
    fragment = next(iter_formulas(Document(text="$\\foo$")))
    try:
        raise TransformerExecutionError("pdflatex exited with status 1: Undefined control")
    except TransformerExecutionError as exc:
        raise RenderFailedError(fragment, str(exc)) from exc


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.DEBUG):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
        emitter.event("ignored", {"value": 1})
    assert not caplog.records
    assert emitter.debug_enabled is False


def test_ensure_emitter_defaults_to_null() -> None:
    assert isinstance(ensure_emitter(None), NullEmitter)
    emitter = LoggingEmitter()
    assert ensure_emitter(emitter) is emitter


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.ERROR):
        emitter.error("boom")
    assert any(record.message == "boom" for record in caplog.records)
    assert emitter.debug_enabled is True


def test_logging_emitter_summarises_known_events(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter()
    with caplog.at_level(logging.DEBUG, logger="htmlsmith"):
        record_event(emitter, "image_embed", {"source": "dot.png", "size": 12})
        record_event(emitter, "image_reference", {"source": "big.png"})

    messages = [(record.levelno, record.getMessage()) for record in caplog.records]
    assert (logging.INFO, "Embedding image: dot.png (12 bytes)") in messages
    assert any(
        level == logging.DEBUG and "image_reference" in message for level, message in messages
    )


def test_format_event_message() -> None:
    assert format_event_message("preview_render", {"begin": 0, "end": 9, "count": 2}) == (
        "Rendering 2 formula preview(s) for span [0, 9)"
    )
    assert format_event_message("preview_reused", {"count": 3}) == (
        "Reusing 3 formula preview(s) from disk"
    )
    assert format_event_message("image_embed", {}) == "Embedding image: <unknown>"
    assert format_event_message("preview_miss", {"begin": 0, "end": 1}) is None


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("preview_reused", {"count": 1})
    emitter.event("custom", {"flag": True})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert "Reusing 1 formula preview(s)" in combined_output
    assert state.consume_events("custom") == [("custom", {"flag": True})]
    assert state.consume_events("custom") == []


def test_render_failure_keeps_fragment_and_cause() -> None:
    with pytest.raises(RenderFailedError) as excinfo:
        _raise_nested_render_error()

    error = excinfo.value
    assert error.fragment.source == "$\\foo$"
    assert "[0, 6)" in str(error)
    assert exception_hint(error) == "pdflatex exited with status 1: Undefined control"
    assert len(exception_messages(error)) == 2


def test_cli_emitter_keeps_image_events_quiet_below_double_verbose(
    capsys: pytest.CaptureFixture[str],
) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    state.consume_events()
    emitter = CliEmitter(state=state)

    emitter.event("image_embed", {"source": "dot.png", "size": 10})
    assert "Embedding image" not in capsys.readouterr().err

    set_cli_state(verbosity=2)
    emitter.event("image_embed", {"source": "dot.png", "size": 10})
    assert "Embedding image: dot.png (10 bytes)" in capsys.readouterr().err
    assert [name for name, _ in state.consume_events()] == ["image_embed", "image_embed"]


def test_summarise_export_drains_recorded_events() -> None:
    state = CLIState()
    state.record_event("image_embed", {"source": "a.png", "size": 10})
    state.record_event("image_embed", {"source": "b.png", "size": 5})
    state.record_event("image_reference", {"source": "big.jpg"})
    state.record_event("preview_miss", {"begin": 0, "end": 4})
    state.record_event("preview_render", {"begin": 0, "end": 4, "count": 2})
    state.record_event("preview_reused", {"count": 1})

    summary = summarise_export(state)

    assert summary == (
        "Embedded 2 image(s) (15 bytes), referenced 1; "
        "rendered 2 formula preview(s), reused 1"
    )
    assert state.events == []
    assert summarise_export(state) is None


def test_consume_events_filters_by_name() -> None:
    state = CLIState()
    state.record_event("image_embed", {"size": 1})
    state.record_event("preview_render", {"count": 1})

    assert state.consume_events("preview_render") == [("preview_render", {"count": 1})]
    assert state.events == [("image_embed", {"size": 1})]
