import base64
from pathlib import Path

import pytest

from htmlsmith.adapters.embedding import (
    check_embeddable,
    embed_image,
    encode_data_uri,
    guess_mime_type,
    normalise_locator,
    should_embed,
)
from htmlsmith.core.exceptions import OversizeResourceError, UnreadableResourceError


_PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def _write(path: Path, size: int) -> Path:
    path.write_bytes(bytes(range(256)) * (size // 256) + bytes(size % 256))
    return path


@pytest.mark.parametrize("payload", [b"", b"\x00\xff\x10", bytes(range(256)) * 40])
def test_encode_round_trips(payload: bytes) -> None:
    assert base64.b64decode(encode_data_uri(payload)) == payload


def test_encode_has_no_line_breaks() -> None:
    encoded = encode_data_uri(b"x" * 10_000, "image/png")
    assert "\n" not in encoded
    assert "\r" not in encoded


def test_encode_prefixes_data_header_when_typed() -> None:
    assert encode_data_uri(b"abc", "image/gif") == "data:image/gif;base64,YWJj"
    assert encode_data_uri(b"abc") == "YWJj"


def test_should_embed_respects_threshold(tmp_path: Path) -> None:
    image = _write(tmp_path / "figure.png", 100)

    assert should_embed(str(image), 100) == str(image)
    assert should_embed(str(image), 99) is None


def test_should_embed_strips_file_scheme(tmp_path: Path) -> None:
    image = _write(tmp_path / "x.png", 10)

    plain = should_embed(str(image), 50)
    prefixed = should_embed(f"file://{image}", 50)

    assert plain is not None
    assert plain == prefixed
    assert should_embed(f"file://{image}", 5) is should_embed(str(image), 5) is None


def test_should_embed_fails_closed_for_missing_files(tmp_path: Path) -> None:
    assert should_embed(str(tmp_path / "missing.png"), 1_000) is None
    assert should_embed(str(tmp_path), 1_000) is None


def test_should_embed_rejects_remote_locators() -> None:
    assert should_embed("https://example.com/figure.png", 1_000_000) is None


def test_should_embed_resolves_relative_locators(tmp_path: Path) -> None:
    _write(tmp_path / "logo.png", 12)

    assert should_embed("logo.png", 100, base_dir=tmp_path) == str(tmp_path / "logo.png")


def test_check_embeddable_reports_reason(tmp_path: Path) -> None:
    image = _write(tmp_path / "big.png", 64)

    with pytest.raises(OversizeResourceError, match="64 bytes"):
        check_embeddable(str(image), 10)
    with pytest.raises(UnreadableResourceError):
        check_embeddable(str(tmp_path / "nope.png"), 10)


def test_normalise_locator_unquotes_file_urls() -> None:
    assert normalise_locator("file:///tmp/my%20figure.png") == "/tmp/my figure.png"
    assert normalise_locator("/tmp/x.png") == "/tmp/x.png"


def test_guess_mime_type_uses_extension_then_magic() -> None:
    assert guess_mime_type("figure.JPG") == "image/jpeg"
    assert guess_mime_type("file:///tmp/x.png") == "image/png"
    assert guess_mime_type("figure", _PNG_HEADER + b"rest") == "image/png"
    assert guess_mime_type("figure.unknown") is None


def test_embed_image_builds_data_uri(tmp_path: Path) -> None:
    image = tmp_path / "dot.png"
    image.write_bytes(_PNG_HEADER + b"\x00\x00")

    uri = embed_image(image)

    assert uri.startswith("data:image/png;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == _PNG_HEADER + b"\x00\x00"


def test_embed_image_refuses_untyped_payloads(tmp_path: Path) -> None:
    blob = tmp_path / "figure.dat"
    blob.write_bytes(b"\x00\x01\x02rawimage")

    assert embed_image(blob) is None
    assert embed_image(blob, "figure.png") is not None
