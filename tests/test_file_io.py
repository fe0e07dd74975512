"""Tests for the text decoding and atomic write helpers."""

from __future__ import annotations

import codecs
from pathlib import Path

from markpad.utils.file_io import decode_text, read_text, write_text


def test_decode_text_sniffs_utf16_bom() -> None:
    raw = codecs.BOM_UTF16_LE + "héllo".encode("utf-16-le")

    assert decode_text(raw) == "héllo"


def test_decode_text_falls_back_to_latin1() -> None:
    assert decode_text("café".encode("latin-1")) == "café"


def test_decode_text_can_keep_carriage_returns() -> None:
    assert decode_text(b"a\r\nb", normalize_newlines=False) == "a\r\nb"
    assert decode_text(b"a\r\nb\rc") == "a\nb\nc"


def test_write_text_is_atomic_and_creates_parents(tmp_path: Path) -> None:
    target = tmp_path / "out" / "doc.md"

    write_text(target, "# Doc\n")
    write_text(target, "# Doc v2\n")

    assert read_text(target) == "# Doc v2\n"
    assert [entry.name for entry in target.parent.iterdir()] == ["doc.md"]
