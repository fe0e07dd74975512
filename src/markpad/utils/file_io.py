"""Robust text decoding and file writing helpers."""

from __future__ import annotations

import codecs
import os
import tempfile
from pathlib import Path

__all__ = ["decode_text", "read_text", "write_bytes", "write_text"]

_BOM_MAP: dict[bytes, str] = {
    codecs.BOM_UTF8: "utf-8-sig",
    codecs.BOM_UTF32_LE: "utf-32",
    codecs.BOM_UTF32_BE: "utf-32",
    codecs.BOM_UTF16_LE: "utf-16",
    codecs.BOM_UTF16_BE: "utf-16",
}


def decode_text(raw: bytes, *, encoding: str | None = None, normalize_newlines: bool = True) -> str:
    """Decode ``raw`` using BOM sniffing with a UTF-8 then latin-1 fallback."""

    detected = encoding or _detect_encoding(raw)
    text = raw.decode(detected)
    text = _strip_bom(text)
    return _normalize_newlines(text) if normalize_newlines else text


def read_text(path: Path | str, *, normalize_newlines: bool = True) -> str:
    return decode_text(Path(path).read_bytes(), normalize_newlines=normalize_newlines)


def write_text(path: Path | str, content: str, *, encoding: str = "utf-8") -> Path:
    """Write ``content`` verbatim using an atomic temp-file replace."""

    return write_bytes(path, content.encode(encoding))


def write_bytes(path: Path | str, data: bytes) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target


def _detect_encoding(raw: bytes) -> str:
    # UTF-32 LE shares its first two bytes with the UTF-16 LE BOM, so order matters.
    for bom, encoding in _BOM_MAP.items():
        if raw.startswith(bom):
            return encoding
    try:
        raw.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        return "latin-1"


def _normalize_newlines(text: str) -> str:
    if "\r" not in text:
        return text
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text
