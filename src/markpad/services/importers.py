"""Classification and decoding of dropped or selected files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ..errors import UnsupportedInputError
from ..utils.file_io import decode_text

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "SUPPORTED_MIME_TYPES",
    "FileCandidate",
    "FileImporter",
    "is_supported",
    "unsupported_warning",
]

_LOGGER = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".md", ".txt")
SUPPORTED_MIME_TYPES: tuple[str, ...] = ("text/markdown", "text/plain")


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if not ext:
        return ext
    if not ext.startswith("."):
        return f".{ext}"
    return ext


def is_supported(name: str, mime_type_or_extension: str | None = None) -> bool:
    """Return True when ``name`` or the type hint names Markdown or plain text.

    ``mime_type_or_extension`` accepts either a MIME type (``text/plain``)
    or a bare extension (``md``/``.md``).
    """

    if name.lower().endswith(SUPPORTED_EXTENSIONS):
        return True
    hint = (mime_type_or_extension or "").strip().lower()
    if not hint:
        return False
    if "/" in hint:
        return hint.split(";", 1)[0].strip() in SUPPORTED_MIME_TYPES
    return _normalize_extension(hint) in SUPPORTED_EXTENSIONS


def unsupported_warning(rejected: Sequence[str]) -> str:
    """Single summary message for every file skipped in one batch."""

    names = ", ".join(rejected)
    accepted = "/".join(SUPPORTED_EXTENSIONS)
    return f"Unsupported file type: {names}. Please use {accepted} files only."


@dataclass(slots=True, frozen=True)
class FileCandidate:
    """A file-like input offered for import."""

    name: str
    mime_type: str | None = None
    data: bytes | str = b""

    @classmethod
    def from_path(cls, path: Path | str, *, mime_type: str | None = None) -> "FileCandidate":
        target = Path(path)
        return cls(name=target.name, mime_type=mime_type, data=target.read_bytes())

    def decode(self) -> str:
        if isinstance(self.data, str):
            return self.data
        return decode_text(self.data)


class FileImporter:
    """Accepts Markdown/plain text candidates and decodes their contents."""

    def supported_extensions(self) -> tuple[str, ...]:
        return SUPPORTED_EXTENSIONS

    def supports(self, candidate: FileCandidate) -> bool:
        return is_supported(candidate.name, candidate.mime_type)

    def read(self, candidate: FileCandidate) -> str:
        """Return the decoded text or raise :class:`UnsupportedInputError`."""

        if not self.supports(candidate):
            _LOGGER.debug("Rejecting import of %s (type=%s)", candidate.name, candidate.mime_type)
            raise UnsupportedInputError(candidate.name, accepted=SUPPORTED_EXTENSIONS)
        return candidate.decode()
