"""Export (download) payloads for the active document."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..editor.document_model import DEFAULT_DOCUMENT_NAME
from ..utils.file_io import write_bytes

__all__ = ["EXPORT_MIME_TYPE", "ExportPayload", "build_export"]

EXPORT_MIME_TYPE = "text/markdown"


@dataclass(slots=True, frozen=True)
class ExportPayload:
    """File-like bytes offered for download under ``filename``."""

    data: bytes
    filename: str
    mime_type: str = EXPORT_MIME_TYPE

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")

    def write_to(self, directory: Path | str) -> Path:
        return write_bytes(Path(directory) / self.filename, self.data)


def build_export(text: str, display_name: str | None = None) -> ExportPayload:
    """Return the UTF-8 bytes of ``text`` named after the document."""

    filename = (display_name or "").strip() or DEFAULT_DOCUMENT_NAME
    return ExportPayload(data=text.encode("utf-8"), filename=filename)
