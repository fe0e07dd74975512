"""Dataclasses representing one open document and its naming rules."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..errors import ValidationError
from .history import ContentHistory, HistoryPolicy

__all__ = [
    "DOCUMENT_EXTENSION",
    "DEFAULT_DOCUMENT_NAME",
    "DocumentSession",
    "document_template",
    "normalize_document_name",
]

DOCUMENT_EXTENSION = ".md"
DEFAULT_DOCUMENT_NAME = "document.md"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_session_id() -> str:
    return uuid.uuid4().hex


def normalize_document_name(name: str | None) -> str:
    """Strip ``name`` and make sure it ends with the Markdown extension."""

    stripped = (name or "").strip()
    if not stripped:
        raise ValidationError("Document name is required")
    if stripped.endswith(DOCUMENT_EXTENSION):
        return stripped
    return f"{stripped}{DOCUMENT_EXTENSION}"


def document_template(name: str) -> str:
    """Return the starter content for a blank document called ``name``."""

    stem = name[: -len(DOCUMENT_EXTENSION)] if name.endswith(DOCUMENT_EXTENSION) else name
    return f"# {stem}\n\nStart writing your markdown here..."


@dataclass(slots=True, eq=False)
class DocumentSession:
    """One open, independently editable document.

    ``saved_since_edit`` is only flipped by explicit saves and content
    commits. Moving through history leaves it untouched.
    """

    display_name: str
    history: ContentHistory = field(default_factory=ContentHistory)
    saved_since_edit: bool = True
    id: str = field(default_factory=_generate_session_id)
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        display_name: str,
        text: str,
        *,
        saved: bool = True,
        policy: HistoryPolicy | None = None,
        session_id: str | None = None,
    ) -> "DocumentSession":
        history = ContentHistory(text, policy=policy)
        session = cls(display_name=display_name, history=history, saved_since_edit=saved)
        if session_id:
            session.id = session_id
        return session

    @property
    def text(self) -> str:
        return self.history.current()

    @property
    def title(self) -> str:
        """Label for the tab strip, starred while there are unsaved edits."""

        return self.display_name if self.saved_since_edit else f"*{self.display_name}"

    def commit(self, text: str) -> int:
        cursor = self.history.commit(text)
        self.saved_since_edit = False
        return cursor

    def mark_saved(self) -> None:
        self.saved_since_edit = True

    def snapshot(self) -> dict[str, object]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "saved": self.saved_since_edit,
            "history_length": len(self.history),
            "cursor": self.history.cursor,
            "created_at": self.created_at.isoformat(),
        }
