"""Session registry managing multiple open documents (tabs)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Protocol

from ..errors import UnsupportedInputError, ValidationError
from ..services.importers import FileCandidate, FileImporter, is_supported, unsupported_warning
from .document_model import DocumentSession, document_template, normalize_document_name
from .history import HistoryPolicy

__all__ = ["ActiveSessionListener", "ContentListener", "ImportBatchResult", "SessionRegistry"]

LOGGER = logging.getLogger(__name__)


class ActiveSessionListener(Protocol):
    """Callback signature fired whenever the active session changes."""

    def __call__(self, session: Optional[DocumentSession]) -> None:  # pragma: no cover - protocol
        ...


class ContentListener(Protocol):
    """Callback fired after a session's current text changes."""

    def __call__(self, session: DocumentSession) -> None:  # pragma: no cover - protocol
        ...


@dataclass(slots=True)
class ImportBatchResult:
    """Outcome of importing several files at once."""

    accepted: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    @property
    def warning(self) -> str | None:
        if not self.rejected:
            return None
        return unsupported_warning(self.rejected)


class SessionRegistry:
    """Ordered collection of document sessions with one active session."""

    def __init__(
        self,
        *,
        history_policy: HistoryPolicy | None = None,
        importer: FileImporter | None = None,
    ) -> None:
        self._history_policy = history_policy
        self._importer = importer or FileImporter()
        self._sessions: Dict[str, DocumentSession] = {}
        self._order: List[str] = []
        self._active_id: str | None = None
        self._active_listeners: List[ActiveSessionListener] = []
        self._content_listeners: List[ContentListener] = []

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def create_blank(self, name: str) -> str:
        """Create a templated document called ``name`` and activate it."""

        display_name = normalize_document_name(name)
        session = DocumentSession.create(
            display_name,
            document_template(display_name),
            saved=True,
            policy=self._history_policy,
        )
        self._append(session)
        LOGGER.debug("Created blank session %s (%s)", session.id, display_name)
        return session.id

    def import_file(self, name: str, mime_type_or_extension: str | None, raw_text: str) -> str:
        """Open imported text as a new, saved, active session."""

        if not is_supported(name, mime_type_or_extension):
            raise UnsupportedInputError(name, accepted=self._importer.supported_extensions())
        display_name = name.strip()
        if not display_name:
            raise ValidationError("Imported file name is required")
        session = DocumentSession.create(
            display_name,
            raw_text,
            saved=True,
            policy=self._history_policy,
        )
        self._append(session)
        LOGGER.debug("Imported %s as session %s", display_name, session.id)
        return session.id

    def import_batch(self, candidates: Iterable[FileCandidate]) -> ImportBatchResult:
        """Import every supported candidate; rejected ones never stop the batch."""

        result = ImportBatchResult()
        for candidate in candidates:
            try:
                text = self._importer.read(candidate)
                session_id = self.import_file(candidate.name, candidate.mime_type, text)
            except (UnsupportedInputError, ValidationError) as exc:
                LOGGER.info("Skipping import of %s: %s", candidate.name, exc)
                result.rejected.append(candidate.name)
                continue
            result.accepted.append(session_id)
        return result

    def restore(self, display_name: str, text: str, *, saved: bool = True) -> str:
        """Add a session seeded with ``text`` (used for cold-start restore)."""

        session = DocumentSession.create(
            display_name, text, saved=saved, policy=self._history_policy
        )
        self._append(session)
        return session.id

    def close(self, session_id: str) -> DocumentSession | None:
        """Remove the session; activation falls to its left neighbour, else right."""

        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        index = self._order.index(session_id)
        self._order.pop(index)

        if self._active_id == session_id:
            if not self._order:
                self._active_id = None
            elif index > 0:
                self._active_id = self._order[index - 1]
            else:
                self._active_id = self._order[0]
            self._notify_active_listeners()
        LOGGER.debug("Closed session %s", session_id)
        return session

    def set_active(self, session_id: str) -> None:
        if session_id not in self._sessions or self._active_id == session_id:
            return
        self._active_id = session_id
        self._notify_active_listeners()

    def rename(self, session_id: str, name: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        stripped = (name or "").strip()
        if not stripped:
            raise ValidationError("Document name is required")
        session.display_name = stripped

    # ------------------------------------------------------------------
    # Content operations
    # ------------------------------------------------------------------
    def update_content(self, session_id: str, new_text: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.commit(new_text)
        self._notify_content_listeners(session)

    def undo(self, session_id: str) -> str | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if not session.history.can_undo():
            return session.text
        text = session.history.undo()
        self._notify_content_listeners(session)
        return text

    def redo(self, session_id: str) -> str | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if not session.history.can_redo():
            return session.text
        text = session.history.redo()
        self._notify_content_listeners(session)
        return text

    def mark_saved(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.mark_saved()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_active_listener(self, listener: ActiveSessionListener) -> None:
        self._active_listeners.append(listener)

    def remove_active_listener(self, listener: ActiveSessionListener) -> None:
        if listener in self._active_listeners:
            self._active_listeners.remove(listener)

    def add_content_listener(self, listener: ContentListener) -> None:
        self._content_listeners.append(listener)

    def remove_content_listener(self, listener: ContentListener) -> None:
        if listener in self._content_listeners:
            self._content_listeners.remove(listener)

    def _notify_active_listeners(self) -> None:
        session = self.active_session
        for listener in list(self._active_listeners):
            listener(session)

    def _notify_content_listeners(self, session: DocumentSession) -> None:
        for listener in list(self._content_listeners):
            listener(session)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active_session(self) -> DocumentSession | None:
        if self._active_id is None:
            return None
        return self._sessions.get(self._active_id)

    @property
    def sessions(self) -> tuple[DocumentSession, ...]:
        return tuple(self._sessions[session_id] for session_id in self._order)

    def session_ids(self) -> tuple[str, ...]:
        return tuple(self._order)

    def get(self, session_id: str) -> DocumentSession | None:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[DocumentSession]:
        for session_id in self._order:
            yield self._sessions[session_id]

    def serialize_state(self) -> dict[str, object]:
        return {
            "sessions": [session.snapshot() for session in self],
            "active_id": self._active_id,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _append(self, session: DocumentSession) -> None:
        self._sessions[session.id] = session
        self._order.append(session.id)
        self._active_id = session.id
        self._notify_active_listeners()
