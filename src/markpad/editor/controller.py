"""Host-facing controller wiring sessions, markup, persistence and export."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping

from ..errors import RemoteServiceError, ValidationError
from ..services.export import ExportPayload, build_export
from ..services.importers import FileCandidate
from ..services.memory_client import MemoryClient, format_search_results
from ..services.persistence import PersistenceScheduler
from .document_model import DEFAULT_DOCUMENT_NAME, DocumentSession
from .insertion import get_snippet
from .workspace import ImportBatchResult, SessionRegistry

__all__ = ["EditorController", "SHORTCUTS"]

LOGGER = logging.getLogger(__name__)

Notifier = Callable[[str, str, str], None]

# modifier + key -> snippet name, or "save"
SHORTCUTS: Mapping[str, str] = {
    "b": "bold",
    "i": "italic",
    "s": "save",
}


def _noop_notify(_title: str, _message: str, _level: str) -> None:
    return None


class EditorController:
    """Routes user commands to the active session.

    Every change of the active session's text reschedules persistence.
    Remote results only reach the buffer through :meth:`search_and_append`,
    which commits like any other edit.
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry | None = None,
        scheduler: PersistenceScheduler | None = None,
        memory_client: MemoryClient | None = None,
        notify: Notifier | None = None,
        on_save: Callable[[str], None] | None = None,
    ) -> None:
        self._registry = registry or SessionRegistry()
        self._scheduler = scheduler
        self._memory_client = memory_client
        self._notify = notify or _noop_notify
        self._on_save = on_save
        self._registry.add_content_listener(self._handle_content_changed)
        self._registry.add_active_listener(self._handle_active_changed)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def active_session(self) -> DocumentSession | None:
        return self._registry.active_session

    # ------------------------------------------------------------------
    # Session commands
    # ------------------------------------------------------------------
    def restore(self, seed: str | None = None) -> str | None:
        """Open the seeded or persisted draft when nothing is open yet."""

        if len(self._registry):
            return None
        if self._scheduler is not None:
            text = self._scheduler.load_initial(seed)
        else:
            text = seed or None
        if text is None:
            return None
        return self._registry.restore(DEFAULT_DOCUMENT_NAME, text)

    def new_document(self, name: str) -> str | None:
        try:
            session_id = self._registry.create_blank(name)
        except ValidationError as exc:
            self._notify("Name Required", str(exc), "error")
            return None
        session = self._registry.get(session_id)
        self._notify("New file created", f"{session.display_name} is ready to edit.", "info")
        return session_id

    def import_files(self, candidates: Iterable[FileCandidate]) -> ImportBatchResult:
        result = self._registry.import_batch(candidates)
        for session_id in result.accepted:
            session = self._registry.get(session_id)
            if session is not None:
                self._notify("File loaded", f"{session.display_name} is ready to edit.", "info")
        if result.warning:
            self._notify("Unsupported file type", result.warning, "error")
        return result

    def close(self, session_id: str) -> None:
        self._registry.close(session_id)

    def activate(self, session_id: str) -> None:
        self._registry.set_active(session_id)

    # ------------------------------------------------------------------
    # Editing commands
    # ------------------------------------------------------------------
    def edit(self, text: str) -> None:
        session = self.active_session
        if session is None:
            return
        self._registry.update_content(session.id, text)

    def apply_snippet(self, name: str, selection_start: int, selection_end: int) -> int | None:
        """Wrap the selection with the named markup and return the new caret."""

        session = self.active_session
        if session is None:
            return None
        result = get_snippet(name).apply(session.text, selection_start, selection_end)
        self._registry.update_content(session.id, result.text)
        return result.caret

    def undo(self) -> str | None:
        session = self.active_session
        return self._registry.undo(session.id) if session is not None else None

    def redo(self) -> str | None:
        session = self.active_session
        return self._registry.redo(session.id) if session is not None else None

    def handle_shortcut(
        self,
        key: str,
        *,
        modifier: bool = True,
        selection: tuple[int, int] = (0, 0),
    ) -> bool:
        """Dispatch modifier+b/i/s. Returns False for keys that are not bound."""

        if not modifier:
            return False
        action = SHORTCUTS.get((key or "").lower())
        if action is None:
            return False
        if action == "save":
            self.save()
        else:
            self.apply_snippet(action, *selection)
        return True

    def save(self) -> ExportPayload | None:
        """Export the active document, run the save callback and mark it saved."""

        session = self.active_session
        if session is None:
            return None
        payload = build_export(session.text, session.display_name)
        if self._on_save is not None:
            self._on_save(session.text)
        self._registry.mark_saved(session.id)
        self._notify("Document Saved", f"{payload.filename} has been saved successfully.", "info")
        return payload

    def persist_now(self) -> bool:
        """Write any pending draft immediately instead of waiting for the timer."""

        if self._scheduler is None:
            return False
        return self._scheduler.flush()

    # ------------------------------------------------------------------
    # Remote memory integration
    # ------------------------------------------------------------------
    async def upload(self) -> str | None:
        client = self._require_memory_client()
        session = self.active_session
        text = session.text if session is not None else ""
        try:
            document_id = await client.upload(text)
        except ValidationError as exc:
            self._notify("No Content", str(exc), "error")
            raise
        except RemoteServiceError as exc:
            self._notify("Upload Failed", str(exc), "error")
            raise
        self._notify("Uploaded Successfully", f"Document ID: {document_id}", "info")
        return document_id

    async def search_and_append(self, query: str) -> int:
        """Append formatted search hits to the active document; returns the hit count."""

        client = self._require_memory_client()
        session = self.active_session
        if session is None:
            raise ValidationError("No active document to append results to.")
        try:
            hits = await client.search(query)
        except ValidationError as exc:
            self._notify("Search Query Required", str(exc), "error")
            raise
        except RemoteServiceError as exc:
            self._notify("Search Failed", str(exc), "error")
            raise
        # the session may have been closed while the request was in flight
        if session.id not in self._registry:
            LOGGER.info("Dropping search results for closed session %s", session.id)
            return len(hits)
        appended = f"{session.text}\n\n{format_search_results(query.strip(), hits)}"
        self._registry.update_content(session.id, appended)
        self._notify("Search Complete", f"Found {len(hits)} memories and added them to your document!", "info")
        return len(hits)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_memory_client(self) -> MemoryClient:
        if self._memory_client is None:
            raise RemoteServiceError("Memory service is not configured.")
        return self._memory_client

    def _handle_content_changed(self, session: DocumentSession) -> None:
        if self._scheduler is None or session.id != self._registry.active_id:
            return
        self._scheduler.schedule(session.text)

    def _handle_active_changed(self, session: DocumentSession | None) -> None:
        # the draft follows whichever tab is in front; closing the last tab keeps it
        if self._scheduler is None or session is None:
            return
        self._scheduler.schedule(session.text)
