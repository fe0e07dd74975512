"""Async client for the remote memory (upload/search) service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

import httpx

from ..errors import RemoteServiceError, ValidationError

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_DOMAIN",
    "MemoryClient",
    "MemoryConfig",
    "SearchHit",
    "format_search_results",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.supermemory.ai"
DEFAULT_DOMAIN = "console.supermemory.ai"
_UPLOAD_PATH = "/v3/documents"
_SEARCH_PATH = "/v3/search"
_SOURCE_TAG = "markdown-editor"
_DOCUMENT_TITLE = "Markdown Document"
_SEARCH_LIMIT = 5


@dataclass(slots=True)
class MemoryConfig:
    """Credentials and endpoint for the memory service."""

    api_key: str = ""
    domain: str = DEFAULT_DOMAIN
    base_url: str = DEFAULT_BASE_URL
    timeout: float | None = None

    def is_complete(self) -> bool:
        return bool(self.api_key.strip() and self.domain.strip())


@dataclass(slots=True)
class SearchHit:
    title: str | None
    score: float = 0.0
    snippet: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SearchHit":
        chunks = payload.get("chunks") or []
        snippet = None
        if isinstance(chunks, Sequence) and chunks and isinstance(chunks[0], Mapping):
            snippet = chunks[0].get("content")
        try:
            score = float(payload.get("score") or 0.0)
        except (TypeError, ValueError):
            score = 0.0
        metadata = payload.get("metadata")
        return cls(
            title=payload.get("title") or None,
            score=score,
            snippet=snippet or None,
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )


def format_search_results(query: str, hits: Sequence[SearchHit]) -> str:
    """Render ``hits`` as the Markdown block appended to the document."""

    lines = [
        f'## Search Results for "{query}"',
        "",
        f"### Found {len(hits)} memories in Supermemory:",
        "",
    ]
    if not hits:
        lines.append(
            f'No memories found for "{query}". Try different keywords or check your spelling.'
        )
        lines.append("")
        return "\n".join(lines)
    for index, hit in enumerate(hits, start=1):
        lines.extend(
            [
                f"#### {index}. {hit.title or 'Untitled Memory'}",
                f"**Score**: {hit.score * 100:.1f}%",
                "",
                hit.snippet or "No content available",
                "",
                "---",
                "",
            ]
        )
    return "\n".join(lines)


class MemoryClient:
    """Upload documents to, and search, the remote memory service.

    No retries are attempted; every failure surfaces as
    :class:`RemoteServiceError`.
    """

    def __init__(
        self,
        config: MemoryConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Any | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def config(self) -> MemoryConfig:
        return self._config

    async def upload(self, text: str, *, title: str = _DOCUMENT_TITLE) -> str | None:
        """Send ``text`` with its metadata and return the remote document id."""

        if not text.strip():
            raise ValidationError("Please write some content before uploading.")
        payload = {
            "content": text,
            "metadata": {
                "source": _SOURCE_TAG,
                "title": title,
                "timestamp": self._clock().isoformat(),
            },
        }
        data = await self._request("POST", _UPLOAD_PATH, json=payload)
        document_id = data.get("id") if isinstance(data, Mapping) else None
        LOGGER.info("Uploaded document to memory service (id=%s)", document_id)
        return str(document_id) if document_id is not None else None

    async def search(self, query: str, *, limit: int = _SEARCH_LIMIT) -> list[SearchHit]:
        cleaned = (query or "").strip()
        if not cleaned:
            raise ValidationError("Please enter a search term.")
        data = await self._request("GET", _SEARCH_PATH, params={"q": cleaned, "limit": limit})
        results = data.get("results") if isinstance(data, Mapping) else None
        if not isinstance(results, list):
            return []
        hits = [SearchHit.from_payload(item) for item in results if isinstance(item, Mapping)]
        LOGGER.debug("Memory search for %r returned %d hits", cleaned, len(hits))
        return hits

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if not self._config.is_complete():
            raise RemoteServiceError("Memory service API key and domain are required.")
        headers = {"Authorization": f"Bearer {self._config.api_key}"}
        try:
            async with httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            LOGGER.warning("Memory service request failed: %s", exc)
            raise RemoteServiceError(f"Request to memory service failed: {exc}") from exc
        if response.is_error:
            raise RemoteServiceError(
                f"HTTP error! status: {response.status_code}", status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                "Memory service returned malformed JSON", status_code=response.status_code
            ) from exc
