"""Flat-file catalog — a JSON document as an alternative to the catalog tables.

Layout::

    {"sources": [{"id": "...", "title": "...", "url": "...", "documentType": "...", ...}]}

A bare top-level list is accepted on read. Writes go to a temporary file
that then replaces the catalog, so readers never see a half-written file.
"""

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.application.interfaces.source_config_repository import SourceConfigRepository
from app.domain.entities.source_config import Priority, SourceConfig, SourceFormat
from app.domain.exceptions import DuplicateEntityError, EntityNotFoundError

logger = logging.getLogger(__name__)

_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def source_to_json(s: SourceConfig) -> dict[str, Any]:
    return {
        "id": s.id,
        "title": s.title,
        "url": s.url,
        "documentType": s.document_type,
        "topicDomains": list(s.topic_domains),
        "format": s.format.value,
        "ngbId": s.ngb_id,
        "priority": s.priority.value,
        "description": s.description,
        "authorityLevel": s.authority_level,
        "enabled": s.enabled,
        "lastIngestedAt": _iso(s.last_ingested_at),
        "lastContentHash": s.last_content_hash,
        "consecutiveFailures": s.consecutive_failures,
        "lastError": s.last_error,
        "storageKey": s.storage_key,
        "storageVersionId": s.storage_version_id,
        "createdAt": _iso(s.created_at),
        "updatedAt": _iso(s.updated_at),
    }


def source_from_json(data: dict[str, Any]) -> SourceConfig:
    now = datetime.now(timezone.utc)
    return SourceConfig(
        id=data["id"],
        title=data["title"],
        url=data["url"],
        document_type=data.get("documentType") or "Unknown",
        topic_domains=list(data.get("topicDomains") or []),
        format=SourceFormat(data.get("format") or SourceFormat.HTML.value),
        ngb_id=data.get("ngbId"),
        priority=Priority(data.get("priority") or Priority.MEDIUM.value),
        description=data.get("description") or "",
        authority_level=data.get("authorityLevel") or "educational_guidance",
        enabled=data.get("enabled", True),
        last_ingested_at=_parse_dt(data.get("lastIngestedAt")),
        last_content_hash=data.get("lastContentHash"),
        consecutive_failures=int(data.get("consecutiveFailures") or 0),
        last_error=data.get("lastError"),
        storage_key=data.get("storageKey"),
        storage_version_id=data.get("storageVersionId"),
        created_at=_parse_dt(data.get("createdAt")) or now,
        updated_at=_parse_dt(data.get("updatedAt")) or now,
    )


class JsonFileSourceConfigRepository(SourceConfigRepository):
    """Catalog stored in one JSON file.

    All instances pointing at the same path share one lock, so concurrent
    read-modify-write cycles inside the process are serialized.
    """

    _locks: dict[str, asyncio.Lock] = {}

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = self._locks.setdefault(str(self._path.resolve()), asyncio.Lock())

    # ── Queries ──────────────────────────────────────────────────────

    async def get_by_id(self, source_id: str) -> SourceConfig | None:
        async with self._lock:
            return self._read().get(source_id)

    async def get_all(self) -> list[SourceConfig]:
        async with self._lock:
            return list(self._read().values())

    async def get_all_enabled(self) -> list[SourceConfig]:
        async with self._lock:
            enabled = [s for s in self._read().values() if s.enabled]
        return sorted(enabled, key=lambda s: _PRIORITY_RANK[s.priority])

    async def get_by_ngb(self, ngb_id: str) -> list[SourceConfig]:
        async with self._lock:
            matches = [s for s in self._read().values() if s.ngb_id == ngb_id]
        return sorted(matches, key=lambda s: _PRIORITY_RANK[s.priority])

    # ── Commands ─────────────────────────────────────────────────────

    async def create(self, source: SourceConfig) -> SourceConfig:
        async with self._lock:
            sources = self._read()
            if source.id in sources:
                raise DuplicateEntityError("SourceConfig", "id", source.id)
            sources[source.id] = source
            self._write(sources)
        return source

    async def update(self, source: SourceConfig) -> SourceConfig:
        async with self._lock:
            sources = self._read()
            if source.id not in sources:
                raise EntityNotFoundError("SourceConfig", source.id)
            source.updated_at = datetime.now(timezone.utc)
            sources[source.id] = source
            self._write(sources)
        return source

    async def delete(self, source_id: str) -> bool:
        async with self._lock:
            sources = self._read()
            if sources.pop(source_id, None) is None:
                return False
            self._write(sources)
        return True

    async def mark_success(
        self,
        source_id: str,
        content_hash: str,
        *,
        storage_key: str | None = None,
        storage_version_id: str | None = None,
    ) -> None:
        async with self._lock:
            sources = self._read()
            source = sources.get(source_id)
            if source is None:
                raise EntityNotFoundError("SourceConfig", source_id)
            source.mark_success(
                content_hash, storage_key=storage_key, storage_version_id=storage_version_id
            )
            self._write(sources)

    async def mark_failure(self, source_id: str, error: str) -> None:
        async with self._lock:
            sources = self._read()
            source = sources.get(source_id)
            if source is None:
                raise EntityNotFoundError("SourceConfig", source_id)
            source.mark_failure(error)
            self._write(sources)

    # ── File I/O ─────────────────────────────────────────────────────

    def _read(self) -> dict[str, SourceConfig]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        entries = data if isinstance(data, list) else data.get("sources", [])
        return {entry["id"]: source_from_json(entry) for entry in entries}

    def _write(self, sources: dict[str, SourceConfig]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        payload = {"sources": [source_to_json(s) for s in sources.values()]}
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self._path)
        logger.debug("Wrote %d catalog entries to %s", len(sources), self._path)
