"""Source service — catalog CRUD and the update orchestration for chunks.

Edits are classified by the fields they touch:

* content-affecting (``url``, ``format``): chunks are deleted, the catalog
  row is updated, then re-ingestion is requested on a best-effort basis;
* metadata-only (``title``, ``document_type``, ``topic_domains``, ``ngb_id``,
  ``authority_level``): chunk metadata is patched in place;
* anything else (``enabled``, ``priority``, ``description``): catalog only.

Content-affecting wins when an update touches both sets.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.application.interfaces import ChunkRepository, IngestionQueue, SourceConfigRepository
from app.domain.entities.ingestion import IngestionJob
from app.domain.entities.source_config import Priority, SourceConfig, SourceFormat
from app.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from app.domain.url_identity import generate_id

logger = logging.getLogger(__name__)

CONTENT_AFFECTING_FIELDS = frozenset({"url", "format"})
METADATA_FIELDS = frozenset(
    {"title", "document_type", "topic_domains", "ngb_id", "authority_level"}
)
UPDATABLE_FIELDS = CONTENT_AFFECTING_FIELDS | METADATA_FIELDS | {
    "priority",
    "description",
    "enabled",
}

# Content hash placed on manually triggered jobs.
MANUAL_TRIGGER_HASH = "manual"


class SourceBulkAction(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"
    INGEST = "ingest"


class BulkCreateStatus(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class SourceUpdateResult:
    source: SourceConfig
    actions: dict[str, Any] = field(default_factory=dict)


@dataclass
class BulkActionTally:
    succeeded: int = 0
    failed: int = 0


@dataclass
class BulkCreateResult:
    id: str
    title: str
    status: BulkCreateStatus
    error: str | None = None


def build_chunk_metadata_patch(changes: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Translate catalog changes into (metadata JSON patch, denormalized columns)."""
    patch: dict[str, Any] = {}
    columns: dict[str, Any] = {}

    if "title" in changes:
        patch["documentTitle"] = changes["title"]
        columns["document_title"] = changes["title"]
    if "document_type" in changes:
        patch["documentType"] = changes["document_type"]
        columns["document_type"] = changes["document_type"]
    if "topic_domains" in changes:
        domains = list(changes["topic_domains"] or [])
        patch["topicDomain"] = domains[0] if domains else None
        patch["topicDomains"] = domains
        columns["topic_domain"] = domains[0] if domains else None
    if "ngb_id" in changes:
        patch["ngbId"] = changes["ngb_id"]
        columns["ngb_id"] = changes["ngb_id"]
    if "authority_level" in changes:
        patch["authorityLevel"] = changes["authority_level"]
        columns["authority_level"] = changes["authority_level"]

    return patch, columns


class SourceService:
    """Application service for the catalog admin API."""

    def __init__(
        self,
        source_repo: SourceConfigRepository,
        chunk_repo: ChunkRepository,
        queue: IngestionQueue | None = None,
    ):
        self._sources = source_repo
        self._chunks = chunk_repo
        self._queue = queue

    # ── Queries ──────────────────────────────────────────────────────

    async def list_sources(self, *, enabled_only: bool = False, ngb_id: str | None = None) -> list[SourceConfig]:
        if ngb_id:
            sources = await self._sources.get_by_ngb(ngb_id)
            return [s for s in sources if s.enabled] if enabled_only else sources
        if enabled_only:
            return await self._sources.get_all_enabled()
        return await self._sources.get_all()

    async def get_source(self, source_id: str) -> SourceConfig:
        source = await self._sources.get_by_id(source_id)
        if source is None:
            raise EntityNotFoundError("SourceConfig", source_id)
        return source

    # ── Commands ─────────────────────────────────────────────────────

    async def create_source(
        self,
        *,
        title: str,
        url: str,
        document_type: str = "Unknown",
        topic_domains: list[str] | None = None,
        format: str = SourceFormat.HTML.value,
        ngb_id: str | None = None,
        priority: str = Priority.MEDIUM.value,
        description: str = "",
        authority_level: str = "educational_guidance",
        enabled: bool = True,
        source_id: str | None = None,
    ) -> SourceConfig:
        """Add a catalog entry by admin input. The id defaults to the URL identity."""
        source = SourceConfig(
            id=source_id or generate_id(url),
            title=title,
            url=url,
            document_type=document_type,
            topic_domains=list(topic_domains or []),
            format=SourceFormat(format),
            ngb_id=ngb_id,
            priority=Priority(priority),
            description=description,
            authority_level=authority_level,
            enabled=enabled,
        )
        for existing in await self._sources.get_all():
            if existing.url == source.url:
                raise DuplicateEntityError("SourceConfig", "url", source.url)

        created = await self._sources.create(source)
        logger.info("Created source %s (%s)", created.id, created.url)
        return created

    async def update_source(self, source_id: str, changes: dict[str, Any]) -> SourceUpdateResult:
        """Apply *changes* and the matching chunk action.

        Raises:
            ValueError: *changes* is empty or names a field that cannot be updated.
            EntityNotFoundError: No such source.
        """
        if not changes:
            raise ValueError("No valid fields to update")
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        source = await self.get_source(source_id)
        keys = set(changes)
        actions: dict[str, Any] = {}

        if keys & CONTENT_AFFECTING_FIELDS:
            actions["chunks_deleted"] = await self._chunks.delete_by_source(source_id)
            updated = await self._sources.update(self._apply(source, changes))
            actions["re_ingestion_triggered"] = await self._try_trigger(updated)
            logger.info(
                "Content change on source %s: %d chunks deleted, re-ingestion=%s",
                source_id,
                actions["chunks_deleted"],
                actions["re_ingestion_triggered"],
            )
            return SourceUpdateResult(updated, actions)

        if keys & METADATA_FIELDS:
            patch, columns = build_chunk_metadata_patch(changes)
            actions["chunks_updated"] = await self._chunks.update_metadata_by_source(
                source_id, patch, columns
            )
            logger.info(
                "Metadata change on source %s: %d chunks patched",
                source_id,
                actions["chunks_updated"],
            )

        updated = await self._sources.update(self._apply(source, changes))
        return SourceUpdateResult(updated, actions)

    async def delete_source(self, source_id: str) -> int:
        """Delete chunks, then the catalog row. Returns the number of chunks removed."""
        await self.get_source(source_id)
        chunks_deleted = await self._chunks.delete_by_source(source_id)
        await self._sources.delete(source_id)
        logger.info("Deleted source %s (%d chunks)", source_id, chunks_deleted)
        return chunks_deleted

    async def trigger_ingestion(self, source_id: str) -> IngestionJob:
        """Queue a manual re-ingestion.

        Raises:
            EntityNotFoundError: No such source.
            RuntimeError: No ingestion queue is configured.
        """
        source = await self.get_source(source_id)
        return await self._enqueue(source)

    # ── Bulk ─────────────────────────────────────────────────────────

    async def bulk_action(self, action: SourceBulkAction, ids: list[str]) -> BulkActionTally:
        """Enable, disable or queue many sources; one item's failure never stops the batch.

        Raises:
            ValueError: *ids* is empty.
            RuntimeError: ``ingest`` was requested but no queue is configured.
        """
        if not ids:
            raise ValueError("At least one ID is required")
        if action == SourceBulkAction.INGEST and self._queue is None:
            raise RuntimeError("Ingestion queue not configured")

        tally = BulkActionTally()
        for source_id in ids:
            try:
                if action == SourceBulkAction.INGEST:
                    await self.trigger_ingestion(source_id)
                else:
                    source = await self.get_source(source_id)
                    source.enabled = action == SourceBulkAction.ENABLE
                    await self._sources.update(source)
                tally.succeeded += 1
            except Exception as exc:
                logger.warning("Bulk %s failed for %s: %s", action.value, source_id, exc)
                tally.failed += 1

        logger.info("Bulk %s: %d succeeded, %d failed", action.value, tally.succeeded, tally.failed)
        return tally

    async def bulk_create(self, sources: list[dict[str, Any]]) -> list[BulkCreateResult]:
        """Create many catalog entries from ``create_source`` keyword sets.

        Entries whose id or URL already exists are reported as duplicates.
        """
        results: list[BulkCreateResult] = []
        for fields in sources:
            source_id = fields.get("source_id") or generate_id(fields["url"])
            title = fields["title"]
            try:
                created = await self.create_source(**{**fields, "source_id": source_id})
                results.append(BulkCreateResult(created.id, title, BulkCreateStatus.CREATED))
            except DuplicateEntityError:
                results.append(
                    BulkCreateResult(
                        source_id, title, BulkCreateStatus.DUPLICATE, "Source already exists"
                    )
                )
            except Exception as exc:
                logger.error("Bulk create failed for %s: %s", source_id, exc)
                results.append(
                    BulkCreateResult(source_id, title, BulkCreateStatus.FAILED, "Internal error")
                )
        return results

    # ── Internals ────────────────────────────────────────────────────

    async def _enqueue(self, source: SourceConfig) -> IngestionJob:
        if self._queue is None:
            raise RuntimeError("Ingestion queue not configured")
        job = IngestionJob(source=source.to_message_payload(), content_hash=MANUAL_TRIGGER_HASH)
        return await self._queue.enqueue(job)

    async def _try_trigger(self, source: SourceConfig) -> bool:
        try:
            await self._enqueue(source)
            return True
        except Exception as exc:
            logger.warning("Re-ingestion trigger for %s failed: %s", source.id, exc)
            return False

    @staticmethod
    def _apply(source: SourceConfig, changes: dict[str, Any]) -> SourceConfig:
        for key, value in changes.items():
            if key == "format":
                value = SourceFormat(value)
            elif key == "priority":
                value = Priority(value)
            elif key == "topic_domains":
                value = list(value or [])
            setattr(source, key, value)
        return source
