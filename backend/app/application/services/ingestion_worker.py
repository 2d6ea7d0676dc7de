"""Ingestion worker — turns one queued job into stored, deduplicated chunks.

fetch → extract → clean → split → section titles → dedup → replace chunks

Chunk writes delete-then-rewrite, so redelivering a job is harmless.
"""

import logging
import time
from typing import Any

from app.application.interfaces import (
    ChunkRepository,
    ContentFetcher,
    IngestionQueue,
    IngestionStatusRepository,
    SourceConfigRepository,
    TextExtractor,
)
from app.application.services.chunk_deduplication import deduplicate_chunks
from app.application.services.source_service import MANUAL_TRIGGER_HASH
from app.application.services.text_splitter import (
    TextSplitter,
    clean_text,
    extract_section_title,
)
from app.domain.entities.document_chunk import DocumentChunk
from app.domain.entities.ingestion import IngestionJob
from app.domain.entities.source_config import SourceFormat
from app.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("IngestionWorker")


def chunk_metadata(source: dict[str, Any], section_title: str | None) -> dict[str, Any]:
    """Denormalized catalog fields stored on every chunk of a source."""
    topic_domains = list(source.get("topicDomains") or [])
    return {
        "sourceId": source["id"],
        "documentTitle": source.get("title"),
        "documentType": source.get("documentType"),
        "topicDomain": topic_domains[0] if topic_domains else None,
        "topicDomains": topic_domains,
        "ngbId": source.get("ngbId"),
        "authorityLevel": source.get("authorityLevel"),
        "sourceUrl": source.get("url"),
        "sectionTitle": section_title,
    }


class IngestionWorker:
    """Processes ingestion jobs claimed from the queue.

    ``process_job`` raises on any failure; the consumer then rolls back and
    calls ``record_failure`` so the failure bookkeeping lands in a clean
    transaction.
    """

    def __init__(
        self,
        source_repo: SourceConfigRepository,
        chunk_repo: ChunkRepository,
        status_repo: IngestionStatusRepository,
        queue: IngestionQueue,
        fetcher: ContentFetcher,
        extractor: TextExtractor,
        splitter: TextSplitter | None = None,
        *,
        dedup_threshold: float = 0.9,
    ):
        self._sources = source_repo
        self._chunks = chunk_repo
        self._status = status_repo
        self._queue = queue
        self._fetcher = fetcher
        self._extractor = extractor
        self._splitter = splitter or TextSplitter()
        self._dedup_threshold = dedup_threshold

    async def process_job(self, job: IngestionJob) -> int:
        """Ingest the job's source. Returns the number of chunks stored."""
        start = time.monotonic()
        source = job.source
        source_id = job.source_id
        plog.step_start(PipelineStage.FETCH, f"Ingesting {source.get('title') or source_id}", url=source["url"])

        fetched = await self._fetcher.fetch(source["url"])
        content_hash = fetched.content_hash

        if job.content_hash != MANUAL_TRIGGER_HASH:
            if await self._status.get_last_content_hash(source_id) == content_hash:
                count = await self._chunks.count_by_source(source_id)
                plog.detail(f"{source_id} unchanged since last ingestion — keeping {count} chunks")
                await self._sources.mark_success(source_id, content_hash)
                await self._status.record_completed(source_id, content_hash, count)
                await self._queue.mark_completed(job)
                return count

        source_format = SourceFormat(source.get("format") or SourceFormat.HTML.value)
        text = clean_text(await self._extractor.extract(fetched.content, source_format))
        if not text:
            raise ValueError(f"No text extracted from {source['url']}")

        pieces = self._splitter.split(text)
        chunks = [
            DocumentChunk(
                source_id=source_id,
                position=i,
                content=piece,
                metadata=chunk_metadata(source, extract_section_title(piece)),
            )
            for i, piece in enumerate(pieces)
        ]

        with plog.timed_step(PipelineStage.DEDUP, f"Deduplicating {len(chunks)} chunks"):
            unique = deduplicate_chunks(chunks, self._dedup_threshold)
        unique.sort(key=lambda c: c.position)
        for position, chunk in enumerate(unique):
            chunk.position = position

        stored = await self._chunks.replace_for_source(source_id, unique)
        await self._sources.mark_success(source_id, content_hash)
        await self._status.record_completed(source_id, content_hash, stored)
        await self._queue.mark_completed(job)

        plog.step_complete(
            PipelineStage.COMPLETE,
            f"Ingested {source_id}",
            chunks=stored,
            duplicates=len(chunks) - len(unique),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return stored

    async def record_failure(self, job: IngestionJob, error: str) -> None:
        """Log the failure against the source, the status log and the job."""
        plog.step_error(PipelineStage.ERROR, f"Ingestion failed for {job.source_id}: {error}")
        await self._status.record_failed(job.source_id, error)
        await self._sources.mark_failure(job.source_id, error)
        await self._queue.mark_failed(job, error)

    async def handle(self, job: IngestionJob) -> bool:
        """Process one job and record its failure in the same unit of work.

        Returns True on success.
        """
        try:
            await self.process_job(job)
            return True
        except Exception as exc:
            await self.record_failure(job, str(exc))
            return False
