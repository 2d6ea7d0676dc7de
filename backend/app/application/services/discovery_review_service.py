"""Discovery review service — reviewer actions and promotion into the catalog.

Promotion ("send to sources") is idempotent: a discovery that already
carries a ``source_config_id`` is reported as ``already_linked``, and a
discovery whose URL is already in the catalog is linked to that entry
(``duplicate_url``) instead of creating a second one. Bulk runs load the
catalog URLs once and extend that set as entries are created. Two bulk
runs racing each other can still both create an entry for the same URL;
there is no cross-run lock.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.application.interfaces import DiscoveredSourceRepository, SourceConfigRepository
from app.domain.entities.discovered_source import DiscoveredSource, DiscoveryStatus
from app.domain.entities.source_config import (
    AuthorityLevel,
    Priority,
    SourceConfig,
    SourceFormat,
)
from app.domain.exceptions import EntityNotFoundError
from app.domain.url_identity import normalize_url

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    SEND_TO_SOURCES = "send_to_sources"


class PromotionStatus(str, Enum):
    CREATED = "created"
    ALREADY_LINKED = "already_linked"
    DUPLICATE_URL = "duplicate_url"
    NOT_APPROVED = "not_approved"
    FAILED = "failed"


@dataclass
class PromotionResult:
    discovery_id: str
    status: PromotionStatus
    source_config_id: str | None = None
    error: str | None = None


@dataclass
class ReviewTally:
    """Outcome counts of a bulk approve / reject."""

    succeeded: int = 0
    failed: int = 0


@dataclass
class PromotionTally:
    """Outcome counts of a bulk promotion."""

    created: int = 0
    already_linked: int = 0
    duplicate_url: int = 0
    not_approved: int = 0
    failed: int = 0
    results: list[PromotionResult] = field(default_factory=list)

    def add(self, result: PromotionResult) -> None:
        self.results.append(result)
        attr = result.status.value
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return len(self.results)


class DiscoveryReviewService:
    """Application service behind the admin review API and auto-promotion."""

    def __init__(
        self,
        discovery_repo: DiscoveredSourceRepository,
        source_repo: SourceConfigRepository,
    ):
        self._discoveries = discovery_repo
        self._sources = source_repo

    # ── Queries ──────────────────────────────────────────────────────

    async def list_discoveries(
        self,
        *,
        status: DiscoveryStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[DiscoveredSource], bool]:
        """Return one page and whether more rows exist (fetches ``limit + 1``)."""
        rows = await self._discoveries.list_discoveries(
            status=status, limit=limit + 1, offset=offset
        )
        return rows[:limit], len(rows) > limit

    async def get_discovery(self, discovery_id: str) -> DiscoveredSource:
        discovery = await self._discoveries.get_by_id(discovery_id)
        if discovery is None:
            raise EntityNotFoundError("DiscoveredSource", discovery_id)
        return discovery

    # ── Reviewer actions ─────────────────────────────────────────────

    async def approve(self, discovery_id: str, reviewed_by: str) -> DiscoveredSource:
        discovery = await self.get_discovery(discovery_id)
        discovery.approve(reviewed_by)
        logger.info("Discovery %s approved by %s", discovery_id, reviewed_by)
        return await self._discoveries.update(discovery)

    async def reject(self, discovery_id: str, reviewed_by: str, reason: str) -> DiscoveredSource:
        """Reject a discovery.

        Raises:
            ValueError: *reason* is empty.
            InvalidStatusTransitionError: The discovery is already approved.
        """
        if not reason or not reason.strip():
            raise ValueError("Reason is required when rejecting")
        discovery = await self.get_discovery(discovery_id)
        discovery.reject(reviewed_by, reason.strip())
        logger.info("Discovery %s rejected by %s: %s", discovery_id, reviewed_by, reason)
        return await self._discoveries.update(discovery)

    async def bulk_review(
        self,
        action: ReviewAction,
        ids: list[str],
        reviewed_by: str,
        reason: str | None = None,
    ) -> ReviewTally:
        """Approve or reject many discoveries; one item's failure never stops the batch."""
        if action == ReviewAction.SEND_TO_SOURCES:
            raise ValueError("Use bulk_send_to_sources for promotion")
        if not ids:
            raise ValueError("At least one ID is required")
        if action == ReviewAction.REJECT and not (reason and reason.strip()):
            raise ValueError("Reason is required when rejecting")

        tally = ReviewTally()
        for discovery_id in ids:
            try:
                if action == ReviewAction.APPROVE:
                    await self.approve(discovery_id, reviewed_by)
                else:
                    await self.reject(discovery_id, reviewed_by, reason)  # type: ignore[arg-type]
                tally.succeeded += 1
            except Exception as exc:
                logger.warning("Bulk %s failed for %s: %s", action.value, discovery_id, exc)
                tally.failed += 1

        logger.info(
            "Bulk %s: %d succeeded, %d failed", action.value, tally.succeeded, tally.failed
        )
        return tally

    # ── Promotion ────────────────────────────────────────────────────

    async def send_to_sources(self, discovery_id: str) -> PromotionResult:
        """Promote one discovery into the catalog."""
        discovery = await self.get_discovery(discovery_id)
        existing_urls = await self._load_catalog_urls()
        return await self._promote(discovery, existing_urls)

    async def bulk_send_to_sources(self, ids: list[str] | None = None) -> PromotionTally:
        """Promote the given discoveries, or every approved one when *ids* is None."""
        existing_urls = await self._load_catalog_urls()
        tally = PromotionTally()

        if ids is None:
            candidates = await self._all_approved()
        else:
            candidates = []
            for discovery_id in ids:
                discovery = await self._discoveries.get_by_id(discovery_id)
                if discovery is None:
                    tally.add(
                        PromotionResult(
                            discovery_id, PromotionStatus.FAILED, error="Discovery not found"
                        )
                    )
                    continue
                candidates.append(discovery)

        for discovery in candidates:
            tally.add(await self._promote(discovery, existing_urls))

        logger.info(
            "Bulk promotion: created=%d already_linked=%d duplicate_url=%d "
            "not_approved=%d failed=%d",
            tally.created,
            tally.already_linked,
            tally.duplicate_url,
            tally.not_approved,
            tally.failed,
        )
        return tally

    async def promote_approved_since(self, since: datetime) -> PromotionTally:
        """Promote discoveries approved at or after *since* (coordinator step 1)."""
        approved = await self._discoveries.get_approved_since(since)
        existing_urls = await self._load_catalog_urls()
        tally = PromotionTally()
        for discovery in approved:
            tally.add(await self._promote(discovery, existing_urls))
        return tally

    async def _promote(
        self, discovery: DiscoveredSource, existing_urls: dict[str, str]
    ) -> PromotionResult:
        """Create (or link) the catalog entry for one discovery.

        *existing_urls* maps normalized catalog URL → source id and is
        extended in place when an entry is created.
        """
        if discovery.status != DiscoveryStatus.APPROVED:
            return PromotionResult(discovery.id, PromotionStatus.NOT_APPROVED)

        if discovery.source_config_id:
            return PromotionResult(
                discovery.id, PromotionStatus.ALREADY_LINKED, discovery.source_config_id
            )

        try:
            by_id = await self._sources.get_by_id(discovery.id)
            if by_id is not None:
                await self._link(discovery, by_id.id)
                existing_urls.setdefault(normalize_url(by_id.url), by_id.id)
                return PromotionResult(discovery.id, PromotionStatus.ALREADY_LINKED, by_id.id)

            url_key = normalize_url(discovery.url)
            existing_id = existing_urls.get(url_key)
            if existing_id is not None:
                await self._link(discovery, existing_id)
                return PromotionResult(discovery.id, PromotionStatus.DUPLICATE_URL, existing_id)

            source = await self._sources.create(self._source_from_discovery(discovery))
            existing_urls[url_key] = source.id
            await self._link(discovery, source.id)
            logger.info("Promoted discovery %s → source %s (%s)", discovery.id, source.id, source.url)
            return PromotionResult(discovery.id, PromotionStatus.CREATED, source.id)

        except Exception as exc:
            logger.error("Promotion of discovery %s failed: %s", discovery.id, exc)
            return PromotionResult(discovery.id, PromotionStatus.FAILED, error=str(exc))

    async def _link(self, discovery: DiscoveredSource, source_config_id: str) -> None:
        discovery.link_to_source_config(source_config_id)
        await self._discoveries.update(discovery)

    @staticmethod
    def _source_from_discovery(discovery: DiscoveredSource) -> SourceConfig:
        return SourceConfig(
            id=discovery.id,
            title=discovery.title,
            url=discovery.url,
            document_type=discovery.document_type or "Unknown",
            topic_domains=list(discovery.topic_domains),
            format=SourceFormat(discovery.format or SourceFormat.HTML.value),
            ngb_id=discovery.ngb_id,
            priority=Priority(discovery.priority or Priority.MEDIUM.value),
            description=discovery.description or "",
            authority_level=discovery.authority_level or AuthorityLevel.EDUCATIONAL_GUIDANCE.value,
        )

    async def _load_catalog_urls(self) -> dict[str, str]:
        return {normalize_url(s.url): s.id for s in await self._sources.get_all()}

    async def _all_approved(self) -> list[DiscoveredSource]:
        approved: list[DiscoveredSource] = []
        offset = 0
        while True:
            page = await self._discoveries.list_discoveries(
                status=DiscoveryStatus.APPROVED, limit=_PAGE_SIZE, offset=offset
            )
            approved.extend(page)
            if len(page) < _PAGE_SIZE:
                return approved
            offset += _PAGE_SIZE
