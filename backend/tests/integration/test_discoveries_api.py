"""API tests for the discovery review endpoints, wired to in-memory repositories."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.application.services.discovery_review_service import DiscoveryReviewService
from app.domain.entities import DiscoveredSource, DiscoveryMethod, DiscoveryStatus
from app.infrastructure.dependencies import get_discovery_review_service
from app.main import app
from tests.fakes import FakeDiscoveredSourceRepository, FakeSourceConfigRepository


def _discovery(discovery_id: str, url: str) -> DiscoveredSource:
    return DiscoveredSource(
        id=discovery_id,
        url=url,
        title=discovery_id.title(),
        discovery_method=DiscoveryMethod.MAP,
        discovered_from="usaswimming.org",
        status=DiscoveryStatus.PENDING_CONTENT,
        document_type="Policy",
        topic_domains=["safesport"],
    )


@pytest.fixture
def repos():
    discoveries = FakeDiscoveredSourceRepository(
        [
            _discovery("bylaws", "https://usaswimming.org/bylaws"),
            _discovery("rulebook", "https://usaswimming.org/rulebook"),
        ]
    )
    sources = FakeSourceConfigRepository()

    async def _override():
        yield DiscoveryReviewService(discoveries, sources)

    app.dependency_overrides[get_discovery_review_service] = _override
    yield discoveries, sources
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_list_and_filter_discoveries(repos):
    async with _client() as client:
        response = await client.get("/api/v1/discoveries/", params={"limit": 1})
        filtered = await client.get("/api/v1/discoveries/", params={"status": "approved"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["has_more"] is True
    assert filtered.json()["discoveries"] == []


@pytest.mark.asyncio
async def test_get_missing_discovery_returns_404(repos):
    async with _client() as client:
        response = await client.get("/api/v1/discoveries/nope")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_approve_records_reviewer_header(repos):
    async with _client() as client:
        response = await client.patch(
            "/api/v1/discoveries/bylaws",
            json={"action": "approve"},
            headers={"X-Reviewed-By": "jordan"},
        )

    assert response.status_code == 200
    discovery = response.json()["discovery"]
    assert discovery["status"] == "approved"
    assert discovery["reviewed_by"] == "jordan"


@pytest.mark.asyncio
async def test_reject_requires_reason(repos):
    async with _client() as client:
        missing = await client.patch("/api/v1/discoveries/bylaws", json={"action": "reject"})
        rejected = await client.patch(
            "/api/v1/discoveries/bylaws", json={"action": "reject", "reason": "Off topic"}
        )

    assert missing.status_code == 400
    assert rejected.json()["discovery"]["rejection_reason"] == "Off topic"
    assert rejected.json()["discovery"]["reviewed_by"] == "admin"


@pytest.mark.asyncio
async def test_send_to_sources_promotes_approved_discovery(repos):
    _, sources = repos
    async with _client() as client:
        await client.patch("/api/v1/discoveries/bylaws", json={"action": "approve"})
        first = await client.patch("/api/v1/discoveries/bylaws", json={"action": "send_to_sources"})
        second = await client.patch("/api/v1/discoveries/bylaws", json={"action": "send_to_sources"})
        pending = await client.patch(
            "/api/v1/discoveries/rulebook", json={"action": "send_to_sources"}
        )

    assert first.json()["promotion"]["status"] == "created"
    assert second.json()["promotion"]["status"] == "already_linked"
    assert pending.json()["promotion"]["status"] == "not_approved"
    assert len(await sources.get_all()) == 1


@pytest.mark.asyncio
async def test_bulk_approve_and_bulk_promotion(repos):
    async with _client() as client:
        review = await client.post(
            "/api/v1/discoveries/bulk",
            json={"action": "approve", "ids": ["bylaws", "rulebook", "ghost"]},
        )
        promotion = await client.post("/api/v1/discoveries/bulk", json={"action": "send_to_sources"})

    assert review.status_code == 200
    assert review.json()["succeeded"] == 2
    assert review.json()["failed"] == 1
    assert promotion.json()["created"] == 2
    assert promotion.json()["failed"] == 0


@pytest.mark.asyncio
async def test_bulk_review_without_ids_is_rejected(repos):
    async with _client() as client:
        response = await client.post("/api/v1/discoveries/bulk", json={"action": "approve"})
    assert response.status_code == 400
