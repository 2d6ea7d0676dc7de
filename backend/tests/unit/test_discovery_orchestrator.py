"""Unit tests for the DiscoveryOrchestrator run."""

import json

import pytest

from app.application.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from app.application.services.cost_tracker import CostRates, CostTracker
from app.application.services.discovery_orchestrator import (
    DiscoveryOrchestrator,
    DiscoveryRunConfig,
    infer_format,
)
from app.application.services.discovery_service import DiscoveryService
from app.application.services.evaluation_service import EvaluationService
from app.application.interfaces import SearchHit
from app.domain.entities import DiscoveryStatus, SourceFormat, TrackedService
from app.domain.exceptions import BudgetExceededError, SearchProviderError
from app.domain.url_identity import generate_id
from tests.fakes import (
    FakeChatProvider,
    FakeContentFetcher,
    FakeDiscoveredSourceRepository,
    FakeTextExtractor,
    FakeUsageMetricRepository,
    FakeWebDiscoveryProvider,
    RecordingNotifier,
)

KEEP = "https://usatf.org/doc-keep.pdf"
DROP = "https://usatf.org/doc-drop"


def _reply(prompt: str) -> str:
    if "isHighQuality" in prompt:
        return json.dumps(
            {
                "isHighQuality": True,
                "confidence": 0.9,
                "documentType": "Selection Procedures",
                "topicDomains": ["team_selection"],
                "authorityLevel": "ngb_policy_procedure",
                "priority": "high",
                "description": "Team selection procedures.",
                "ngbId": "usatf",
            }
        )
    relevant = "doc-drop" not in prompt
    return json.dumps(
        {
            "isRelevant": relevant,
            "confidence": 0.8 if relevant else 0.2,
            "reasoning": "looks like policy" if relevant else "news page",
            "suggestedTopicDomains": ["team_selection"] if relevant else [],
            "preliminaryDocumentType": "Policy" if relevant else "News",
        }
    )


class _Harness:
    def __init__(self, rates: CostRates | None = None, site_map=None, search_results=None):
        self.tracker = CostTracker(FakeUsageMetricRepository(), rates)
        self.provider = FakeWebDiscoveryProvider(
            site_maps=site_map if site_map is not None else {"https://usatf.org": [KEEP, DROP]},
            search_results=search_results,
        )
        self.chat = FakeChatProvider(responder=_reply)
        self.repo = FakeDiscoveredSourceRepository()
        self.notifier = RecordingNotifier()
        self.orchestrator = DiscoveryOrchestrator(
            DiscoveryService(self.provider, CircuitBreaker(CircuitBreakerConfig(name="tavily")), self.tracker),
            EvaluationService(self.chat, self.tracker),
            self.repo,
            self.tracker,
            FakeContentFetcher({KEEP: b"Selection procedures for the 2028 team."}),
            FakeTextExtractor(),
            self.notifier,
        )


@pytest.mark.parametrize(
    "url,fmt",
    [
        ("https://a.org/Rules.PDF", SourceFormat.PDF),
        ("https://a.org/notes.txt", SourceFormat.TEXT),
        ("https://a.org/policy", SourceFormat.HTML),
    ],
)
def test_infer_format(url: str, fmt: SourceFormat):
    assert infer_format(url) == fmt


@pytest.mark.asyncio
async def test_run_persists_scores_for_review():
    h = _Harness()

    stats = await h.orchestrator.run(DiscoveryRunConfig(domains=["usatf.org"]))

    assert (stats.discovered, stats.evaluated) == (2, 2)
    assert (stats.pending_review, stats.rejected, stats.errors) == (1, 1, 0)
    assert stats.by_method == {"map": 2}

    kept = h.repo.items[generate_id(KEEP)]
    assert kept.status == DiscoveryStatus.PENDING_CONTENT
    assert kept.combined_confidence == pytest.approx(0.87)
    assert kept.format == "pdf"
    assert kept.authority_level == "ngb_policy_procedure"
    assert kept.ngb_id == "usatf"

    dropped = h.repo.items[generate_id(DROP)]
    assert dropped.status == DiscoveryStatus.REJECTED
    assert dropped.rejection_reason == "news page"

    assert h.notifier.summaries[0]["pending_review"] == 1


@pytest.mark.asyncio
async def test_second_run_skips_known_urls():
    h = _Harness()
    config = DiscoveryRunConfig(domains=["usatf.org"])
    await h.orchestrator.run(config)
    prompts_after_first = len(h.chat.prompts)

    stats = await h.orchestrator.run(config)

    assert stats.skipped == 2
    assert stats.evaluated == 0
    assert len(h.chat.prompts) == prompts_after_first


@pytest.mark.asyncio
async def test_dry_run_evaluates_without_persisting():
    h = _Harness()

    stats = await h.orchestrator.run(DiscoveryRunConfig(domains=["usatf.org"]), dry_run=True)

    assert stats.pending_review == 1
    assert h.repo.items == {}


@pytest.mark.asyncio
async def test_failing_domain_is_counted_and_run_continues():
    h = _Harness(
        site_map={"https://broken.org": SearchProviderError("tavily", 502, "bad gateway")},
        search_results={"usatf selection": [SearchHit(url=KEEP, title="Selection")]},
    )

    stats = await h.orchestrator.run(
        DiscoveryRunConfig(domains=["broken.org"], search_queries=["usatf selection"])
    )

    assert stats.errors == 1
    assert "broken.org" in stats.error_messages[0]
    assert stats.by_method == {"search": 1}
    assert stats.pending_review == 1


@pytest.mark.asyncio
async def test_over_budget_aborts_before_discovery():
    h = _Harness(CostRates(tavily_monthly_budget=10))
    for _ in range(3):
        await h.tracker.track_tavily_call("map")

    with pytest.raises(BudgetExceededError):
        await h.orchestrator.run(DiscoveryRunConfig(domains=["usatf.org"]))

    assert h.provider.map_calls == []
    status, threshold = h.notifier.budget_alerts[0]
    assert status.service == TrackedService.TAVILY
    assert threshold == "critical"


@pytest.mark.asyncio
async def test_near_budget_warns_and_runs():
    h = _Harness(CostRates(tavily_monthly_budget=100))
    for _ in range(17):
        await h.tracker.track_tavily_call("map")

    stats = await h.orchestrator.run(DiscoveryRunConfig(domains=["usatf.org"]))

    assert stats.discovered == 2
    assert [(s.service, t) for s, t in h.notifier.budget_alerts] == [(TrackedService.TAVILY, "warning")]


def test_run_config_from_yaml(tmp_path):
    path = tmp_path / "discovery.yaml"
    path.write_text(
        "domains:\n  - usatf.org\n  - usarowing.org\n"
        "search_queries:\n  - safesport policy\n"
        "max_results_per_domain: 40\n"
        "include_domains: [usatf.org]\n",
        encoding="utf-8",
    )

    config = DiscoveryRunConfig.from_yaml(path)

    assert config.domains == ["usatf.org", "usarowing.org"]
    assert config.search_queries == ["safesport policy"]
    assert config.max_results_per_domain == 40
    assert config.max_results_per_query == 10
    assert config.include_domains == ["usatf.org"]


def test_run_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "discovery.yaml"
    path.write_text("- usatf.org\n", encoding="utf-8")
    with pytest.raises(ValueError):
        DiscoveryRunConfig.from_yaml(path)
