"""Fake outbound adapters: fetcher, extractor, LLM, web discovery, notifier."""

from collections.abc import Callable
from typing import Any

from app.application.interfaces import (
    ChatProvider,
    ContentFetcher,
    FetchedContent,
    Notifier,
    OrganizationProfileSource,
    SearchHit,
    TextExtractor,
    WebDiscoveryProvider,
)
from app.domain.entities import (
    BudgetStatus,
    ChatCompletionResult,
    ChatMessage,
    OrganizationProfile,
    SourceFormat,
    TokenUsage,
    TopicKeywords,
)


class FakeContentFetcher(ContentFetcher):
    """Serves bodies by URL; a URL mapped to an exception raises it."""

    def __init__(self, pages: dict[str, bytes | Exception] | None = None, default: bytes | None = None):
        self.pages = dict(pages or {})
        self.default = default
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchedContent:
        self.calls.append(url)
        body = self.pages.get(url, self.default)
        if isinstance(body, Exception):
            raise body
        if body is None:
            raise RuntimeError(f"no page for {url}")
        return FetchedContent(url=url, content=body, content_type="text/html")


class FakeTextExtractor(TextExtractor):
    def __init__(self):
        self.formats: list[SourceFormat] = []

    async def extract(self, content: bytes, source_format: SourceFormat) -> str:
        self.formats.append(source_format)
        return content.decode("utf-8")

    def supports(self, source_format: SourceFormat) -> bool:
        return True


class FakeChatProvider(ChatProvider):
    """Returns scripted replies; ``responder`` may inspect the prompt instead."""

    def __init__(
        self,
        replies: list[str] | None = None,
        responder: Callable[[str], str] | None = None,
        prompt_tokens: int = 100,
        completion_tokens: int = 20,
    ):
        self.replies = list(replies or [])
        self.responder = responder
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        prompt = messages[-1].content
        self.prompts.append(prompt)
        if self.responder is not None:
            content = self.responder(prompt)
        else:
            content = self.replies.pop(0)
        return ChatCompletionResult(
            model=model,
            content=content,
            finish_reason="stop",
            usage=TokenUsage(
                prompt_tokens=self.prompt_tokens,
                completion_tokens=self.completion_tokens,
                total_tokens=self.prompt_tokens + self.completion_tokens,
            ),
            provider=self.provider_name,
        )


class FakeWebDiscoveryProvider(WebDiscoveryProvider):
    def __init__(
        self,
        site_maps: dict[str, list[str] | Exception] | None = None,
        search_results: dict[str, list[SearchHit] | Exception] | None = None,
    ):
        self.site_maps = site_maps or {}
        self.search_results = search_results or {}
        self.map_calls: list[tuple[str, int]] = []
        self.search_calls: list[tuple[str, int, list[str] | None]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def map_site(self, url: str, *, limit: int = 20) -> list[str]:
        self.map_calls.append((url, limit))
        result = self.site_maps.get(url, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def search(
        self,
        query: str,
        *,
        max_results: int = 10,
        include_domains: list[str] | None = None,
    ) -> list[SearchHit]:
        self.search_calls.append((query, max_results, include_domains))
        result = self.search_results.get(query, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.budget_alerts: list[tuple[BudgetStatus, str]] = []
        self.summaries: list[dict[str, Any]] = []
        self.signals: list[tuple[str, dict[str, Any]]] = []

    async def budget_alert(self, status: BudgetStatus, threshold: str) -> None:
        self.budget_alerts.append((status, threshold))

    async def discovery_summary(self, summary: dict[str, Any]) -> None:
        self.summaries.append(summary)

    async def health_signal(self, signal: str, details: dict[str, Any]) -> None:
        self.signals.append((signal, details))


class FakeProfileSource(OrganizationProfileSource):
    def __init__(
        self,
        profiles: list[OrganizationProfile] | None = None,
        topic_keywords: list[TopicKeywords] | None = None,
    ):
        self.profiles = profiles or []
        self.topic_keywords = topic_keywords or []
        self.loads = 0

    async def load_profiles(self) -> list[OrganizationProfile]:
        self.loads += 1
        return list(self.profiles)

    async def load_topic_keywords(self) -> list[TopicKeywords]:
        return list(self.topic_keywords)
