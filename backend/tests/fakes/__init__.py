from .adapters import (
    FakeChatProvider,
    FakeContentFetcher,
    FakeProfileSource,
    FakeTextExtractor,
    FakeWebDiscoveryProvider,
    RecordingNotifier,
)
from .repositories import (
    FakeChunkRepository,
    FakeDiscoveredSourceRepository,
    FakeIngestionQueue,
    FakeIngestionStatusRepository,
    FakeSourceConfigRepository,
    FakeUsageMetricRepository,
)

__all__ = [
    "FakeChatProvider",
    "FakeContentFetcher",
    "FakeProfileSource",
    "FakeTextExtractor",
    "FakeWebDiscoveryProvider",
    "RecordingNotifier",
    "FakeChunkRepository",
    "FakeDiscoveredSourceRepository",
    "FakeIngestionQueue",
    "FakeIngestionStatusRepository",
    "FakeSourceConfigRepository",
    "FakeUsageMetricRepository",
]
