"""Context hints — organization-specific prompt enrichment for metadata evaluation."""

import logging
from urllib.parse import urlsplit

from app.application.interfaces import OrganizationProfileSource
from app.application.services.ttl_cache import TTLCache
from app.domain.entities.organization_profile import OrganizationProfile, TopicKeywords

logger = logging.getLogger(__name__)

_PROFILES_KEY = "profiles"
_TOPIC_KEYWORDS_KEY = "topic_keywords"


def _bare_host(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


class ContextHintProvider:
    """Looks up organization profiles by URL host and renders prompt hints.

    Profiles are loaded through the profile source and held in a TTL cache,
    so edits to the profile file are picked up without a restart.
    """

    def __init__(self, profile_source: OrganizationProfileSource, ttl_seconds: float = 300.0):
        self._source = profile_source
        self._cache: TTLCache = TTLCache(ttl_seconds=ttl_seconds, max_size=4)

    async def get_profiles(self) -> list[OrganizationProfile]:
        return await self._cache.get(_PROFILES_KEY, self._source.load_profiles)

    async def get_profile_by_ngb(self, ngb_id: str) -> OrganizationProfile | None:
        for profile in await self.get_profiles():
            if profile.ngb_id == ngb_id:
                return profile
        return None

    async def get_profile_for_host(self, host: str) -> OrganizationProfile | None:
        """Profile whose domain equals *host*, ignoring a leading ``www.``."""
        wanted = _bare_host(host)
        for profile in await self.get_profiles():
            if _bare_host(profile.domain) == wanted:
                return profile
        return None

    async def get_keywords_by_topic(self, topic_domain: str) -> list[str]:
        topics: list[TopicKeywords] = await self._cache.get(
            _TOPIC_KEYWORDS_KEY, self._source.load_topic_keywords
        )
        for entry in topics:
            if entry.domain == topic_domain:
                return list(entry.keywords)
        return []

    async def generate_context_hint(self, url: str) -> str:
        """Prompt block describing the organization behind *url*, or ``""``."""
        try:
            host = urlsplit(url).hostname
        except ValueError:
            return ""
        if not host:
            return ""

        profile = await self.get_profile_for_host(host)
        if profile is None:
            return ""

        return "\n".join(
            [
                f"Context Hint: This URL is from {profile.display_name} ({profile.ngb_id}).",
                f"Relevant topic domains: {', '.join(profile.topic_domains)}",
                f"Common document types: {', '.join(profile.document_types)}",
                f"Keywords to look for: {', '.join(profile.keywords)}",
            ]
        )

    def invalidate(self) -> None:
        """Force the next lookup to reload profiles from the source."""
        self._cache.invalidate()
        logger.info("Organization profile cache invalidated")
