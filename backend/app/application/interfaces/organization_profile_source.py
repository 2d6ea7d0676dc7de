"""Abstract interface (port) for loading organization profiles."""

from abc import ABC, abstractmethod

from app.domain.entities.organization_profile import OrganizationProfile, TopicKeywords


class OrganizationProfileSource(ABC):
    """Port — where organization profiles and topic keywords are read from."""

    @abstractmethod
    async def load_profiles(self) -> list[OrganizationProfile]:
        """Load every configured organization profile."""
        ...

    @abstractmethod
    async def load_topic_keywords(self) -> list[TopicKeywords]:
        """Load the keyword lists per topic domain."""
        ...
