"""Domain entities for organization profiles used as evaluation context."""

from dataclasses import dataclass, field


@dataclass
class OrganizationProfile:
    """Known facts about a governing body's website.

    Used to enrich metadata-evaluation prompts when a discovered URL's host
    matches ``domain``.
    """

    ngb_id: str
    display_name: str
    domain: str
    url_patterns: list[str] = field(default_factory=list)
    document_types: list[str] = field(default_factory=list)
    topic_domains: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)


@dataclass
class TopicKeywords:
    """Search keywords associated with a topic domain."""

    domain: str
    keywords: list[str] = field(default_factory=list)
