"""Organization profiles read from a YAML file."""

import logging
from pathlib import Path
from typing import Any

import yaml

from app.application.interfaces.organization_profile_source import OrganizationProfileSource
from app.domain.entities.organization_profile import OrganizationProfile, TopicKeywords

logger = logging.getLogger(__name__)


class YamlProfileSource(OrganizationProfileSource):
    """Reads ``profiles`` and ``topic_keywords`` lists from one YAML document.

    A missing file yields no profiles (evaluation then runs without hints).
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    async def load_profiles(self) -> list[OrganizationProfile]:
        profiles = [
            OrganizationProfile(
                ngb_id=entry["ngb_id"],
                display_name=entry.get("display_name", entry["ngb_id"]),
                domain=entry["domain"],
                url_patterns=list(entry.get("url_patterns") or []),
                document_types=list(entry.get("document_types") or []),
                topic_domains=list(entry.get("topic_domains") or []),
                keywords=list(entry.get("keywords") or []),
            )
            for entry in self._load().get("profiles") or []
        ]
        logger.info("Loaded %d organization profiles from %s", len(profiles), self._path)
        return profiles

    async def load_topic_keywords(self) -> list[TopicKeywords]:
        return [
            TopicKeywords(domain=entry["domain"], keywords=list(entry.get("keywords") or []))
            for entry in self._load().get("topic_keywords") or []
        ]

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.warning("Profile file not found: %s", self._path)
            return {}
        with open(self._path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Profile file {self._path} must be a mapping")
        return data
