"""URL identity — canonical form and content-addressed identifiers.

Two URLs that differ only by fragment, a trailing path slash, or a ``www.``
host prefix normalize to the same string and therefore the same id.
"""

import hashlib
from urllib.parse import urlsplit, urlunsplit


def normalize_url(url: str) -> str:
    """Return the canonical form of *url*.

    Malformed input (no scheme or host) is returned unchanged.
    """
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return url

    if not parts.scheme or not hostname:
        return url

    if hostname.startswith("www."):
        hostname = hostname[4:]

    netloc = hostname if port is None else f"{hostname}:{port}"
    if parts.username:
        credentials = parts.username
        if parts.password:
            credentials += f":{parts.password}"
        netloc = f"{credentials}@{netloc}"

    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, ""))


def url_to_id(url: str) -> str:
    """sha256 hex digest of an (already normalized) URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def generate_id(url: str) -> str:
    """Normalize *url* and return its stable identifier."""
    return url_to_id(normalize_url(url))
