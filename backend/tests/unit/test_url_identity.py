"""Unit tests for URL normalization and identifiers."""

import pytest

from app.domain.url_identity import generate_id, normalize_url, url_to_id


@pytest.mark.parametrize(
    "variant",
    [
        "https://www.usaswimming.org/rules/",
        "https://usaswimming.org/rules",
        "https://usaswimming.org/rules#section-2",
        "HTTPS://WWW.USASwimming.org/rules/",
    ],
)
def test_equivalent_urls_normalize_identically(variant: str):
    assert normalize_url(variant) == "https://usaswimming.org/rules"


def test_root_path_keeps_single_slash():
    assert normalize_url("https://www.teamusa.org") == "https://teamusa.org/"
    assert normalize_url("https://teamusa.org/") == "https://teamusa.org/"


def test_query_string_is_preserved():
    assert normalize_url("https://example.org/doc/?id=4#top") == "https://example.org/doc?id=4"


@pytest.mark.parametrize("bad", ["not a url", "/relative/path", "mailto:", ""])
def test_malformed_input_returned_unchanged(bad: str):
    assert normalize_url(bad) == bad


def test_url_to_id_is_sha256_hex():
    digest = url_to_id("https://example.org/")
    assert len(digest) == 64
    assert all(c in "0123456789abcdef" for c in digest)


def test_generate_id_is_stable_across_variants():
    assert generate_id("https://www.example.org/a/") == generate_id("https://example.org/a#frag")
    assert generate_id("https://example.org/a") != generate_id("https://example.org/b")
