"""Near-duplicate chunk clustering.

Chunks are compared by the Jaccard similarity of their character-trigram
sets and grouped by single-link clustering: if A~B and B~C, then A, B and C
form one cluster even when A and C alone fall below the threshold. Each
cluster is represented by its most authoritative chunk (ties broken by
score); the other members are kept as ``alternative_sources``.

Used at ingestion time (before chunks are stored) and at retrieval time
(when merging result lists from several searches), each with its own
threshold.
"""

import re
from collections.abc import Iterable
from dataclasses import replace

from app.domain.entities.document_chunk import AlternativeSource, DocumentChunk
from app.domain.entities.source_config import authority_rank

DEFAULT_SIMILARITY_THRESHOLD = 0.85

_WHITESPACE = re.compile(r"\s+")


def generate_trigrams(text: str) -> set[str]:
    """Overlapping 3-character shingles of lower-cased, whitespace-collapsed text."""
    normalized = _WHITESPACE.sub(" ", text.lower()).strip()
    return {normalized[i : i + 3] for i in range(len(normalized) - 2)}


def jaccard_similarity(a: set[str], b: set[str]) -> float:
    """|A ∩ B| / |A ∪ B|; two empty sets have similarity 0."""
    if not a and not b:
        return 0.0
    union = len(a | b)
    return len(a & b) / union if union else 0.0


class _UnionFind:
    """Disjoint sets with path compression and union by rank."""

    def __init__(self, size: int):
        self._parent = list(range(size))
        self._rank = [0] * size

    def find(self, x: int) -> int:
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def union(self, a: int, b: int) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        if self._rank[ra] < self._rank[rb]:
            ra, rb = rb, ra
        self._parent[rb] = ra
        if self._rank[ra] == self._rank[rb]:
            self._rank[ra] += 1


def _representative_key(chunk: DocumentChunk) -> tuple[int, float]:
    return authority_rank(chunk.authority_level), -chunk.score


def _as_alternative(chunk: DocumentChunk) -> AlternativeSource:
    return AlternativeSource(
        document_title=chunk.document_title,
        section_title=chunk.section_title,
        source_url=chunk.source_url,
        authority_level=chunk.authority_level,
        score=chunk.score,
    )


def deduplicate_chunks(
    chunks: list[DocumentChunk],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DocumentChunk]:
    """Collapse near-duplicates into one representative per cluster.

    Args:
        chunks: Scored chunks, in any order.
        threshold: Minimum Jaccard similarity for two chunks to be linked.

    Returns:
        One chunk per cluster, sorted by score descending. Representatives of
        multi-member clusters carry the other members in ``alternative_sources``.
        Input chunks are not mutated.
    """
    if len(chunks) <= 1:
        return list(chunks)

    shingles = [generate_trigrams(c.content) for c in chunks]
    clusters = _UnionFind(len(chunks))

    for i in range(len(chunks)):
        for j in range(i + 1, len(chunks)):
            if jaccard_similarity(shingles[i], shingles[j]) >= threshold:
                clusters.union(i, j)

    groups: dict[int, list[DocumentChunk]] = {}
    for index, chunk in enumerate(chunks):
        groups.setdefault(clusters.find(index), []).append(chunk)

    results: list[DocumentChunk] = []
    for members in groups.values():
        if len(members) == 1:
            results.append(members[0])
            continue
        ordered = sorted(members, key=_representative_key)
        representative, others = ordered[0], ordered[1:]
        results.append(
            replace(
                representative,
                alternative_sources=[
                    *representative.alternative_sources,
                    *(_as_alternative(c) for c in others),
                ],
            )
        )

    results.sort(key=lambda c: c.score, reverse=True)
    return results


def merge_retrieval_results(
    result_sets: Iterable[list[DocumentChunk]],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DocumentChunk]:
    """Flatten several retrieval result lists and deduplicate across them."""
    merged = [chunk for results in result_sets for chunk in results]
    return deduplicate_chunks(merged, threshold)
