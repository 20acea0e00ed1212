"""Relevance scoring for knowledge items."""

from datetime import datetime, timedelta
from typing import Sequence

import numpy as np

from .models import KnowledgeItem
from .signals import jaccard, whitespace_set, word_set

RECENT_WINDOW = timedelta(hours=24)
RECENCY_BOOST = 0.2
RELATIONSHIP_BOOST = 0.1
STRONG_RELATIONSHIP = 0.7
CONTEXTUAL_THRESHOLD = 0.1
RELEVANT_FILE_THRESHOLD = 0.3


def is_recently_used(item: KnowledgeItem, now: datetime) -> bool:
    if item.last_referenced is None:
        return False
    return now - item.last_referenced < RECENT_WINDOW


def days_since(moment: datetime, now: datetime) -> float:
    return (now - moment).total_seconds() / 86400


def strong_relationships(item: KnowledgeItem) -> int:
    return sum(1 for r in item.relationships if r.strength > STRONG_RELATIONSHIP)


def query_relevance(query: str, item: KnowledgeItem, now: datetime | None = None) -> float:
    """How well an item answers a free-text query, in [0, 1]."""
    now = now or datetime.now()
    score = jaccard(whitespace_set(query), whitespace_set(item.text or ""))
    if is_recently_used(item, now):
        score += RECENCY_BOOST
    if item.relationships:
        score += RELATIONSHIP_BOOST
    return min(1.0, score)


def dynamic_relevance(item: KnowledgeItem, now: datetime | None = None) -> float:
    """Usage, recency and connectedness folded into one score in [0, 1]."""
    now = now or datetime.now()
    score = min(0.4, item.usage_count / 10)
    if item.last_referenced is not None:
        score += max(0.0, 0.3 - days_since(item.last_referenced, now) / 30)
    score += min(0.3, strong_relationships(item) / 5)
    return min(1.0, score)


def rescore(items: Sequence[KnowledgeItem], now: datetime | None = None) -> np.ndarray:
    """Dynamic relevance for many items at once."""
    now = now or datetime.now()
    if not items:
        return np.zeros(0)

    usage = np.array([item.usage_count for item in items], dtype=float)
    strong = np.array([strong_relationships(item) for item in items], dtype=float)
    referenced = np.array([item.last_referenced is not None for item in items])
    days = np.array(
        [days_since(item.last_referenced, now) if item.last_referenced else 0.0 for item in items],
        dtype=float,
    )

    recency = np.where(referenced, np.maximum(0.0, 0.3 - days / 30), 0.0)
    scores = np.minimum(0.4, usage / 10) + recency + np.minimum(0.3, strong / 5)
    return np.minimum(1.0, scores)


def contextual_files(
    query: str,
    items: Sequence[KnowledgeItem],
    limit: int = 5,
    now: datetime | None = None,
) -> list[tuple[KnowledgeItem, float]]:
    """Items scoring above the noise floor for a query, best first."""
    now = now or datetime.now()
    scored = [(item, query_relevance(query, item, now)) for item in items]
    scored = [pair for pair in scored if pair[1] > CONTEXTUAL_THRESHOLD]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]


def relevant_files(text: str, items: Sequence[KnowledgeItem], limit: int = 3) -> list[KnowledgeItem]:
    """Items whose content overlaps a conversation, ordered by stored relevance."""
    words = word_set(text, min_length=3)
    matches = [
        item for item in items if jaccard(words, word_set(item.text or "", min_length=3)) > RELEVANT_FILE_THRESHOLD
    ]
    matches.sort(key=lambda item: item.relevance_score, reverse=True)
    return matches[:limit]
