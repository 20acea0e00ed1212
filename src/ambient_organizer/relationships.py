"""Relationship detection between knowledge items."""

from datetime import datetime

from . import rules
from .models import KnowledgeItem, Relationship
from .signals import jaccard, word_set

SIMILAR_TOPIC_THRESHOLD = 0.6
VERSION_THRESHOLD = 0.8
REFERENCE_STRENGTH = 0.9
IMPLEMENTS_STRENGTH = 0.8


def reverse(relationship_type: str) -> str:
    """Type recorded on the far side of a relationship.

    Every type maps to itself, including directional ones such as
    ``references`` and ``implements``.
    """
    return relationship_type


def topic_similarity(a: KnowledgeItem, b: KnowledgeItem) -> float:
    return jaccard(set(a.metadata.topics), set(b.metadata.topics))


def content_similarity(text_a: str, text_b: str) -> float:
    return jaccard(word_set(text_a), word_set(text_b))


def mentions(text: str, name: str) -> bool:
    return bool(name) and name.lower() in text.lower()


def detect(a: KnowledgeItem, b: KnowledgeItem, now: datetime | None = None) -> list[Relationship]:
    """Relationships from ``a`` to ``b``. Empty when either side has no text."""
    text_a, text_b = a.text, b.text
    if text_a is None or text_b is None:
        return []

    now = now or datetime.now()
    found: list[Relationship] = []

    similarity = topic_similarity(a, b)
    if similarity > SIMILAR_TOPIC_THRESHOLD:
        found.append(
            Relationship(
                related_item_id=b.id,
                type="similar_topic",
                strength=similarity,
                discovered_at=now,
                evidence=["Similar topics detected", "Shared keywords found"],
            )
        )

    if mentions(text_a, b.name) or mentions(text_b, a.name):
        found.append(
            Relationship(
                related_item_id=b.id,
                type="references",
                strength=REFERENCE_STRENGTH,
                discovered_at=now,
                evidence=["File name mentioned in content"],
            )
        )

    overlap = content_similarity(text_a, text_b)
    if overlap > VERSION_THRESHOLD:
        found.append(
            Relationship(
                related_item_id=b.id,
                type="version_of",
                strength=overlap,
                discovered_at=now,
                evidence=["High content similarity suggests version relationship"],
            )
        )

    combined = f"{text_a} {text_b}".lower()
    if any(phrase in combined for phrase in rules.IMPLEMENTATION_PHRASES):
        found.append(
            Relationship(
                related_item_id=b.id,
                type="implements",
                strength=IMPLEMENTS_STRENGTH,
                discovered_at=now,
                evidence=["Implementation patterns detected"],
            )
        )

    return found


def link(a: KnowledgeItem, b: KnowledgeItem, found: list[Relationship]):
    """Attach relationships to ``a`` and their mirror images to ``b``."""
    for rel in found:
        a.relationships.append(rel)
        b.relationships.append(
            Relationship(
                related_item_id=a.id,
                type=reverse(rel.type),
                strength=rel.strength,
                discovered_at=rel.discovered_at,
                evidence=list(rel.evidence),
            )
        )
