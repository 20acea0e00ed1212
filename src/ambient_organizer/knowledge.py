"""The knowledge item collection: ingestion, sweeps and file graduation."""

import copy
import threading
from datetime import datetime
from typing import Callable

from rich.console import Console

from .errors import PersistenceWriteFailed, TargetNotFound
from .models import FileRecord, GraduationEvent, GraduationMetrics, KnowledgeItem
from .relationships import detect, link
from .relevance import days_since, rescore
from .signals import analyze_file

console = Console(stderr=True)

GRADUATION_MIN_USAGE = 3
GRADUATION_MIN_RELEVANCE = 0.7


def should_graduate(item: KnowledgeItem) -> bool:
    return (
        not item.project_level
        and item.usage_count >= GRADUATION_MIN_USAGE
        and item.relevance_score > GRADUATION_MIN_RELEVANCE
    )


class KnowledgeBase:
    """Single writer over knowledge items.

    Readers get deep copies. Detection and scoring run on snapshots taken
    under the lock; only the apply step holds it again.
    """

    def __init__(
        self,
        items: list[KnowledgeItem] | None = None,
        save: Callable[[list[KnowledgeItem]], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._items: dict[str, KnowledgeItem] = {item.id: item for item in items or []}
        self._save = save
        self.clock = clock
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def items(self) -> list[KnowledgeItem]:
        with self._lock:
            return copy.deepcopy(list(self._items.values()))

    def get(self, item_id: str) -> KnowledgeItem:
        with self._lock:
            return copy.deepcopy(self._require(item_id))

    def find(self, name: str) -> KnowledgeItem | None:
        """Look an item up by id, name or original file name."""
        with self._lock:
            for item in self._items.values():
                if name in (item.id, item.name, item.original_name):
                    return copy.deepcopy(item)
        return None

    def in_scope(self, project_id: str | None) -> list[KnowledgeItem]:
        with self._lock:
            return copy.deepcopy([i for i in self._items.values() if i.project_id == project_id])

    def _require(self, item_id: str) -> KnowledgeItem:
        item = self._items.get(item_id)
        if item is None:
            raise TargetNotFound("Knowledge item", item_id)
        return item

    def _persist(self):
        if self._save is None:
            return
        with self._lock:
            snapshot = list(self._items.values())
            try:
                self._save(snapshot)
            except PersistenceWriteFailed as e:
                console.print(f"[yellow]Could not save knowledge items: {e}[/yellow]")

    # Ingestion

    def ingest(
        self,
        record: FileRecord,
        text: str | None,
        project_id: str | None,
        project_level: bool = False,
        chat_id: str | None = None,
    ) -> KnowledgeItem:
        """Add a file and link it to related items in the same project."""
        item = KnowledgeItem(
            name=record.name,
            original_name=record.original_name,
            extension=record.extension,
            size=record.size,
            local_path=record.local_path,
            project_id=project_id,
            project_level=project_level,
            chat_id=None if project_level else chat_id,
            metadata=analyze_file(text, record.extension),
            created_at=self.clock(),
        )
        return self.add(item)

    def add(self, item: KnowledgeItem) -> KnowledgeItem:
        peers = self.in_scope(item.project_id)
        now = self.clock()
        found = [(peer.id, detect(item, peer, now)) for peer in peers]

        with self._lock:
            for peer_id, relationships in found:
                stored = self._items.get(peer_id)
                if stored is not None and relationships:
                    link(item, stored, relationships)
            self._items[item.id] = item
            result = copy.deepcopy(item)
        self._persist()
        return result

    def remove(self, item_id: str) -> KnowledgeItem:
        with self._lock:
            item = self._require(item_id)
            del self._items[item_id]
            for other in self._items.values():
                other.relationships = [r for r in other.relationships if r.related_item_id != item_id]
        self._persist()
        return item

    # Usage

    def record_usage(self, item_id: str, chat_id: str | None = None) -> KnowledgeItem:
        with self._lock:
            item = self._require(item_id)
            item.usage_count += 1
            item.last_referenced = self.clock()
            if chat_id and chat_id not in item.referencing_chats:
                item.referencing_chats.append(chat_id)
            result = copy.deepcopy(item)
        self._persist()
        return result

    def set_summary(self, item_id: str, summary: str) -> KnowledgeItem:
        with self._lock:
            item = self._require(item_id)
            item.summary = summary
            result = copy.deepcopy(item)
        self._persist()
        return result

    # Sweeps

    def discover_relationships(self) -> int:
        """Compare every unrelated pair. Returns the number of pairs newly linked."""
        snapshot = self.items()
        now = self.clock()
        discovered = []
        for i, a in enumerate(snapshot):
            for b in snapshot[i + 1:]:
                if a.is_related_to(b.id):
                    continue
                relationships = detect(a, b, now)
                if relationships:
                    discovered.append((a.id, b.id, relationships))

        linked = 0
        with self._lock:
            for a_id, b_id, relationships in discovered:
                a = self._items.get(a_id)
                b = self._items.get(b_id)
                if a is None or b is None or a.is_related_to(b_id):
                    continue
                link(a, b, relationships)
                linked += 1
        if linked:
            self._persist()
        return linked

    def update_relevance(self) -> dict[str, float]:
        """Recompute every item's dynamic relevance score."""
        snapshot = self.items()
        scores = rescore(snapshot, self.clock())
        updated = {item.id: float(score) for item, score in zip(snapshot, scores)}

        with self._lock:
            for item_id, score in updated.items():
                if item_id in self._items:
                    self._items[item_id].relevance_score = score
        self._persist()
        return updated

    # Graduation

    def graduation_candidates(self) -> list[KnowledgeItem]:
        with self._lock:
            return copy.deepcopy([i for i in self._items.values() if should_graduate(i)])

    def graduate_item(
        self, item_id: str, reason: str = "aiSuggestion", user_confirmed: bool = True
    ) -> KnowledgeItem:
        """Promote an item to project scope. Already promoted items are left alone."""
        with self._lock:
            item = self._require(item_id)
            if item.project_level:
                return copy.deepcopy(item)
            now = self.clock()
            days = int(days_since(item.last_referenced, now)) if item.last_referenced else 0
            item.graduation_history.append(
                GraduationEvent(
                    timestamp=now,
                    from_chat_id=item.chat_id,
                    reason=reason,
                    metrics=GraduationMetrics(
                        usage_count=item.usage_count,
                        unique_chats_referenced=len(item.referencing_chats),
                        average_relevance=item.relevance_score,
                        days_since_last_use=days,
                        cross_project_references=0,
                    ),
                    user_confirmed=user_confirmed,
                )
            )
            item.project_level = True
            item.chat_id = None
            result = copy.deepcopy(item)
        self._persist()
        return result
