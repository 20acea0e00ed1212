"""Timers, debouncing and the lifecycle of surfaced suggestions."""

import heapq
import itertools
import threading
from dataclasses import dataclass
from typing import Callable

from .models import AmbientSuggestion, Suggestion


class Handle:
    """A scheduled callback that can be cancelled."""

    def __init__(self, on_cancel: Callable[[], None] | None = None):
        self.cancelled = False
        self._on_cancel = on_cancel

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        if self._on_cancel:
            self._on_cancel()


class ThreadScheduler:
    """Runs callbacks on background timer threads."""

    def __init__(self):
        self._handles: set[Handle] = set()
        self._lock = threading.Lock()

    def _track(self, handle: Handle) -> Handle:
        with self._lock:
            self._handles.add(handle)
        return handle

    def _forget(self, handle: Handle):
        with self._lock:
            self._handles.discard(handle)

    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle:
        timer: threading.Timer | None = None

        def stop():
            if timer:
                timer.cancel()
            self._forget(handle)

        handle = Handle(stop)

        def run():
            self._forget(handle)
            if not handle.cancelled:
                fn()

        timer = threading.Timer(delay, run)
        timer.daemon = True
        self._track(handle)
        timer.start()
        return handle

    def call_every(self, interval: float, fn: Callable[[], None]) -> Handle:
        current: list[threading.Timer] = []

        def stop():
            if current:
                current[0].cancel()
            self._forget(handle)

        handle = Handle(stop)

        def schedule():
            timer = threading.Timer(interval, tick)
            timer.daemon = True
            current[:] = [timer]
            timer.start()

        def tick():
            if handle.cancelled:
                return
            fn()
            if not handle.cancelled:
                schedule()

        self._track(handle)
        schedule()
        return handle

    def pending(self) -> int:
        with self._lock:
            return len(self._handles)

    def shutdown(self):
        with self._lock:
            handles = list(self._handles)
            self._handles.clear()
        for handle in handles:
            handle.cancel()


class ManualScheduler:
    """Virtual-time scheduler. Nothing runs until ``advance`` is called."""

    def __init__(self):
        self.now = 0.0
        self._queue: list = []
        self._seq = itertools.count()

    def _push(self, due: float, handle: Handle, fn, interval: float | None):
        heapq.heappush(self._queue, (due, next(self._seq), handle, fn, interval))

    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle:
        handle = Handle()
        self._push(self.now + delay, handle, fn, None)
        return handle

    def call_every(self, interval: float, fn: Callable[[], None]) -> Handle:
        handle = Handle()
        self._push(self.now + interval, handle, fn, interval)
        return handle

    def advance(self, seconds: float):
        """Move the clock forward, running everything that falls due in order."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, fn, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = due
            if interval is not None:
                self._push(due + interval, handle, fn, interval)
            fn()
        self.now = target

    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def shutdown(self):
        for entry in self._queue:
            entry[2].cancel()
        self._queue.clear()


class Debouncer:
    """Collapses a burst of triggers into one call after a quiet period."""

    def __init__(self, scheduler, delay: float, fn: Callable[..., None]):
        self.scheduler = scheduler
        self.delay = delay
        self.fn = fn
        self._pending: Handle | None = None
        self._lock = threading.Lock()

    def trigger(self, *args):
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            handle = self.scheduler.call_later(self.delay, lambda: self._fire(handle, args))
            self._pending = handle

    def _fire(self, handle: Handle, args):
        with self._lock:
            if self._pending is handle:
                self._pending = None
            elif handle.cancelled:
                return
        self.fn(*args)

    def cancel(self):
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None


@dataclass
class _Slot:
    suggestion: Suggestion
    state: str = "pending"
    handle: Handle | None = None


class SuggestionScheduler:
    """Holds at most one pending or surfaced suggestion per conversation.

    Pending suggestions wait on their timing policy: ``immediate`` surfaces
    at once, ``nextPause`` after ``pause_delay`` seconds, ``endOfSession``
    when the session ends, and ``manual`` only through ``surface_now``.
    Surfaced suggestions expire after ``timeout`` seconds. Expiry never
    touches learned preferences; accept and dismiss do.
    """

    def __init__(
        self,
        scheduler,
        learner=None,
        pause_delay: float = 3.0,
        timeout: float = 15.0,
        on_surface: Callable[[str, Suggestion], None] | None = None,
        on_clear: Callable[[str, Suggestion, str], None] | None = None,
    ):
        self.scheduler = scheduler
        self.learner = learner
        self.pause_delay = pause_delay
        self.timeout = timeout
        self.on_surface = on_surface
        self.on_clear = on_clear
        self._slots: dict[str, _Slot] = {}
        self._lock = threading.RLock()

    def is_occupied(self, conversation_id: str) -> bool:
        with self._lock:
            return conversation_id in self._slots

    def pending(self, conversation_id: str) -> Suggestion | None:
        with self._lock:
            slot = self._slots.get(conversation_id)
            return slot.suggestion if slot and slot.state == "pending" else None

    def active(self, conversation_id: str) -> Suggestion | None:
        with self._lock:
            slot = self._slots.get(conversation_id)
            return slot.suggestion if slot and slot.state == "surfaced" else None

    def offer(self, conversation_id: str, suggestion: Suggestion) -> bool:
        """Queue a suggestion. Returns False when one is already in flight."""
        with self._lock:
            if conversation_id in self._slots:
                return False
            slot = _Slot(suggestion)
            self._slots[conversation_id] = slot
            if suggestion.timing == "nextPause":
                slot.handle = self.scheduler.call_later(
                    self.pause_delay, lambda: self._surface(conversation_id, suggestion.id)
                )
        if suggestion.timing == "immediate":
            self._surface(conversation_id, suggestion.id)
        return True

    def end_session(self, conversation_id: str):
        with self._lock:
            slot = self._slots.get(conversation_id)
            due = slot is not None and slot.state == "pending" and slot.suggestion.timing == "endOfSession"
        if due:
            self._surface(conversation_id, slot.suggestion.id)

    def surface_now(self, conversation_id: str) -> Suggestion | None:
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None:
                return None
            if slot.state == "surfaced":
                return slot.suggestion
        return self._surface(conversation_id, slot.suggestion.id)

    def _surface(self, conversation_id: str, suggestion_id: str) -> Suggestion | None:
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None or slot.suggestion.id != suggestion_id or slot.state != "pending":
                return None
            if slot.handle is not None:
                slot.handle.cancel()
            slot.state = "surfaced"
            slot.handle = self.scheduler.call_later(
                self.timeout, lambda: self._expire(conversation_id, suggestion_id)
            )
            suggestion = slot.suggestion
        if self.on_surface:
            self.on_surface(conversation_id, suggestion)
        return suggestion

    def _expire(self, conversation_id: str, suggestion_id: str):
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None or slot.suggestion.id != suggestion_id:
                return
            del self._slots[conversation_id]
        if self.on_clear:
            self.on_clear(conversation_id, slot.suggestion, "expired")

    def _take(self, conversation_id: str) -> Suggestion | None:
        with self._lock:
            slot = self._slots.pop(conversation_id, None)
            if slot is None:
                return None
            if slot.handle is not None:
                slot.handle.cancel()
            return slot.suggestion

    def _react(self, conversation_id: str, reason: str) -> Suggestion | None:
        """Feed the learner while the suggestion is still in its slot, then clear it."""
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None:
                return None
            if self.learner and reason == "accepted":
                self.learner.record_accept(slot.suggestion.type)
            elif self.learner:
                self.learner.record_dismiss(slot.suggestion.type)
            suggestion = self._take(conversation_id)
        if self.on_clear:
            self.on_clear(conversation_id, suggestion, reason)
        return suggestion

    def accept(self, conversation_id: str) -> Suggestion | None:
        return self._react(conversation_id, "accepted")

    def dismiss(self, conversation_id: str) -> Suggestion | None:
        return self._react(conversation_id, "dismissed")

    def clear(self, conversation_id: str):
        """Drop whatever is in flight without recording a reaction."""
        suggestion = self._take(conversation_id)
        if suggestion is not None and self.on_clear:
            self.on_clear(conversation_id, suggestion, "cleared")


@dataclass
class _Entry:
    suggestion: AmbientSuggestion
    handle: Handle | None = None
    shown: bool = False


class AmbientBoard:
    """Time-boxed file hints: shown after a delay, hidden after a while."""

    def __init__(
        self,
        scheduler,
        on_show: Callable[[AmbientSuggestion], None] | None = None,
        on_hide: Callable[[AmbientSuggestion, str], None] | None = None,
    ):
        self.scheduler = scheduler
        self.on_show = on_show
        self.on_hide = on_hide
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.RLock()

    def post(self, suggestion: AmbientSuggestion) -> bool:
        """Schedule a hint. A second live graduate hint for one item is refused."""
        with self._lock:
            if suggestion.type == "graduateFile" and self.has_graduate_hint(suggestion.item_id):
                return False
            entry = _Entry(suggestion)
            self._entries[suggestion.id] = entry
            entry.handle = self.scheduler.call_later(suggestion.show_delay, lambda: self._show(suggestion.id))
        return True

    def has_graduate_hint(self, item_id: str | None) -> bool:
        with self._lock:
            return any(
                e.suggestion.type == "graduateFile" and e.suggestion.item_id == item_id
                for e in self._entries.values()
            )

    def visible(self) -> list[AmbientSuggestion]:
        with self._lock:
            return [e.suggestion for e in self._entries.values() if e.shown]

    def queued(self) -> list[AmbientSuggestion]:
        with self._lock:
            return [e.suggestion for e in self._entries.values()]

    def _show(self, suggestion_id: str):
        with self._lock:
            entry = self._entries.get(suggestion_id)
            if entry is None or entry.shown:
                return
            entry.shown = True
            duration = entry.suggestion.display_duration
            entry.handle = self.scheduler.call_later(duration, lambda: self._remove(suggestion_id, "expired"))
        if self.on_show:
            self.on_show(entry.suggestion)

    def _remove(self, suggestion_id: str, reason: str) -> AmbientSuggestion | None:
        with self._lock:
            entry = self._entries.pop(suggestion_id, None)
            if entry is None:
                return None
            if entry.handle is not None:
                entry.handle.cancel()
        if self.on_hide:
            self.on_hide(entry.suggestion, reason)
        return entry.suggestion

    def accept(self, suggestion_id: str) -> AmbientSuggestion | None:
        return self._remove(suggestion_id, "accepted")

    def dismiss(self, suggestion_id: str) -> AmbientSuggestion | None:
        return self._remove(suggestion_id, "dismissed")

    def clear_item(self, item_id: str, hint_type: str | None = None):
        """Drop the hints about one item, optionally only those of one type."""
        with self._lock:
            ids = [
                sid
                for sid, e in self._entries.items()
                if e.suggestion.item_id == item_id and hint_type in (None, e.suggestion.type)
            ]
        for sid in ids:
            self._remove(sid, "cleared")

    def clear(self):
        with self._lock:
            ids = list(self._entries)
        for sid in ids:
            self._remove(sid, "cleared")
