"""Tests for timers, debouncing and suggestion lifecycles."""

import pytest

from ambient_organizer.models import AmbientSuggestion
from ambient_organizer.preferences import PreferenceLearner
from ambient_organizer.scheduler import AmbientBoard, Debouncer, Handle, SuggestionScheduler, ThreadScheduler
from ambient_organizer.suggestions import make_suggestion


def _suggestion(timing="immediate", suggestion_type="createNewProject"):
    return make_suggestion(suggestion_type, "Create a project?", 0.95, timing, project_name="Cats")


def _hint(hint_type="summarizeFile", item_id="item-1", show_delay=5.0, display_duration=15.0):
    return AmbientSuggestion(
        type=hint_type,
        title="Hint",
        subtitle="",
        action_text="Do it",
        item_id=item_id,
        confidence=0.9,
        show_delay=show_delay,
        display_duration=display_duration,
    )


class Recorder:
    """Collects callback invocations."""

    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)


class TestManualScheduler:
    def test_call_later(self, scheduler):
        calls = Recorder()
        scheduler.call_later(2.0, calls)
        scheduler.advance(1.5)
        assert calls.calls == []
        scheduler.advance(0.5)
        assert len(calls.calls) == 1

    def test_cancel(self, scheduler):
        calls = Recorder()
        handle = scheduler.call_later(2.0, calls)
        handle.cancel()
        scheduler.advance(5)
        assert calls.calls == []
        assert scheduler.pending() == 0

    def test_call_every(self, scheduler):
        calls = Recorder()
        handle = scheduler.call_every(3.0, calls)
        scheduler.advance(10)
        assert len(calls.calls) == 3
        handle.cancel()
        scheduler.advance(10)
        assert len(calls.calls) == 3

    def test_runs_in_due_order(self, scheduler):
        order = []
        scheduler.call_later(2.0, lambda: order.append("second"))
        scheduler.call_later(1.0, lambda: order.append("first"))
        scheduler.advance(3)
        assert order == ["first", "second"]


class TestThreadScheduler:
    def test_cancelled_handles_are_forgotten(self):
        threads = ThreadScheduler()
        for _ in range(50):
            threads.call_later(60, lambda: None).cancel()
        assert threads.pending() == 0

    def test_cancelled_repeating_handle_is_forgotten(self):
        threads = ThreadScheduler()
        threads.call_every(60, lambda: None).cancel()
        assert threads.pending() == 0

    def test_shutdown(self):
        threads = ThreadScheduler()
        handle = threads.call_later(60, lambda: None)
        threads.shutdown()
        assert handle.cancelled
        assert threads.pending() == 0


class CapturingScheduler:
    """Hands out handles and keeps callbacks for the test to run by hand."""

    def __init__(self):
        self.calls = []

    def call_later(self, delay, fn):
        handle = Handle()
        self.calls.append((handle, fn))
        return handle


class TestDebouncer:
    def test_burst_collapses_to_one_call(self, scheduler):
        calls = Recorder()
        debouncer = Debouncer(scheduler, 2.0, calls)

        debouncer.trigger()
        scheduler.advance(1)
        debouncer.trigger()
        scheduler.advance(1)
        debouncer.trigger()
        scheduler.advance(1.9)
        assert calls.calls == []

        scheduler.advance(0.2)
        assert len(calls.calls) == 1

    def test_cancel(self, scheduler):
        calls = Recorder()
        debouncer = Debouncer(scheduler, 2.0, calls)
        debouncer.trigger()
        debouncer.cancel()
        scheduler.advance(5)
        assert calls.calls == []

    def test_stale_fire_keeps_newer_trigger_cancellable(self):
        timers = CapturingScheduler()
        calls = Recorder()
        debouncer = Debouncer(timers, 2.0, calls)

        debouncer.trigger()
        debouncer.trigger()
        (stale_handle, stale_fire), (newer_handle, _) = timers.calls
        assert stale_handle.cancelled

        stale_fire()
        assert calls.calls == []

        debouncer.cancel()
        assert newer_handle.cancelled


class TestSuggestionScheduler:
    """Tests for the one-slot-per-conversation suggestion lifecycle."""

    @pytest.fixture
    def learner(self):
        return PreferenceLearner()

    @pytest.fixture
    def surfaced(self):
        return Recorder()

    @pytest.fixture
    def cleared(self):
        return Recorder()

    @pytest.fixture
    def slots(self, scheduler, learner, surfaced, cleared):
        return SuggestionScheduler(scheduler, learner, on_surface=surfaced, on_clear=cleared)

    def test_immediate_surfaces_at_once(self, slots, surfaced):
        suggestion = _suggestion()
        assert slots.offer("c1", suggestion)
        assert slots.active("c1") is suggestion
        assert surfaced.calls == [("c1", suggestion)]

    def test_second_offer_refused(self, slots, surfaced):
        first = _suggestion()
        assert slots.offer("c1", first)
        assert not slots.offer("c1", _suggestion())
        assert slots.active("c1") is first
        assert len(surfaced.calls) == 1

    def test_conversations_are_independent(self, slots):
        assert slots.offer("c1", _suggestion())
        assert slots.offer("c2", _suggestion())

    def test_next_pause(self, slots, scheduler):
        suggestion = _suggestion("nextPause")
        slots.offer("c1", suggestion)
        assert slots.active("c1") is None
        assert slots.pending("c1") is suggestion
        assert slots.is_occupied("c1")

        scheduler.advance(3)
        assert slots.active("c1") is suggestion

    def test_end_of_session(self, slots, scheduler):
        suggestion = _suggestion("endOfSession")
        slots.offer("c1", suggestion)
        scheduler.advance(60)
        assert slots.active("c1") is None

        slots.end_session("c1")
        assert slots.active("c1") is suggestion

    def test_manual_waits_for_surface_now(self, slots, scheduler):
        suggestion = _suggestion("manual")
        slots.offer("c1", suggestion)
        slots.end_session("c1")
        scheduler.advance(60)
        assert slots.active("c1") is None

        assert slots.surface_now("c1") is suggestion
        assert slots.active("c1") is suggestion

    def test_expiry_leaves_weights_alone(self, slots, scheduler, learner, cleared):
        suggestion = _suggestion()
        slots.offer("c1", suggestion)

        scheduler.advance(14)
        assert slots.active("c1") is suggestion
        scheduler.advance(1)

        assert slots.active("c1") is None
        assert not slots.is_occupied("c1")
        assert cleared.calls == [("c1", suggestion, "expired")]
        assert learner.weight("createNewProject") == 0.5
        assert learner.patterns.dismissed_suggestions == []

    def test_expiry_counts_from_surfacing(self, slots, scheduler):
        slots.offer("c1", _suggestion("nextPause"))
        scheduler.advance(3)
        scheduler.advance(14)
        assert slots.active("c1") is not None
        scheduler.advance(1)
        assert slots.active("c1") is None

    def test_accept(self, slots, scheduler, learner, cleared):
        suggestion = _suggestion()
        slots.offer("c1", suggestion)

        assert slots.accept("c1") is suggestion
        assert learner.weight("createNewProject") == pytest.approx(0.6)
        assert not slots.is_occupied("c1")

        scheduler.advance(30)
        assert cleared.calls == [("c1", suggestion, "accepted")]

    def test_dismiss(self, slots, learner, cleared):
        suggestion = _suggestion()
        slots.offer("c1", suggestion)

        assert slots.dismiss("c1") is suggestion
        assert learner.weight("createNewProject") == pytest.approx(0.4)
        assert learner.patterns.dismissed_suggestions == ["createNewProject"]
        assert cleared.calls[-1][2] == "dismissed"

    @pytest.mark.parametrize("reaction", ["accept", "dismiss"])
    def test_learner_sees_suggestion_before_it_clears(self, scheduler, reaction):
        class SlotWatcher:
            def __init__(self):
                self.slots = None
                self.seen = []

            def record_accept(self, suggestion_type):
                self.seen.append(self.slots.active("c1"))

            record_dismiss = record_accept

        watcher = SlotWatcher()
        slots = SuggestionScheduler(scheduler, watcher)
        watcher.slots = slots
        suggestion = _suggestion()
        slots.offer("c1", suggestion)

        getattr(slots, reaction)("c1")

        assert watcher.seen == [suggestion]
        assert not slots.is_occupied("c1")

    def test_accept_with_nothing_in_flight(self, slots, learner):
        assert slots.accept("c1") is None
        assert learner.weight("createNewProject") == 0.5

    def test_clear_frees_slot_without_learning(self, slots, learner, cleared):
        slots.offer("c1", _suggestion("nextPause"))
        slots.clear("c1")
        assert not slots.is_occupied("c1")
        assert learner.weight("createNewProject") == 0.5
        assert cleared.calls[-1][2] == "cleared"


class TestAmbientBoard:
    """Tests for time-boxed file hints."""

    @pytest.fixture
    def shown(self):
        return Recorder()

    @pytest.fixture
    def hidden(self):
        return Recorder()

    @pytest.fixture
    def board(self, scheduler, shown, hidden):
        return AmbientBoard(scheduler, on_show=shown, on_hide=hidden)

    def test_show_then_hide(self, board, scheduler, shown, hidden):
        hint = _hint()
        assert board.post(hint)
        assert board.visible() == []
        assert board.queued() == [hint]

        scheduler.advance(5)
        assert board.visible() == [hint]
        assert shown.calls == [(hint,)]

        scheduler.advance(15)
        assert board.visible() == []
        assert hidden.calls == [(hint, "expired")]

    def test_graduate_hint_once_per_item(self, board):
        assert board.post(_hint("graduateFile", "item-1"))
        assert not board.post(_hint("graduateFile", "item-1"))
        assert board.post(_hint("graduateFile", "item-2"))
        assert board.has_graduate_hint("item-1")

    def test_graduate_hint_allowed_again_after_it_ends(self, board, scheduler):
        board.post(_hint("graduateFile", "item-1", show_delay=2.0))
        scheduler.advance(17)
        assert not board.has_graduate_hint("item-1")
        assert board.post(_hint("graduateFile", "item-1"))

    def test_accept_cancels_timers(self, board, scheduler, shown, hidden):
        hint = _hint()
        board.post(hint)
        assert board.accept(hint.id) is hint
        scheduler.advance(30)
        assert shown.calls == []
        assert hidden.calls == [(hint, "accepted")]

    def test_dismiss_unknown(self, board):
        assert board.dismiss("missing") is None

    def test_clear_item(self, board):
        board.post(_hint(item_id="item-1"))
        board.post(_hint(item_id="item-2"))
        board.clear_item("item-1")
        assert [h.item_id for h in board.queued()] == ["item-2"]
