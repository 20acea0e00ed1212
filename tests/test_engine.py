"""Tests for the engine facade, driven by virtual time."""

import pytest

from ambient_organizer.db import Database
from ambient_organizer.engine import OrganizerEngine
from ambient_organizer.errors import TargetNotFound
from ambient_organizer.models import Message, Project


class Events:
    """Records engine notifications."""

    def __init__(self):
        self.seen = []

    def __call__(self, event, payload):
        self.seen.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.seen if name == event]


@pytest.fixture
def events(engine):
    recorder = Events()
    engine.state.subscribe(recorder)
    return recorder


def _feed(engine, messages):
    for message in messages:
        engine.on_message(message)


class TestAnalysis:
    """Tests for debounced analysis."""

    def test_burst_of_messages_analyzed_once(self, engine, scheduler, events, make_messages):
        for message in make_messages("hello", "hi there", "how are you"):
            engine.on_message(message)
            scheduler.advance(0.5)
        assert events.named("insight") == []

        scheduler.advance(2)
        assert len(events.named("insight")) == 1
        assert len(events.named("message_added")) == 3

    def test_project_worthy_surfaces_immediately(self, engine, scheduler, events, project_worthy_messages):
        _feed(engine, project_worthy_messages)
        scheduler.advance(2)

        active = engine.state.active_suggestion
        assert active.type == "createNewProject"
        assert active.confidence == 0.95
        assert engine.suggestions.active(engine.conversation.id) is active
        assert events.named("suggestion_surfaced") == [active]

    def test_developing_waits_for_pause(self, engine, scheduler, developing_messages):
        _feed(engine, developing_messages)
        scheduler.advance(2)
        assert engine.state.active_suggestion is None
        assert engine.suggestions.pending(engine.conversation.id).type == "graduateToProject"

        scheduler.advance(3)
        assert engine.state.active_suggestion.type == "graduateToProject"

    def test_unanswered_suggestion_expires(self, engine, scheduler, events, project_worthy_messages):
        _feed(engine, project_worthy_messages)
        scheduler.advance(2)
        scheduler.advance(15)

        assert engine.state.active_suggestion is None
        assert events.named("suggestion_cleared")[-1]["reason"] == "expired"
        assert engine.patterns.organization_preferences == {}

    def test_message_references_record_usage(self, engine, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("Some notes")
        item = engine.ingest_file(path, "p1")

        engine.on_message(Message("user", "see my notes", references=(item.id, "missing")))

        stored = engine.knowledge.get(item.id)
        assert stored.usage_count == 1
        assert stored.referencing_chats == [engine.conversation.id]


class TestTriggerOrganization:
    """Tests for explicit organization requests."""

    def test_double_trigger_is_a_no_op(self, engine, make_messages):
        _feed(engine, make_messages("let's plan the project", "ok", "first step"))

        first = engine.trigger_organization()
        second = engine.trigger_organization()

        assert first is not None
        assert second is None
        assert engine.state.active_suggestion is first

    def test_manual_trigger_surfaces_pending_suggestion(self, engine, developing_messages):
        _feed(engine, developing_messages)
        engine.debouncer.cancel()
        engine.analyze_now()
        pending = engine.suggestions.pending(engine.conversation.id)
        assert pending.type == "graduateToProject"

        assert engine.trigger_organization() is None
        assert engine.state.active_suggestion is None

        assert engine.trigger_organization(manual=True) is pending
        assert engine.state.active_suggestion is pending
        assert engine.trigger_organization(manual=True) is None

    def test_needs_three_messages_unless_manual(self, engine, make_messages):
        _feed(engine, make_messages("hello", "hi"))
        assert engine.trigger_organization() is None
        assert engine.trigger_organization(manual=True) is not None

    def test_generic_suggestion_without_analysis(self, engine, make_messages, clock):
        _feed(engine, make_messages("let's plan the project", "ok", "first step"))
        suggestion = engine.trigger_organization()

        assert suggestion.type == "graduateToProject"
        assert suggestion.confidence == 0.7
        assert suggestion.project_name == "Project Planning - Mar 02"


class TestAcceptDismiss:
    """Tests for reacting to surfaced suggestions."""

    def test_accept_creates_project(self, engine, scheduler, events, project_worthy_messages):
        _feed(engine, project_worthy_messages)
        scheduler.advance(2)

        project = engine.accept_suggestion()

        assert project.title == "Detailed Discussion"
        assert engine.projects == [project]
        assert engine.conversation.mode.kind == "projectChat"
        assert engine.conversation.organized
        assert engine.learner.weight("createNewProject") == pytest.approx(0.6)
        assert engine.state.active_suggestion is None
        kinds = [t.to_mode.kind for t in engine.conversation.transitions]
        assert kinds == ["graduatingChat", "projectChat"]

    def test_accept_adds_to_existing_project(self, engine, scheduler, developing_messages):
        backend = Project(title="Backend Development")
        engine.projects.append(backend)
        _feed(engine, developing_messages)
        scheduler.advance(5)

        assert engine.accept_suggestion() is backend
        assert len(backend.messages) == 6
        assert engine.conversation.mode.project_id == backend.id

    def test_dismiss(self, engine, scheduler, project_worthy_messages):
        _feed(engine, project_worthy_messages)
        scheduler.advance(2)

        dismissed = engine.dismiss_suggestion()

        assert dismissed.type == "createNewProject"
        assert engine.learner.weight("createNewProject") == pytest.approx(0.4)
        assert engine.patterns.dismissed_suggestions == ["createNewProject"]
        assert engine.conversation.mode.kind == "quickChat"

    def test_nothing_to_accept(self, engine):
        assert engine.accept_suggestion() is None

    def test_no_suggestions_after_graduation(self, engine, scheduler, project_worthy_messages, make_messages):
        _feed(engine, project_worthy_messages)
        scheduler.advance(2)
        engine.accept_suggestion()

        _feed(engine, make_messages("more", "words"))
        scheduler.advance(2)
        assert engine.suggestions.is_occupied(engine.conversation.id) is False

    def test_split_starts_new_session(self, engine, make_messages):
        _feed(engine, make_messages("cats", "dogs", "react", "jsx"))
        old_id = engine.conversation.id

        result = engine.execute("split this conversation")
        assert result.command.kind == "split"
        engine.accept_suggestion()

        assert engine.conversation.id != old_id
        assert [m.content for m in engine.conversation.messages] == ["react", "jsx"]


class TestCommands:
    def test_create_named_project(self, engine, make_messages):
        _feed(engine, make_messages("hello", "hi"))

        result = engine.execute("create a project called Feline-Lab")

        assert result.project.title == "Feline-lab"
        assert engine.conversation.mode.kind == "projectChat"
        assert engine.patterns.naming_style == "technical"

    def test_move_to_unknown_project(self, engine, make_messages):
        _feed(engine, make_messages("hello", "hi"))
        with pytest.raises(TargetNotFound):
            engine.execute("move this to nowhere")
        assert engine.conversation.mode.kind == "quickChat"

    def test_organize_command(self, engine, make_messages):
        _feed(engine, make_messages("hello", "hi"))
        result = engine.execute("please organize this")
        assert result.command.kind == "organize"
        assert engine.state.active_suggestion is not None

    def test_plain_text(self, engine):
        assert engine.execute("what a lovely day") is None

    def test_find_project(self, engine):
        project = Project(title="Cats")
        engine.projects.append(project)
        assert engine.find_project("cats") is project
        assert engine.find_project(project.id) is project
        with pytest.raises(TargetNotFound):
            engine.find_project("dogs")


class TestKnowledgeFiles:
    """Tests for file ingestion, sweeps and graduation hints."""

    def test_ingest_links_files(self, engine, tmp_path, events):
        (tmp_path / "glossary.md").write_text("Terms and definitions")
        (tmp_path / "design.md").write_text("Please read glossary before editing")

        glossary = engine.ingest_file(tmp_path / "glossary.md", "p1")
        design = engine.ingest_file(tmp_path / "design.md", "p1")

        assert design.relationships[0].related_item_id == glossary.id
        assert engine.knowledge.get(glossary.id).relationships[0].related_item_id == design.id
        assert len(events.named("item_ingested")) == 2
        assert events.named("relationships_discovered") == [design]

    def test_large_file_gets_summary_hint(self, engine, scheduler, tmp_path):
        path = tmp_path / "big.txt"
        path.write_text("word " * 1200)

        engine.ingest_file(path, "p1")
        assert [h.type for h in engine.board.queued()] == ["summarizeFile"]
        assert engine.state.ambient == []

        scheduler.advance(5)
        assert [h.type for h in engine.state.ambient] == ["summarizeFile"]
        scheduler.advance(15)
        assert engine.state.ambient == []

    def test_graduation_hint_posted_once(self, engine, tmp_path):
        (tmp_path / "glossary.md").write_text("Terms and definitions")
        (tmp_path / "design.md").write_text("Please read glossary before editing")
        glossary = engine.ingest_file(tmp_path / "glossary.md", "p1", chat_id="c1")
        engine.ingest_file(tmp_path / "design.md", "p1", chat_id="c1")
        for _ in range(3):
            engine.record_usage(glossary.id, "c1")

        engine.relevance_sweep()
        engine.relevance_sweep()

        hints = [h for h in engine.board.queued() if h.type == "graduateFile"]
        assert [h.item_id for h in hints] == [glossary.id]

        engine.accept_ambient(hints[0].id)
        item = engine.knowledge.get(glossary.id)
        assert item.project_level
        assert item.chat_id is None
        assert len(item.graduation_history) == 1

    def test_graduation_clears_other_hints_for_item(self, engine, tmp_path):
        (tmp_path / "glossary.md").write_text("word " * 1200)
        (tmp_path / "design.md").write_text("Please read glossary before editing")
        glossary = engine.ingest_file(tmp_path / "glossary.md", "p1", chat_id="c1")
        engine.ingest_file(tmp_path / "design.md", "p1", chat_id="c1")
        for _ in range(5):
            engine.record_usage(glossary.id, "c1")
        engine.relevance_sweep()

        hints = {h.type: h for h in engine.board.queued() if h.item_id == glossary.id}
        assert set(hints) == {"summarizeFile", "graduateFile"}

        engine.accept_ambient(hints["graduateFile"].id)
        assert [h for h in engine.board.queued() if h.item_id == glossary.id] == []

    def test_remove_file(self, engine, tmp_path, events):
        (tmp_path / "glossary.md").write_text("word " * 1200)
        (tmp_path / "design.md").write_text("Please read glossary before editing")
        glossary = engine.ingest_file(tmp_path / "glossary.md", "p1")
        design = engine.ingest_file(tmp_path / "design.md", "p1")
        stored_copy = engine.files.path_for(glossary)
        assert stored_copy.exists()

        engine.remove_file(glossary.id)

        assert not stored_copy.exists()
        assert [item.id for item in engine.knowledge.items()] == [design.id]
        assert engine.knowledge.get(design.id).relationships == []
        assert [h for h in engine.board.queued() if h.item_id == glossary.id] == []
        assert events.named("item_removed")[0].id == glossary.id

    def test_summary_clears_summarize_hint(self, engine, tmp_path):
        (tmp_path / "big.txt").write_text("word " * 1200)
        item = engine.ingest_file(tmp_path / "big.txt", "p1")
        assert [h.type for h in engine.board.queued()] == ["summarizeFile"]

        engine.set_summary(item.id, "Lots of words")

        assert engine.knowledge.get(item.id).summary == "Lots of words"
        assert engine.board.queued() == []

    def test_periodic_sweeps(self, engine, scheduler, events):
        engine.start()
        scheduler.advance(300)
        assert len(events.named("relevance_updated")) == 1
        engine.stop()
        scheduler.advance(3600)
        assert len(events.named("relevance_updated")) == 1

    def test_contextual_files(self, engine, tmp_path):
        (tmp_path / "schema.md").write_text("database schema migration")
        engine.ingest_file(tmp_path / "schema.md", "p1")

        results = engine.contextual_files("database schema", "p1")
        assert [item.name for item, _ in results] == ["schema"]
        assert engine.contextual_files("database schema", "p2") == []


class TestPersistence:
    def test_state_reloads(self, config, tmp_path, scheduler, clock, project_worthy_messages):
        (tmp_path / "notes.md").write_text("Some notes")
        with Database(config.db_path) as db:
            engine = OrganizerEngine(config, db=db, scheduler=scheduler, clock=clock)
            engine.ingest_file(tmp_path / "notes.md", "p1")
            _feed(engine, project_worthy_messages)
            scheduler.advance(2)
            engine.accept_suggestion()
            engine.stop()

        with Database(config.db_path) as db:
            reloaded = OrganizerEngine(config, db=db, scheduler=scheduler, clock=clock)
            assert [i.name for i in reloaded.knowledge.items()] == ["notes"]
            assert [p.title for p in reloaded.projects] == ["Detailed Discussion"]
            assert reloaded.learner.weight("createNewProject") == pytest.approx(0.6)
            reloaded.stop()
