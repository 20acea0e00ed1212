"""Engine facade: wires analysis, scheduling, learning and state together."""

import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from rich.console import Console

from .config import OrganizerConfig, load_config
from .db import Database, ProjectStore
from .errors import PersistenceWriteFailed, TargetNotFound
from .files import FileStore
from .knowledge import KnowledgeBase
from .models import AmbientSuggestion, ContextualRecommendation, Insight, KnowledgeItem, Message, Project, Suggestion
from .preferences import PreferenceLearner
from .relevance import contextual_files
from .scheduler import AmbientBoard, Debouncer, SuggestionScheduler, ThreadScheduler
from .state import CommandResult, ConversationManager, execute_command, parse_command
from .suggestions import (
    ambient_suggestions_for,
    analyze_conversation,
    contextual_recommendations,
    generic_suggestion,
    graduation_suggestion,
    make_suggestion,
    suggestions_for,
)

console = Console(stderr=True)

Listener = Callable[[str, Any], None]

MIN_MESSAGES_TO_ORGANIZE = 3


class EngineState:
    """Observable engine state. Listeners receive ``(event, payload)``."""

    def __init__(self):
        self.insight: Insight | None = None
        self.active_suggestion: Suggestion | None = None
        self.ambient: list[AmbientSuggestion] = []
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: str, payload: Any = None):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(event, payload)


class OrganizerEngine:
    """Runs the organize loop for one chat session and its knowledge files."""

    def __init__(
        self,
        config: OrganizerConfig | None = None,
        db: Database | None = None,
        scheduler=None,
        file_store: FileStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or load_config()
        self.db = db
        self.clock = clock
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or ThreadScheduler()
        self.files = file_store or FileStore(self.config.knowledge_root)
        self.state = EngineState()
        self._lock = threading.RLock()
        self._periodic = []

        self.project_store = ProjectStore(db) if db else None
        self.projects: list[Project] = self.project_store.load_projects() if self.project_store else []

        self.learner = PreferenceLearner(
            db.load_patterns() if db else None,
            save=db.save_patterns if db else None,
            clamp_weights=self.config.clamp_weights,
        )
        self.knowledge = KnowledgeBase(
            db.load_items() if db else None,
            save=db.save_items if db else None,
            clock=clock,
        )
        self.conversations = ConversationManager(clock=clock)
        self.suggestions = SuggestionScheduler(
            self.scheduler,
            self.learner,
            pause_delay=self.config.pause_delay,
            timeout=self.config.suggestion_timeout,
            on_surface=self._on_surface,
            on_clear=self._on_clear,
        )
        self.board = AmbientBoard(self.scheduler, on_show=self._on_ambient_show, on_hide=self._on_ambient_hide)
        self.debouncer = Debouncer(self.scheduler, self.config.debounce_seconds, self.analyze_now)

    # Lifecycle

    def start(self):
        """Begin the periodic relevance and relationship sweeps."""
        self._periodic = [
            self.scheduler.call_every(self.config.relevance_interval, self.relevance_sweep),
            self.scheduler.call_every(self.config.relationship_interval, self.relationship_sweep),
        ]

    def stop(self):
        for handle in self._periodic:
            handle.cancel()
        self._periodic = []
        self.debouncer.cancel()
        if self._owns_scheduler:
            self.scheduler.shutdown()

    @property
    def conversation(self):
        return self.conversations.conversation

    @property
    def patterns(self):
        return self.learner.patterns

    # Conversation

    def on_message(self, message: Message):
        """Record a message and schedule a debounced analysis."""
        with self._lock:
            self.conversations.add_message(message)
            conversation_id = self.conversation.id
        for item_id in message.references:
            try:
                self.knowledge.record_usage(item_id, conversation_id)
            except TargetNotFound as e:
                console.print(f"[yellow]{e}[/yellow]")
        self.state.notify("message_added", message)
        self.debouncer.trigger()

    def analyze_now(self) -> Insight | None:
        """Analyze the conversation and queue whatever suggestion fits."""
        with self._lock:
            conv = self.conversation
            insight = analyze_conversation(conv.messages, self.projects, self.patterns, self.clock().date())
            self.state.insight = insight
            if insight is not None:
                self.state.notify("insight", insight)
            if insight is None or conv.organized or conv.mode.kind == "projectChat":
                return insight
            for suggestion in suggestions_for(insight):
                if self.suggestions.offer(conv.id, suggestion):
                    conv.pending_suggestions = [suggestion]
                    break
            return insight

    def trigger_organization(self, manual: bool = False) -> Suggestion | None:
        """Surface an organization suggestion now.

        A no-op while one is surfaced. A manual request surfaces a suggestion
        that is still waiting on its timing policy.
        """
        with self._lock:
            conv = self.conversation
            if self.suggestions.is_occupied(conv.id):
                if manual and self.suggestions.pending(conv.id) is not None:
                    return self.suggestions.surface_now(conv.id)
                return None
            if not manual and (conv.organized or len(conv.messages) < MIN_MESSAGES_TO_ORGANIZE):
                return None
            if conv.mode.kind == "projectChat":
                return None

            insight = self.state.insight or analyze_conversation(
                conv.messages, self.projects, self.patterns, self.clock().date()
            )
            if insight is not None and insight.suggestion is not None:
                suggestion = insight.suggestion
            else:
                suggestion = generic_suggestion(conv.messages, self.clock().date())

            if not self.suggestions.offer(conv.id, suggestion):
                return None
            conv.pending_suggestions = [suggestion]
            return self.suggestions.surface_now(conv.id)

    def end_session(self):
        self.suggestions.end_session(self.conversation.id)

    def new_session(self):
        with self._lock:
            self.suggestions.clear(self.conversation.id)
            self.debouncer.cancel()
            self.conversations.reset_session()
            self.state.insight = None
            self.state.notify("mode_changed", self.conversation.mode)

    def accept_suggestion(self) -> Project | None:
        """Accept the surfaced suggestion and carry it out."""
        with self._lock:
            conv = self.conversation
            suggestion = self.suggestions.accept(conv.id)
            if suggestion is None:
                return None
            conv.pending_suggestions = []

            if suggestion.type in ("createNewProject", "graduateToProject"):
                self.conversations.begin_graduation()
                name = suggestion.project_name
                if not name:
                    name = self.state.insight.suggested_project_name if self.state.insight else "New Project"
                return self.graduate_conversation(name)
            if suggestion.type == "addToExistingProject" and suggestion.existing_project_id:
                return self.move_to_project(suggestion.existing_project_id)
            if suggestion.type == "splitConversation":
                self._split()
            elif suggestion.type == "tagConversation" and self.state.insight:
                conv.title = self.state.insight.topic
            return None

    def dismiss_suggestion(self) -> Suggestion | None:
        with self._lock:
            suggestion = self.suggestions.dismiss(self.conversation.id)
            if suggestion is not None:
                self.conversation.pending_suggestions = []
            return suggestion

    def _split(self):
        """Continue in a fresh conversation seeded with the latest exchange."""
        carried = self.conversation.messages[-2:]
        self.conversations.reset_session()
        for message in carried:
            self.conversations.add_message(message)
        self.state.insight = None
        self.state.notify("mode_changed", self.conversation.mode)

    def graduate_conversation(self, name: str, description: str = "") -> Project:
        with self._lock:
            project = self.conversations.graduate_to_project(name, description, self.projects)
            self.suggestions.clear(self.conversation.id)
            self.learner.record_project_created(name)
            self.save_projects()
            self.state.notify("mode_changed", self.conversation.mode)
            return project

    def move_to_project(self, project_id: str) -> Project:
        with self._lock:
            project = self.conversations.move_to_existing_project(project_id, self.projects)
            self.suggestions.clear(self.conversation.id)
            self.save_projects()
            self.state.notify("mode_changed", self.conversation.mode)
            return project

    def execute(self, text: str) -> CommandResult | None:
        """Run a conversational command if the text contains one."""
        command = parse_command(text)
        if command is None:
            return None

        with self._lock:
            if command.kind == "organize":
                suggestion = self.trigger_organization(manual=True)
                result = CommandResult(command, suggestion.message if suggestion else "A suggestion is already showing")
            elif command.kind == "split":
                shift = self.state.insight.context_shift if self.state.insight else None
                message = shift.suggested_action if shift else "Split this conversation here?"
                offered = self.suggestions.offer(
                    self.conversation.id, make_suggestion("splitConversation", message, 0.8, "immediate")
                )
                result = CommandResult(command, message if offered else "A suggestion is already showing")
            else:
                result = execute_command(
                    self.conversations, command, self.projects, self.state.insight, self.clock().date()
                )
                self.suggestions.clear(self.conversation.id)
                if command.kind == "create" and result.project is not None:
                    self.learner.record_project_created(result.project.title)
                self.save_projects()
                self.state.notify("mode_changed", self.conversation.mode)
            return result

    def save_projects(self):
        if self.project_store is None:
            return
        try:
            self.project_store.save_projects(self.projects)
        except PersistenceWriteFailed as e:
            console.print(f"[yellow]Could not save projects: {e}[/yellow]")

    def find_project(self, ref: str) -> Project:
        for project in self.projects:
            if project.id == ref or project.title.lower() == ref.lower():
                return project
        raise TargetNotFound("Project", ref)

    # Knowledge files

    def ingest_file(
        self,
        path: str | Path,
        project_id: str,
        project_level: bool = False,
        chat_id: str | None = None,
    ) -> KnowledgeItem:
        """Store a file, learn about it, link it, and queue ambient hints."""
        project_level = project_level or chat_id is None
        record = self.files.ingest(path, project_id, project_level, chat_id)
        text = self.files.read_text(record)
        item = self.knowledge.ingest(record, text, project_id, project_level, chat_id)
        self.state.notify("item_ingested", item)
        if item.relationships:
            self.state.notify("relationships_discovered", item)

        peers = [p for p in self.knowledge.in_scope(project_id) if p.id != item.id]
        for hint in ambient_suggestions_for(item, peers):
            self.board.post(hint)
        return item

    def record_usage(self, item_id: str, chat_id: str | None = None) -> KnowledgeItem:
        return self.knowledge.record_usage(item_id, chat_id or self.conversation.id)

    def remove_file(self, item_id: str) -> KnowledgeItem:
        """Forget a file, its links and hints, and delete the stored copy."""
        item = self.knowledge.remove(item_id)
        self.board.clear_item(item_id)
        self.files.discard(item)
        self.state.notify("item_removed", item)
        return item

    def set_summary(self, item_id: str, summary: str) -> KnowledgeItem:
        item = self.knowledge.set_summary(item_id, summary)
        self.board.clear_item(item_id, "summarizeFile")
        return item

    def relevance_sweep(self) -> dict[str, float]:
        scores = self.knowledge.update_relevance()
        self.state.notify("relevance_updated", scores)
        self.check_graduation()
        return scores

    def relationship_sweep(self) -> int:
        linked = self.knowledge.discover_relationships()
        if linked:
            self.state.notify("relationships_discovered", linked)
        return linked

    def check_graduation(self) -> list[AmbientSuggestion]:
        posted = []
        for item in self.knowledge.graduation_candidates():
            hint = graduation_suggestion(item)
            if self.board.post(hint):
                posted.append(hint)
        return posted

    def accept_ambient(self, suggestion_id: str) -> AmbientSuggestion | None:
        hint = self.board.accept(suggestion_id)
        if hint is not None and hint.type == "graduateFile" and hint.item_id:
            self.knowledge.graduate_item(hint.item_id, reason="aiSuggestion", user_confirmed=True)
            self.board.clear_item(hint.item_id)
        return hint

    def dismiss_ambient(self, suggestion_id: str) -> AmbientSuggestion | None:
        return self.board.dismiss(suggestion_id)

    def recommendations(self, project_id: str | None) -> list[ContextualRecommendation]:
        return contextual_recommendations(self.conversation.messages, self.knowledge.in_scope(project_id))

    def contextual_files(self, query: str, project_id: str | None, limit: int = 5):
        return contextual_files(query, self.knowledge.in_scope(project_id), limit, self.clock())

    # Scheduler callbacks

    def _on_surface(self, conversation_id: str, suggestion: Suggestion):
        self.state.active_suggestion = suggestion
        self.state.notify("suggestion_surfaced", suggestion)

    def _on_clear(self, conversation_id: str, suggestion: Suggestion, reason: str):
        if self.state.active_suggestion is not None and self.state.active_suggestion.id == suggestion.id:
            self.state.active_suggestion = None
        self.state.notify("suggestion_cleared", {"suggestion": suggestion, "reason": reason})

    def _on_ambient_show(self, hint: AmbientSuggestion):
        self.state.ambient = self.board.visible()
        self.state.notify("ambient_shown", hint)

    def _on_ambient_hide(self, hint: AmbientSuggestion, reason: str):
        self.state.ambient = self.board.visible()
        self.state.notify("ambient_cleared", {"suggestion": hint, "reason": reason})
