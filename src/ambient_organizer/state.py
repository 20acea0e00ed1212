"""Conversation modes, graduation to projects and conversational commands."""

import string
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Literal

from . import rules
from .errors import InvalidTransition, TargetNotFound
from .models import ChatMode, Conversation, ConversationTransition, Insight, Message, Project
from .suggestions import fallback_name

CommandKind = Literal["create", "move", "organize", "split"]

GRADUATE_REASON = "User graduated conversation to project"
MOVE_REASON = "User moved conversation to existing project"


class ConversationManager:
    """Owns the live conversation and moves it between modes."""

    def __init__(self, conversation: Conversation | None = None, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self.conversation = conversation or Conversation(session_start=clock())
        self._lock = threading.RLock()

    @property
    def mode(self) -> ChatMode:
        return self.conversation.mode

    @property
    def messages(self) -> list[Message]:
        return self.conversation.messages

    def add_message(self, message: Message):
        with self._lock:
            self.conversation.messages.append(message)

    def reset_session(self) -> Conversation:
        with self._lock:
            self.conversation = Conversation(session_start=self.clock())
            return self.conversation

    def _check_open(self, to_kind: str):
        if self.conversation.mode.kind == "projectChat":
            raise InvalidTransition(self.conversation.mode, to_kind)

    def _transition(self, to_mode: ChatMode, reason: str, user_initiated: bool = True):
        conv = self.conversation
        conv.transitions.append(
            ConversationTransition(
                from_mode=conv.mode,
                to_mode=to_mode,
                timestamp=self.clock(),
                reason=reason,
                user_initiated=user_initiated,
            )
        )
        conv.mode = to_mode

    def begin_graduation(self, reason: str = "Organization suggestion accepted"):
        """Mark a quick chat as on its way to a project."""
        with self._lock:
            self._check_open("graduatingChat")
            if self.conversation.mode.kind == "graduatingChat":
                return
            self._transition(ChatMode("graduatingChat"), reason)

    def graduate_to_project(self, name: str, description: str, projects: list[Project]) -> Project:
        """Create a project from this conversation and attach to it."""
        with self._lock:
            self._check_open("projectChat")
            conv = self.conversation
            project = Project(
                title=name,
                description=description,
                created_at=self.clock(),
                messages=list(conv.messages),
                summaries={"project": "", "chat": self.chat_summary()},
            )
            projects.append(project)
            self._transition(ChatMode("projectChat", project.id), GRADUATE_REASON)
            conv.organized = True
            conv.title = name
            conv.pending_suggestions.clear()
            return project

    def move_to_existing_project(self, project_id: str, projects: list[Project]) -> Project:
        """Append this conversation to an existing project."""
        with self._lock:
            self._check_open("projectChat")
            project = next((p for p in projects if p.id == project_id), None)
            if project is None:
                raise TargetNotFound("Project", project_id)
            conv = self.conversation
            project.messages.extend(conv.messages)
            self._transition(ChatMode("projectChat", project.id), MOVE_REASON)
            conv.organized = True
            conv.pending_suggestions.clear()
            return project

    def chat_summary(self) -> str:
        conv = self.conversation
        if not conv.messages:
            return ""
        lines = [f"{'User' if m.role == 'user' else 'AI'}: {m.content}" for m in conv.messages]
        started = conv.session_start.strftime("%b %d, %Y %H:%M")
        return f"Chat started {started}\n\n" + "\n".join(lines)

    def describe(self, insight: Insight | None = None) -> str:
        """One-line description of the session so far."""
        conv = self.conversation
        if not conv.messages:
            return "No conversation yet"
        count = len(conv.messages)
        duration = _format_duration((self.clock() - conv.session_start).total_seconds())
        if insight is not None:
            return f"{count} messages • {insight.topic} • {duration}"
        user_count = sum(1 for m in conv.messages if m.role == "user")
        return f"{count} messages ({user_count} from you, {count - user_count} responses) • {duration}"


def _format_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    if minutes < 1:
        return "just started"
    if minutes == 1:
        return "1 minute"
    if minutes < 60:
        return f"{minutes} minutes"
    hours = minutes // 60
    return f"{hours} hour{'' if hours == 1 else 's'}"


# Conversational commands


@dataclass
class Command:
    kind: CommandKind
    project_name: str | None = None


@dataclass
class CommandResult:
    command: Command
    message: str
    project: Project | None = None


def _title_words(words: list[str]) -> str:
    return " ".join(w.capitalize() for w in words)


def extract_project_name(text: str, pattern: str) -> str | None:
    """Pull a project name out of a command following ``pattern``."""
    start = text.find(pattern)
    if start < 0:
        return None
    after = text[start + len(pattern):].strip()

    for connector in rules.NAME_CONNECTORS:
        index = after.find(connector)
        if index >= 0:
            words = after[index + len(connector):].strip().split()[:4]
            name = _title_words(words).strip(string.punctuation + " ")
            return name or None

    name = _title_words(after.split()[:3]).strip(string.punctuation + " ")
    return name or None


def parse_command(text: str) -> Command | None:
    """Recognize organization requests typed into the chat."""
    lowered = text.lower().strip()
    for group in rules.COMMAND_PATTERNS:
        for phrase in group.phrases:
            if phrase in lowered:
                name = extract_project_name(lowered, phrase) if group.kind in ("create", "move") else None
                return Command(group.kind, name)
    return None


def resolve_project(name: str | None, projects: list[Project]) -> Project:
    """Find a project whose title contains ``name``."""
    if name:
        needle = name.lower()
        for project in projects:
            if needle in project.title.lower():
                return project
    raise TargetNotFound("Project", name or "(no name given)")


def execute_command(
    manager: ConversationManager,
    command: Command,
    projects: list[Project],
    insight: Insight | None = None,
    today: date | None = None,
) -> CommandResult:
    """Carry out a create or move command. Organize and split are reported back."""
    if command.kind == "create":
        name = command.project_name
        if not name:
            name = insight.suggested_project_name if insight else fallback_name(manager.messages, today)
        project = manager.graduate_to_project(name, "", projects)
        return CommandResult(command, f"Created project '{project.title}'", project)

    if command.kind == "move":
        project = resolve_project(command.project_name, projects)
        manager.move_to_existing_project(project.id, projects)
        return CommandResult(command, f"Moved conversation to '{project.title}'", project)

    if command.kind == "organize":
        return CommandResult(command, "Looking for a way to organize this conversation")

    return CommandResult(command, "Marking a split point in this conversation")
