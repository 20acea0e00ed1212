"""Data models for the ambient organizer."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Role = Literal["user", "assistant", "system"]
ModeKind = Literal["quickChat", "projectChat", "graduatingChat"]
Complexity = Literal["simple", "developing", "substantial", "projectWorthy"]
SuggestionType = Literal[
    "createNewProject",
    "addToExistingProject",
    "splitConversation",
    "graduateToProject",
    "tagConversation",
]
SuggestionTiming = Literal["immediate", "nextPause", "endOfSession", "manual"]
RelationshipType = Literal[
    "references",
    "builds_on",
    "similar_topic",
    "same_project",
    "version_of",
    "supplements",
    "contradicts",
    "implements",
]
GraduationReason = Literal[
    "highUsage", "crossChatReference", "aiSuggestion", "userPromotion", "projectRelevance"
]
NamingStyle = Literal["descriptive", "technical", "creative", "minimal"]
ContentType = Literal[
    "technicalDocumentation",
    "codeFile",
    "businessDocument",
    "creativeWriting",
    "dataFile",
    "imageFile",
    "reference",
    "tutorial",
    "specification",
    "unknown",
]
FileComplexity = Literal["simple", "moderate", "complex", "expert"]
AmbientType = Literal["relatedFile", "graduateFile", "compareFiles", "summarizeFile", "organizeFiles"]
RecommendationAction = Literal["reference", "upload", "compare", "summarize"]

COMPLEXITY_LEVELS: tuple[str, ...] = ("simple", "developing", "substantial", "projectWorthy")
SUGGESTION_TYPES: tuple[str, ...] = (
    "createNewProject",
    "addToExistingProject",
    "splitConversation",
    "graduateToProject",
    "tagConversation",
)
RELATIONSHIP_TYPES: tuple[str, ...] = (
    "references",
    "builds_on",
    "similar_topic",
    "same_project",
    "version_of",
    "supplements",
    "contradicts",
    "implements",
)
NAMING_STYLES: tuple[str, ...] = ("descriptive", "technical", "creative", "minimal")


def new_id() -> str:
    return str(uuid.uuid4())


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once created."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    references: tuple[str, ...] = ()
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "references": list(self.references),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            role=data["role"],
            content=data.get("content", ""),
            timestamp=_dt(data.get("timestamp")) or datetime.now(),
            references=tuple(data.get("references", [])),
            id=data.get("id") or new_id(),
        )


@dataclass(frozen=True)
class ChatMode:
    """Where a conversation lives: loose, attached to a project, or on its way there."""

    kind: ModeKind = "quickChat"
    project_id: str | None = None

    def __str__(self) -> str:
        if self.kind == "projectChat":
            return f"projectChat({self.project_id})"
        return self.kind


@dataclass
class ConversationTransition:
    from_mode: ChatMode
    to_mode: ChatMode
    timestamp: datetime
    reason: str
    user_initiated: bool


@dataclass
class ContextShift:
    """The conversation may be drifting to a new subject."""

    from_topic: str
    to_topic: str
    confidence: float
    suggested_action: str


@dataclass
class Suggestion:
    """An organization suggestion proposed to the user."""

    type: SuggestionType
    message: str
    confidence: float
    timing: SuggestionTiming
    project_name: str | None = None
    existing_project_id: str | None = None
    actionable: bool = True
    title: str = ""
    primary_action: str = ""
    id: str = field(default_factory=new_id)


@dataclass
class Insight:
    """Result of one analysis pass. Recomputed wholesale, never persisted."""

    topic: str
    confidence: float
    suggested_project_name: str
    keywords: list[str]
    complexity: Complexity
    suggestion: Suggestion | None = None
    context_shift: ContextShift | None = None
    recent_content: str = ""


@dataclass
class Conversation:
    """The current chat session."""

    id: str = field(default_factory=new_id)
    messages: list[Message] = field(default_factory=list)
    mode: ChatMode = field(default_factory=ChatMode)
    session_start: datetime = field(default_factory=datetime.now)
    organized: bool = False
    pending_suggestions: list[Suggestion] = field(default_factory=list)
    title: str | None = None
    transitions: list[ConversationTransition] = field(default_factory=list)


@dataclass
class Relationship:
    """A typed, strength-scored link from one knowledge item to another."""

    related_item_id: str
    type: RelationshipType
    strength: float
    discovered_at: datetime = field(default_factory=datetime.now)
    evidence: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "related_item_id": self.related_item_id,
            "type": self.type,
            "strength": self.strength,
            "discovered_at": _iso(self.discovered_at),
            "evidence": list(self.evidence),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Relationship":
        return cls(
            related_item_id=data["related_item_id"],
            type=data["type"],
            strength=float(data["strength"]),
            discovered_at=_dt(data.get("discovered_at")) or datetime.now(),
            evidence=list(data.get("evidence", [])),
        )


@dataclass
class GraduationMetrics:
    usage_count: int
    unique_chats_referenced: int
    average_relevance: float
    days_since_last_use: int
    cross_project_references: int = 0


@dataclass
class GraduationEvent:
    """One promotion of a chat-scoped item to project scope."""

    timestamp: datetime
    from_chat_id: str | None
    reason: GraduationReason
    metrics: GraduationMetrics
    user_confirmed: bool

    def to_dict(self) -> dict:
        return {
            "timestamp": _iso(self.timestamp),
            "from_chat_id": self.from_chat_id,
            "reason": self.reason,
            "metrics": {
                "usage_count": self.metrics.usage_count,
                "unique_chats_referenced": self.metrics.unique_chats_referenced,
                "average_relevance": self.metrics.average_relevance,
                "days_since_last_use": self.metrics.days_since_last_use,
                "cross_project_references": self.metrics.cross_project_references,
            },
            "user_confirmed": self.user_confirmed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GraduationEvent":
        return cls(
            timestamp=_dt(data["timestamp"]),
            from_chat_id=data.get("from_chat_id"),
            reason=data["reason"],
            metrics=GraduationMetrics(**data["metrics"]),
            user_confirmed=bool(data.get("user_confirmed", False)),
        )


@dataclass
class ContentMetadata:
    """What was learned from a file's extracted text."""

    content_type: ContentType = "unknown"
    extracted_text: str | None = None
    word_count: int = 0
    reading_time_minutes: int = 0
    complexity: FileComplexity = "simple"
    topics: list[str] = field(default_factory=list)
    token_count: int = 0


@dataclass
class KnowledgeItem:
    """An uploaded file tracked by the engine."""

    name: str
    original_name: str
    extension: str
    size: int
    local_path: str
    project_id: str | None = None
    project_level: bool = False
    chat_id: str | None = None
    metadata: ContentMetadata = field(default_factory=ContentMetadata)
    relationships: list[Relationship] = field(default_factory=list)
    usage_count: int = 0
    relevance_score: float = 0.0
    last_referenced: datetime | None = None
    referencing_chats: list[str] = field(default_factory=list)
    graduation_history: list[GraduationEvent] = field(default_factory=list)
    summary: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    @property
    def text(self) -> str | None:
        return self.metadata.extracted_text

    def is_related_to(self, other_id: str) -> bool:
        return any(r.related_item_id == other_id for r in self.relationships)

    def to_dict(self) -> dict:
        meta = self.metadata
        return {
            "id": self.id,
            "name": self.name,
            "original_name": self.original_name,
            "extension": self.extension,
            "size": self.size,
            "local_path": self.local_path,
            "project_id": self.project_id,
            "project_level": self.project_level,
            "chat_id": self.chat_id,
            "metadata": {
                "content_type": meta.content_type,
                "extracted_text": meta.extracted_text,
                "word_count": meta.word_count,
                "reading_time_minutes": meta.reading_time_minutes,
                "complexity": meta.complexity,
                "topics": list(meta.topics),
                "token_count": meta.token_count,
            },
            "relationships": [r.to_dict() for r in self.relationships],
            "usage_count": self.usage_count,
            "relevance_score": self.relevance_score,
            "last_referenced": _iso(self.last_referenced),
            "referencing_chats": list(self.referencing_chats),
            "graduation_history": [g.to_dict() for g in self.graduation_history],
            "summary": self.summary,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KnowledgeItem":
        return cls(
            id=data["id"],
            name=data["name"],
            original_name=data.get("original_name", data["name"]),
            extension=data.get("extension", ""),
            size=int(data.get("size", 0)),
            local_path=data.get("local_path", ""),
            project_id=data.get("project_id"),
            project_level=bool(data.get("project_level", False)),
            chat_id=data.get("chat_id"),
            metadata=ContentMetadata(**data.get("metadata", {})),
            relationships=[Relationship.from_dict(r) for r in data.get("relationships", [])],
            usage_count=int(data.get("usage_count", 0)),
            relevance_score=float(data.get("relevance_score", 0.0)),
            last_referenced=_dt(data.get("last_referenced")),
            referencing_chats=list(data.get("referencing_chats", [])),
            graduation_history=[GraduationEvent.from_dict(g) for g in data.get("graduation_history", [])],
            summary=data.get("summary"),
            created_at=_dt(data.get("created_at")) or datetime.now(),
        )


@dataclass
class UserPatterns:
    """What the engine has learned about how this user likes to organize."""

    organization_preferences: dict[str, float] = field(default_factory=dict)
    naming_style: NamingStyle = "descriptive"
    dismissed_suggestions: list[str] = field(default_factory=list)

    def weight(self, suggestion_type: str) -> float:
        return self.organization_preferences.get(suggestion_type, 0.5)

    def to_dict(self) -> dict:
        return {
            "organization_preferences": dict(self.organization_preferences),
            "naming_style": self.naming_style,
            "dismissed_suggestions": list(self.dismissed_suggestions),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserPatterns":
        style = data.get("naming_style", "descriptive")
        return cls(
            organization_preferences={k: float(v) for k, v in data.get("organization_preferences", {}).items()},
            naming_style=style if style in NAMING_STYLES else "descriptive",
            dismissed_suggestions=list(data.get("dismissed_suggestions", [])),
        )


@dataclass
class Project:
    """A persisted project a conversation can graduate into."""

    title: str
    description: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    messages: list[Message] = field(default_factory=list)
    summaries: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": _iso(self.created_at),
            "messages": [m.to_dict() for m in self.messages],
            "summaries": dict(self.summaries),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            created_at=_dt(data.get("created_at")) or datetime.now(),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            summaries=dict(data.get("summaries", {})),
        )


@dataclass
class FileRecord:
    """A file copied into the knowledge store."""

    name: str
    original_name: str
    extension: str
    size: int
    local_path: str


@dataclass
class AmbientSuggestion:
    """A time-bounded hint about a file, shown without being asked for."""

    type: AmbientType
    title: str
    subtitle: str
    action_text: str
    item_id: str | None
    confidence: float
    show_delay: float
    display_duration: float
    id: str = field(default_factory=new_id)


@dataclass
class ContextualRecommendation:
    title: str
    description: str
    item_ids: list[str]
    action: RecommendationAction
    confidence: float
