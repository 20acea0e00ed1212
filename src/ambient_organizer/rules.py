"""Rule tables for topic, naming, content-type and command detection.

Every cascade here is ordered: the first matching rule wins. Matching is
plain substring containment on lower-cased text, so "cat" also
matches "category".
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Refinement:
    triggers: tuple[str, ...]
    label: str


@dataclass(frozen=True)
class TopicRule:
    """A label chosen when any trigger matches, optionally narrowed by refinements."""

    triggers: tuple[str, ...]
    label: str
    refinements: tuple[Refinement, ...] = ()

    def matches(self, text: str) -> bool:
        return any(t in text for t in self.triggers)

    def resolve(self, text: str) -> str:
        for refinement in self.refinements:
            if any(t in text for t in refinement.triggers):
                return refinement.label
        return self.label


@dataclass(frozen=True)
class AllOfRule:
    """Matches when every group has at least one trigger present."""

    groups: tuple[tuple[str, ...], ...]
    label: str

    def matches(self, text: str) -> bool:
        return all(any(t in text for t in group) for group in self.groups)

    def resolve(self, text: str) -> str:
        return self.label


@dataclass(frozen=True)
class CommandPatterns:
    kind: str
    phrases: tuple[str, ...]


def first_match(rules, text: str) -> str | None:
    """Return the label of the first rule matching ``text``."""
    for rule in rules:
        if rule.matches(text):
            return rule.resolve(text)
    return None


# Topic cascade

TOPIC_RULES: tuple[TopicRule, ...] = (
    TopicRule(
        ("cat", "dog", "animal"),
        "Animal Science",
        (
            Refinement(("eyes", "vision", "see"), "Animal Biology & Vision"),
            Refinement(("behavior", "training"), "Animal Behavior"),
        ),
    ),
    TopicRule(("science", "biology", "physics"), "Science Discussion"),
    TopicRule(("vision", "eyes", "sight"), "Vision & Optics"),
    TopicRule(("react", "component", "jsx"), "React Development"),
    TopicRule(("swift", "ios", "xcode"), "iOS Development"),
    TopicRule(("api", "endpoint", "backend"), "API Development"),
    TopicRule(("database", "sql", "query"), "Database Design"),
    TopicRule(
        ("design", "ui", "ux"),
        "Design Work",
        (Refinement(("app", "interface"), "App Design"),),
    ),
    TopicRule(("client", "project", "deadline"), "Client Work"),
    TopicRule(("story", "write", "blog"), "Writing Project"),
    TopicRule(("learn", "tutorial", "course"), "Learning Session"),
    TopicRule(
        ("why", "how", "explain"),
        "Q&A Session",
        (Refinement(("work", "function"), "How Things Work"),),
    ),
)

DETAILED_TOPIC = "Detailed Discussion"
GENERAL_TOPIC = "General Chat"
DETAILED_THRESHOLD = 100

# Keyword vocabulary

DOMAIN_KEYWORDS: frozenset[str] = frozenset(
    [
        # animals & biology
        "cats", "dogs", "animals", "eyes", "vision", "sight", "biology", "anatomy",
        "behavior", "training", "pets", "veterinary", "science", "nature",
        # technology
        "react", "swift", "ios", "api", "database", "frontend", "backend",
        "component", "function", "class", "interface", "endpoint", "query",
        "authentication", "deployment", "testing", "debugging", "optimization",
        # design
        "design", "user", "experience", "visual", "layout",
        "color", "typography", "branding", "prototype", "wireframe",
        # project & business
        "client", "project", "deadline", "requirements", "deliverable",
        "milestone", "planning", "architecture", "meeting",
        # learning
        "learn", "tutorial", "course", "education", "explain", "understand",
        "research", "study", "analysis", "knowledge", "information",
    ]
)
MAX_KEYWORDS = 10

CONVERSATION_TECH_TERMS: tuple[str, ...] = (
    "function", "class", "interface", "component", "api", "endpoint",
    "database", "query", "authentication", "authorization", "deployment",
    "testing", "debugging", "optimization", "architecture", "algorithm",
)

CODE_FENCE = "```"

# Project naming

PROJECT_NAME_RULES: tuple[AllOfRule, ...] = (
    AllOfRule((("cat",), ("eyes", "vision")), "Cat Vision Study"),
    AllOfRule((("animal",), ("behavior",)), "Animal Behavior Research"),
    AllOfRule((("pet", "dog", "cat"),), "Pet Care & Science"),
    AllOfRule((("biology", "science"),), "Science Exploration"),
    AllOfRule((("vision", "eyes", "sight"),), "Vision Science"),
    AllOfRule((("react", "component"),), "React Development"),
    AllOfRule((("swift", "ios"),), "iOS App Development"),
    AllOfRule((("api", "backend"),), "API Development"),
    AllOfRule((("why", "how", "explain"),), "Learning & Q&A"),
    AllOfRule((("research", "study"),), "Research Project"),
)

# Name used when the user asks to organize and no analysis exists yet.
FALLBACK_NAME_RULES: tuple[AllOfRule, ...] = (
    AllOfRule((("code", "programming"),), "Coding Session"),
    AllOfRule((("design", "ui"),), "Design Work"),
    AllOfRule((("project", "plan"),), "Project Planning"),
    AllOfRule((("write", "content"),), "Writing Session"),
)
FALLBACK_SESSION_NAME = "Chat Session"

TECHNICAL_NAME_KEYWORDS: tuple[str, ...] = (
    "api", "database", "auth", "frontend", "backend", "ios", "react", "swift",
)
CREATIVE_NOUNS: tuple[str, ...] = ("Journey", "Explorer", "Workshop", "Lab", "Studio", "Discoveries")

# Suggestion presentation

SUGGESTION_CONFIDENCE: dict[str, float] = {
    "simple": 0.2,
    "developing": 0.5,
    "substantial": 0.8,
    "projectWorthy": 0.95,
}

SUGGESTION_TITLES: dict[str, tuple[str, str]] = {
    "createNewProject": ("Create Project?", "Create Project"),
    "addToExistingProject": ("Add to Project?", "Add to Project"),
    "splitConversation": ("Split Conversation?", "Split"),
    "graduateToProject": ("Organize This Chat?", "Organize"),
    "tagConversation": ("Tag Conversation?", "Tag"),
}

# File analysis

CODE_EXTENSIONS: frozenset[str] = frozenset(["py", "js", "swift", "java", "cpp", "c", "go", "rs"])
DATA_EXTENSIONS: frozenset[str] = frozenset(["csv", "json"])

CONTENT_TYPE_RULES: tuple[AllOfRule, ...] = (
    AllOfRule((("api", "documentation", "technical", "specification"),), "technicalDocumentation"),
    AllOfRule((("meeting", "proposal", "requirements", "business"),), "businessDocument"),
    AllOfRule((("story", "chapter", "creative", "narrative"),), "creativeWriting"),
    AllOfRule((("tutorial", "how to", "step by step", "guide"),), "tutorial"),
    AllOfRule((("data",),), "dataFile"),
)

FILE_TECH_TERMS: tuple[str, ...] = (
    "algorithm", "implementation", "architecture", "framework", "methodology",
    "optimization", "configuration", "deployment", "integration", "specification",
)

TECHNICAL_TOPIC_PATTERNS: tuple[str, ...] = (
    "API", "SDK", "UI", "UX", "HTTP", "REST", "JSON", "XML",
    "database", "algorithm", "framework", "library", "module",
    "function", "method", "class", "interface", "protocol",
)

WORDS_PER_MINUTE = 200

# Relationship detection

IMPLEMENTATION_PHRASES: tuple[str, ...] = ("implements", "extends", "based on", "according to", "following")

# Recommendations

UPLOAD_TRIGGERS: tuple[str, ...] = (
    "documentation", "spec", "requirements", "design", "diagram",
    "screenshot", "example", "reference", "attachment", "file",
)

# Conversational commands, checked in this order.

COMMAND_PATTERNS: tuple[CommandPatterns, ...] = (
    CommandPatterns(
        "create",
        (
            "create a project", "make this a project", "turn this into a project",
            "organize this as a project", "save this as a project", "project this",
            "make a project called", "create project named", "new project for this",
            "turn this into", "make this into", "organize this into",
        ),
    ),
    CommandPatterns(
        "move",
        (
            "move this to", "add this to", "put this in", "save to project",
            "move to my", "add to my", "include in", "attach to project",
            "send this to", "transfer to",
        ),
    ),
    CommandPatterns(
        "organize",
        (
            "organize this", "organize conversation", "clean this up",
            "structure this", "organize chat", "make this organized",
            "sort this out", "categorize this",
        ),
    ),
    CommandPatterns(
        "split",
        (
            "split this", "divide conversation", "separate this discussion",
            "break this up", "split conversation", "divide this chat",
        ),
    ),
)

NAME_CONNECTORS: tuple[str, ...] = ("called ", "named ", "for ", "to ", "as ", "about ")
