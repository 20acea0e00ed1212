"""Organization suggestions for conversations and ambient hints for files."""

from datetime import date
from typing import Sequence

from . import rules
from .models import (
    AmbientSuggestion,
    ContextShift,
    ContextualRecommendation,
    Insight,
    KnowledgeItem,
    Message,
    Project,
    Suggestion,
    UserPatterns,
)
from .relationships import topic_similarity
from .relevance import relevant_files
from .signals import (
    analysis_text,
    analyze_complexity,
    extract_keywords,
    extract_topic,
    full_text,
    recent_user_content,
    topic_confidence,
)

RELATED_CONTENT_OVERLAP = 5


def make_suggestion(suggestion_type: str, message: str, confidence: float, timing: str, **kwargs) -> Suggestion:
    title, primary_action = rules.SUGGESTION_TITLES[suggestion_type]
    return Suggestion(
        type=suggestion_type,
        message=message,
        confidence=confidence,
        timing=timing,
        title=title,
        primary_action=primary_action,
        **kwargs,
    )


# Naming


def _date_label(today: date) -> str:
    return today.strftime("%b %d")


def _first_word(topic: str) -> str:
    parts = topic.split()
    return parts[0] if parts else ""


def styled_name(topic: str, keywords: Sequence[str], content: str, style: str) -> str:
    """Name a project following the user's naming style."""
    if style == "technical":
        technical = [k for k in keywords if k.lower() in rules.TECHNICAL_NAME_KEYWORDS]
        if len(technical) >= 2:
            return "-".join(k.capitalize() for k in technical[:2])
        if technical:
            return f"{technical[0].capitalize()}-Project"
        return "Technical-Project"

    if style == "creative":
        word = _first_word(topic)
        if not word:
            return ""
        noun = rules.CREATIVE_NOUNS[len(topic) % len(rules.CREATIVE_NOUNS)]
        return f"{word} {noun}"

    if style == "minimal":
        return _first_word(topic)

    if keywords:
        primary = keywords[0].capitalize()
        if "?" in content:
            return f"{primary} Questions & Research"
        return f"{primary} {topic}"
    return topic


def project_name(
    topic: str,
    keywords: Sequence[str],
    recent_content: str,
    style: str = "descriptive",
    today: date | None = None,
) -> str:
    """Suggest a project name from content rules, then naming style, then the date."""
    name = rules.first_match(rules.PROJECT_NAME_RULES, recent_content.lower())
    if name:
        return name
    name = styled_name(topic, keywords, recent_content, style).strip()
    if name:
        return name
    return f"{rules.FALLBACK_SESSION_NAME} - {_date_label(today or date.today())}"


def fallback_name(messages: Sequence[Message], today: date | None = None) -> str:
    """Date-stamped name used when no analysis is available."""
    text = full_text(messages[-3:]).lower()
    label = rules.first_match(rules.FALLBACK_NAME_RULES, text) or rules.FALLBACK_SESSION_NAME
    return f"{label} - {_date_label(today or date.today())}"


# Suggestions


def find_related_project(
    topic: str, keywords: Sequence[str], content: str, projects: Sequence[Project]
) -> Project | None:
    """First project whose title or description matches the conversation."""
    topic_words = [w for w in topic.lower().split() if len(w) > 3]
    content_words = {w for w in content.lower().split() if len(w) > 3}

    for project in projects:
        project_text = f"{project.title} {project.description}".lower()
        if any(w in project_text for w in topic_words):
            return project
        if any(k.lower() in project_text for k in keywords):
            return project
        if sum(1 for w in content_words if w in project_text) >= RELATED_CONTENT_OVERLAP:
            return project
    return None


def organization_suggestion(
    topic: str,
    complexity: str,
    keywords: Sequence[str],
    recent_content: str,
    projects: Sequence[Project],
    name: str,
) -> Suggestion | None:
    if complexity == "simple":
        return None

    confidence = rules.SUGGESTION_CONFIDENCE[complexity]
    related = find_related_project(topic, keywords, recent_content, projects)
    if related is not None:
        return make_suggestion(
            "addToExistingProject",
            f"This conversation seems related to your '{related.title}' project. Add it there?",
            confidence,
            "nextPause",
            project_name=name,
            existing_project_id=related.id,
        )

    if complexity == "developing":
        return make_suggestion(
            "graduateToProject",
            "This conversation is getting substantial. Should I create a project to keep track of it?",
            confidence,
            "nextPause",
            project_name=name,
        )

    return make_suggestion(
        "createNewProject",
        f"This looks like project-worthy work! Create a '{name}' project?",
        confidence,
        "immediate",
        project_name=name,
    )


def detect_context_shift(messages: Sequence[Message]) -> ContextShift | None:
    """Compare the latest exchange against what came before it."""
    if len(messages) < 4:
        return None

    recent_topic = extract_topic(full_text(messages[-4:]))
    earlier_topic = extract_topic(full_text(messages[:-2]))
    if recent_topic == earlier_topic or recent_topic == rules.GENERAL_TOPIC:
        return None

    return ContextShift(
        from_topic=earlier_topic,
        to_topic=recent_topic,
        confidence=0.8,
        suggested_action=f"Are we switching to discussing {recent_topic.lower()} now?",
    )


def analyze_conversation(
    messages: Sequence[Message],
    projects: Sequence[Project] = (),
    patterns: UserPatterns | None = None,
    today: date | None = None,
) -> Insight | None:
    """Analyze a conversation. Returns None until there are two messages."""
    if len(messages) < 2:
        return None

    patterns = patterns or UserPatterns()
    recent = recent_user_content(messages)
    text = analysis_text(messages)

    topic = extract_topic(text)
    keywords = extract_keywords(text)
    complexity = analyze_complexity(messages)
    name = project_name(topic, keywords, recent, patterns.naming_style, today)

    return Insight(
        topic=topic,
        confidence=topic_confidence(keywords, full_text(messages)),
        suggested_project_name=name,
        keywords=keywords,
        complexity=complexity,
        suggestion=organization_suggestion(topic, complexity, keywords, recent, projects, name),
        context_shift=detect_context_shift(messages),
        recent_content=recent,
    )


def suggestions_for(insight: Insight | None) -> list[Suggestion]:
    """The organization suggestion, then a split suggestion on a context shift."""
    if insight is None:
        return []

    found = []
    if insight.suggestion is not None:
        found.append(insight.suggestion)
    if insight.context_shift is not None:
        shift = insight.context_shift
        found.append(make_suggestion("splitConversation", shift.suggested_action, shift.confidence, "nextPause"))
    return found


def generic_suggestion(messages: Sequence[Message], today: date | None = None) -> Suggestion:
    """Suggestion offered when the user asks to organize before any analysis."""
    return make_suggestion(
        "graduateToProject",
        "This conversation is getting substantial. Would you like to create a project for it?",
        0.7,
        "immediate",
        project_name=fallback_name(messages, today),
    )


# Ambient file hints


def ambient_suggestions_for(item: KnowledgeItem, others: Sequence[KnowledgeItem]) -> list[AmbientSuggestion]:
    """Hints shown shortly after a file is added."""
    found = []

    similar = [o for o in others if o.id != item.id and topic_similarity(item, o) > 0.6]
    if similar:
        found.append(
            AmbientSuggestion(
                type="relatedFile",
                title="Similar files detected",
                subtitle=f"Found {len(similar)} files with related content",
                action_text="Show Related",
                item_id=item.id,
                confidence=0.8,
                show_delay=3.0,
                display_duration=12.0,
            )
        )

    if item.metadata.word_count > 1000 and item.summary is None:
        found.append(
            AmbientSuggestion(
                type="summarizeFile",
                title="Generate summary?",
                subtitle=f"This is a large document ({item.metadata.word_count} words)",
                action_text="Summarize",
                item_id=item.id,
                confidence=0.9,
                show_delay=5.0,
                display_duration=15.0,
            )
        )

    return found


def graduation_suggestion(item: KnowledgeItem) -> AmbientSuggestion:
    return AmbientSuggestion(
        type="graduateFile",
        title=f"Promote '{item.name}' to Project Level?",
        subtitle=f"This file has been referenced {item.usage_count} times across conversations",
        action_text="Promote File",
        item_id=item.id,
        confidence=0.8,
        show_delay=2.0,
        display_duration=15.0,
    )


def contextual_recommendations(
    messages: Sequence[Message], items: Sequence[KnowledgeItem]
) -> list[ContextualRecommendation]:
    """File recommendations for the current discussion."""
    text = full_text(messages[-5:])
    found = []

    relevant = relevant_files(text, items)
    if relevant:
        found.append(
            ContextualRecommendation(
                title="Relevant files found",
                description="These files might be helpful for your current discussion",
                item_ids=[item.id for item in relevant],
                action="reference",
                confidence=0.75,
            )
        )

    lowered = text.lower()
    if any(trigger in lowered for trigger in rules.UPLOAD_TRIGGERS):
        found.append(
            ContextualRecommendation(
                title="Consider uploading supporting files",
                description="Your discussion might benefit from additional documentation",
                item_ids=[],
                action="upload",
                confidence=0.6,
            )
        )

    return found
