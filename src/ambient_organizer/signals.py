"""Signal extraction from conversations and file text."""

import re
from typing import Sequence

import tiktoken

from . import rules
from .models import COMPLEXITY_LEVELS, Complexity, ContentMetadata, Message

_WORD_RE = re.compile(r"[^\W_]+")


def count_tokens(text: str, model: str = "cl100k_base") -> int:
    """Count tokens in text using tiktoken."""
    try:
        enc = tiktoken.get_encoding(model)
        return len(enc.encode(text))
    except Exception:
        # Fallback: rough estimate
        return len(text) // 4


def word_set(text: str, min_length: int = 0) -> set[str]:
    """Lower-cased words split on whitespace and punctuation."""
    return {w for w in _WORD_RE.findall(text.lower()) if len(w) > min_length}


def whitespace_set(text: str) -> set[str]:
    return set(text.lower().split())


def jaccard(a: set, b: set) -> float:
    """Jaccard similarity. Two empty sets score 0."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def full_text(messages: Sequence[Message]) -> str:
    return " ".join(m.content for m in messages)


def recent_user_content(messages: Sequence[Message], count: int = 3) -> str:
    """The last few user messages joined together."""
    user_messages = [m.content for m in messages if m.role == "user"]
    return " ".join(user_messages[-count:])


def analysis_text(messages: Sequence[Message]) -> str:
    return recent_user_content(messages) or full_text(messages)


def extract_topic(text: str) -> str:
    """Label a span of text using the topic cascade."""
    label = rules.first_match(rules.TOPIC_RULES, text.lower())
    if label:
        return label
    return rules.DETAILED_TOPIC if len(text) > rules.DETAILED_THRESHOLD else rules.GENERAL_TOPIC


def extract_keywords(text: str) -> list[str]:
    """Domain keywords found in the text, first occurrence order, at most ten."""
    found: list[str] = []
    for word in text.lower().split():
        if len(word) > 3 and word in rules.DOMAIN_KEYWORDS and word not in found:
            found.append(word)
            if len(found) == rules.MAX_KEYWORDS:
                break
    return found


def count_occurrences(text: str, terms: Sequence[str]) -> int:
    lowered = text.lower()
    return sum(lowered.count(term) for term in terms)


def count_technical_terms(text: str) -> int:
    return count_occurrences(text, rules.CONVERSATION_TECH_TERMS)


def complexity_score(messages: Sequence[Message]) -> int:
    """Sum of message-count, length, technical-depth and code signals."""
    message_count = len(messages)
    average_length = sum(len(m.content) for m in messages) // max(message_count, 1)
    text = full_text(messages)
    technical_terms = count_technical_terms(text)

    score = 0
    if message_count > 10:
        score += 2
    elif message_count > 5:
        score += 1

    if average_length > 200:
        score += 2
    elif average_length > 100:
        score += 1

    if technical_terms > 5:
        score += 2
    elif technical_terms > 2:
        score += 1

    if rules.CODE_FENCE in text:
        score += 2

    return score


def complexity_bucket(score: int) -> Complexity:
    if score <= 2:
        return COMPLEXITY_LEVELS[0]
    if score <= 4:
        return COMPLEXITY_LEVELS[1]
    if score <= 6:
        return COMPLEXITY_LEVELS[2]
    return COMPLEXITY_LEVELS[3]


def analyze_complexity(messages: Sequence[Message]) -> Complexity:
    return complexity_bucket(complexity_score(messages))


def topic_confidence(keywords: Sequence[str], text: str) -> float:
    if not keywords:
        return 0.3
    if len(keywords) >= 5 and len(text) > 500:
        return 0.9
    if len(keywords) >= 3 and len(text) > 200:
        return 0.7
    return 0.5


# File signals


def detect_content_type(text: str, extension: str) -> str:
    extension = extension.lower().lstrip(".")
    if extension in rules.CODE_EXTENSIONS:
        return "codeFile"
    label = rules.first_match(rules.CONTENT_TYPE_RULES, text.lower())
    if label:
        return label
    return "dataFile" if extension in rules.DATA_EXTENSIONS else "unknown"


def file_complexity(text: str) -> str:
    word_count = len(text.split())
    sentence_count = text.count(".") + 1
    average_words = word_count // sentence_count
    score = average_words / 15 + count_occurrences(text, rules.FILE_TECH_TERMS) / 10
    if score < 1:
        return "simple"
    if score < 2:
        return "moderate"
    if score < 3:
        return "complex"
    return "expert"


def extract_file_topics(text: str) -> list[str]:
    """Technical pattern terms followed by domain keywords, at most ten."""
    lowered = text.lower()
    topics = [p for p in rules.TECHNICAL_TOPIC_PATTERNS if p.lower() in lowered]
    for keyword in extract_keywords(text):
        if keyword not in topics:
            topics.append(keyword)
    return topics[: rules.MAX_KEYWORDS]


def analyze_file(text: str | None, extension: str) -> ContentMetadata:
    """Build content metadata for a file. Unreadable files get empty metadata."""
    if text is None:
        return ContentMetadata()

    word_count = len(text.split())
    return ContentMetadata(
        content_type=detect_content_type(text, extension),
        extracted_text=text,
        word_count=word_count,
        reading_time_minutes=max(1, word_count // rules.WORDS_PER_MINUTE),
        complexity=file_complexity(text),
        topics=extract_file_topics(text),
        token_count=count_tokens(text),
    )
