"""Loader for chat transcripts exported as JSON or plain text."""

import json
import re
from datetime import datetime
from pathlib import Path

from .models import Message

ROLE_MARKERS = {
    "user": "user",
    "you": "user",
    "assistant": "assistant",
    "ai": "assistant",
    "system": "system",
}

MARKER_RE = re.compile(r"^(User|You|Assistant|AI|System):[ \t]*", re.IGNORECASE | re.MULTILINE)


def _normalize_role(raw: str) -> str | None:
    return ROLE_MARKERS.get(raw.strip().lower())


def parse_json_transcript(content: str) -> list[Message]:
    """Parse a JSON list of {role, content} objects.

    A top-level object with a ``messages`` list is accepted too. Entries with
    an unknown role or no content are skipped.
    """
    data = json.loads(content)
    if isinstance(data, dict):
        data = data.get("messages", [])

    messages = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        role = _normalize_role(str(entry.get("role", "")))
        text = entry.get("content")
        if role is None or not isinstance(text, str) or not text.strip():
            continue
        timestamp = entry.get("timestamp")
        messages.append(
            Message(
                role=role,
                content=text.strip(),
                timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
                references=tuple(entry.get("references", [])),
            )
        )
    return messages


def parse_text_transcript(content: str) -> list[Message]:
    """Parse text where each turn starts with a ``User:``/``Assistant:`` marker.

    Text before the first marker is ignored. A turn runs until the next marker,
    so turns may span several lines.
    """
    markers = list(MARKER_RE.finditer(content))
    messages = []
    for i, match in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(content)
        text = content[match.end():end].strip()
        if text:
            messages.append(Message(role=_normalize_role(match.group(1)), content=text))
    return messages


def parse_transcript(filepath: Path) -> list[Message]:
    """Parse a transcript file based on its suffix."""
    content = Path(filepath).read_text(encoding="utf-8")
    if Path(filepath).suffix.lower() == ".json":
        return parse_json_transcript(content)
    return parse_text_transcript(content)
