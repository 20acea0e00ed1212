"""Learning organization preferences from how the user reacts to suggestions."""

import re
import threading
from typing import Callable

from rich.console import Console

from .errors import PersistenceWriteFailed
from .models import NamingStyle, UserPatterns

console = Console(stderr=True)

WEIGHT_STEP = 0.1


def infer_naming_style(name: str) -> NamingStyle | None:
    """Guess the naming style behind a project name, or None if unclear."""
    has_digits = re.search(r"\d", name) is not None
    has_separators = "-" in name or "_" in name
    word_count = len(name.split(" "))

    if word_count == 1 and not has_separators:
        return "minimal"
    if has_separators or has_digits:
        return "technical"
    if word_count > 2:
        return "descriptive"
    return None


class PreferenceLearner:
    """Adjusts per-type weights and the naming style, persisting after each change."""

    def __init__(
        self,
        patterns: UserPatterns | None = None,
        save: Callable[[UserPatterns], None] | None = None,
        clamp_weights: bool = False,
    ):
        self.patterns = patterns or UserPatterns()
        self._save = save
        self.clamp_weights = clamp_weights
        self._lock = threading.Lock()

    def weight(self, suggestion_type: str) -> float:
        return self.patterns.weight(suggestion_type)

    def _adjust(self, suggestion_type: str, delta: float):
        value = self.patterns.weight(suggestion_type) + delta
        if self.clamp_weights:
            value = min(1.0, max(0.0, value))
        self.patterns.organization_preferences[suggestion_type] = value

    def record_accept(self, suggestion_type: str):
        with self._lock:
            self._adjust(suggestion_type, WEIGHT_STEP)
            self._persist()

    def record_dismiss(self, suggestion_type: str):
        with self._lock:
            self._adjust(suggestion_type, -WEIGHT_STEP)
            self.patterns.dismissed_suggestions.append(suggestion_type)
            self._persist()

    def record_project_created(self, name: str):
        with self._lock:
            style = infer_naming_style(name)
            if style is not None:
                self.patterns.naming_style = style
            self._persist()

    def _persist(self):
        if self._save is None:
            return
        try:
            self._save(self.patterns)
        except PersistenceWriteFailed as e:
            console.print(f"[yellow]Could not save preferences: {e}[/yellow]")
