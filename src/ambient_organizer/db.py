"""SQLite persistence for engine state."""

import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from .errors import PersistenceWriteFailed
from .models import KnowledgeItem, Project, UserPatterns

KNOWLEDGE_KEY = "knowledgeItems"
PATTERNS_KEY = "userOrganizationPatterns"
PROJECTS_KEY = "projects"

SCHEMA = """
CREATE TABLE IF NOT EXISTS engine_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,  -- JSON document, replaced whole
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class Database:
    """SQLite database wrapper."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.conn: sqlite3.Connection | None = None
        self._write_lock = threading.Lock()

    def connect(self) -> sqlite3.Connection:
        """Connect to the database."""
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Timer threads save too, so the connection is shared behind a lock.
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        return self.conn

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        self.init_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def init_schema(self):
        """Initialize the database schema."""
        if not self.conn:
            raise RuntimeError("Database not connected")
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def get_json(self, key: str, default: Any = None) -> Any:
        """Load a JSON document by key."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        with self._write_lock:
            cursor = self.conn.execute("SELECT value FROM engine_state WHERE key = ?", (key,))
            row = cursor.fetchone()
        if row is None:
            return default
        return json.loads(row["value"])

    def put_json(self, key: str, value: Any):
        """Replace the JSON document stored under key."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        try:
            payload = json.dumps(value)
            with self._write_lock:
                self.conn.execute(
                    """
                    INSERT OR REPLACE INTO engine_state (key, value, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, payload, datetime.now().isoformat()),
                )
                self.conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise PersistenceWriteFailed(key, e) from e

    # Engine collections

    def load_items(self) -> list[KnowledgeItem]:
        return [KnowledgeItem.from_dict(d) for d in self.get_json(KNOWLEDGE_KEY, [])]

    def save_items(self, items: list[KnowledgeItem]):
        self.put_json(KNOWLEDGE_KEY, [item.to_dict() for item in items])

    def load_patterns(self) -> UserPatterns:
        data = self.get_json(PATTERNS_KEY)
        return UserPatterns.from_dict(data) if data else UserPatterns()

    def save_patterns(self, patterns: UserPatterns):
        self.put_json(PATTERNS_KEY, patterns.to_dict())


class ProjectStore:
    """Projects live as one JSON collection next to the engine state."""

    def __init__(self, db: Database):
        self.db = db

    def load_projects(self) -> list[Project]:
        return [Project.from_dict(d) for d in self.db.get_json(PROJECTS_KEY, [])]

    def save_projects(self, projects: list[Project]):
        self.db.put_json(PROJECTS_KEY, [p.to_dict() for p in projects])
