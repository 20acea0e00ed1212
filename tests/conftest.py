"""Test fixtures for ambient-organizer."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ambient_organizer.config import OrganizerConfig
from ambient_organizer.db import Database
from ambient_organizer.engine import OrganizerEngine
from ambient_organizer.models import ContentMetadata, KnowledgeItem, Message
from ambient_organizer.scheduler import ManualScheduler

START = datetime(2026, 3, 2, 12, 0, 0)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_messages():
    """Build alternating user/assistant messages from strings."""

    def _make(*contents: str, first_role: str = "user") -> list[Message]:
        roles = ("user", "assistant") if first_role == "user" else ("assistant", "user")
        return [Message(role=roles[i % 2], content=c, timestamp=START) for i, c in enumerate(contents)]

    return _make


@pytest.fixture
def project_worthy_messages(make_messages):
    """11 messages of 210 chars, six technical terms and one code block."""
    first = "```code``` function query endpoint testing debugging algorithm".ljust(210, "z")
    return make_messages(first, *["z" * 210 for _ in range(10)])


@pytest.fixture
def developing_messages(make_messages):
    """Six messages of 150 chars with three technical terms: score 3."""
    first = "function query endpoint".ljust(150, "z")
    return make_messages(first, *["z" * 150 for _ in range(5)])


@pytest.fixture
def make_item():
    """Build a knowledge item with explicit text and topics."""

    def _make(name: str, text: str | None, topics=(), project_id: str = "p1", **kwargs) -> KnowledgeItem:
        metadata = ContentMetadata(
            extracted_text=text,
            word_count=len((text or "").split()),
            topics=list(topics),
        )
        return KnowledgeItem(
            name=name,
            original_name=f"{name}.txt",
            extension="txt",
            size=len(text or ""),
            local_path=f"{project_id}/project/{name}.txt",
            project_id=project_id,
            metadata=metadata,
            **kwargs,
        )

    return _make


@pytest.fixture
def db(tmp_path: Path):
    """A connected database with the schema in place."""
    with Database(tmp_path / "organizer.db") as database:
        yield database


@pytest.fixture
def config(tmp_path: Path) -> OrganizerConfig:
    return OrganizerConfig(db_path=tmp_path / "organizer.db", knowledge_root=tmp_path / "knowledge")


@pytest.fixture
def engine(config, scheduler, clock):
    """An in-memory engine driven by virtual time."""
    eng = OrganizerEngine(config, scheduler=scheduler, clock=clock)
    yield eng
    eng.stop()


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch) -> str:
    """Point the CLI at temporary storage. Returns the --db path."""
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("AMBIENT_ORGANIZER_DB", str(db_path))
    monkeypatch.setenv("AMBIENT_ORGANIZER_KNOWLEDGE_ROOT", str(tmp_path / "knowledge"))
    return str(db_path)
