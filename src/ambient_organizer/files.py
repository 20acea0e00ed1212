"""Local file store for uploaded knowledge files."""

import shutil
import uuid
from pathlib import Path

from rich.console import Console

from .errors import ContentUnreadable
from .models import FileRecord

console = Console(stderr=True)

TEXT_EXTENSIONS = {"txt", "md", "py", "js", "json", "csv", "swift", "java", "cpp", "c", "go", "rs", "org", "rst"}


class FileStore:
    """Copies files under ``<root>/<project>/project`` or ``<root>/<project>/chats/<chat>``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def ingest(
        self,
        source_path: str | Path,
        project_id: str,
        project_level: bool = False,
        chat_id: str | None = None,
    ) -> FileRecord:
        source = Path(source_path)
        extension = source.suffix.lstrip(".")
        scope = Path(project_id) / ("project" if project_level or not chat_id else Path("chats") / chat_id)
        unique_name = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        relative = scope / unique_name

        destination = self.root / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)

        return FileRecord(
            name=source.stem,
            original_name=source.name,
            extension=extension,
            size=destination.stat().st_size,
            local_path=str(relative),
        )

    def path_for(self, record: FileRecord) -> Path:
        return self.root / record.local_path

    def discard(self, record: FileRecord):
        self.path_for(record).unlink(missing_ok=True)

    def extract_text(self, record: FileRecord) -> str | None:
        """Read a text file. Unsupported types give None; broken ones raise."""
        if record.extension.lower() not in TEXT_EXTENSIONS:
            return None
        path = self.path_for(record)
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ContentUnreadable(str(path), "not valid UTF-8") from e
        except OSError as e:
            raise ContentUnreadable(str(path), e.strerror or str(e)) from e

    def read_text(self, record: FileRecord) -> str | None:
        """Like ``extract_text`` but never raises."""
        try:
            return self.extract_text(record)
        except ContentUnreadable as e:
            console.print(f"[yellow]{e}; continuing without text[/yellow]")
            return None
