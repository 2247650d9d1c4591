"""Reading a folder of markdown files as notes, for building a graph outside the app."""

import logging
import re
from hashlib import md5
from pathlib import Path

from notegraph.domain.note import Note

logger = logging.getLogger(__name__)

_MARKDOWN_SYNTAX = re.compile(r"(!?\[\[([^\]|]+)(\|[^\]]*)?\]\])|[#*_>`]")


class FolderReader:
    """Turns every markdown file under a folder into a Note with plain text content."""

    def __init__(self, folder: Path):
        self.folder = folder

    def read_notes(self) -> list[Note]:
        files = self._get_markdown_files()
        logger.info(f"Found {len(files)} markdown files in {self.folder}")
        return [self._read_note(file) for file in files]

    def _get_markdown_files(self) -> list[Path]:
        """Get all markdown files, excluding excalidraw drawings."""
        return sorted(
            f for f in self.folder.rglob("*.md") if not f.name.endswith(".excalidraw.md")
        )

    def _read_note(self, file: Path) -> Note:
        logger.debug(f"Reading {file}")
        with open(file, "r", encoding="utf-8") as f:
            content = f.read()

        title = file.stem
        if content.startswith("#"):
            title = content.split("\n")[0].lstrip("#").strip()

        stat = file.stat()
        return Note(
            id=self.generate_note_id(file),
            title=title,
            text=to_plain_text(content),
            created=stat.st_ctime,
            modified=stat.st_mtime,
            ephemeral=False,
        )

    def generate_note_id(self, file: Path) -> str:
        """Generate a stable note ID from the file path relative to the folder."""
        return md5(str(file.relative_to(self.folder)).encode()).hexdigest()


def to_plain_text(content: str) -> str:
    """Strip markdown markup, keeping wikilink targets as words."""
    text = _MARKDOWN_SYNTAX.sub(lambda m: m.group(2) or "", content)
    return re.sub(r"\s+", " ", text).strip()
