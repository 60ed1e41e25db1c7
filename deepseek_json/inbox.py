"""Inbox task files: scanning, frontmatter, archiving."""

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import frontmatter


@dataclass
class InboxTask:
    path: Path
    request: str
    max_questions: int | None = None

    @property
    def slug(self) -> str:
        return self.path.stem


def ensure_dirs(*dirs: Path) -> None:
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Task files (*.md) waiting in inbox_dir, oldest first."""
    return sorted(inbox_dir.glob("*.md"), key=lambda p: p.stat().st_mtime)


def load_task(file_path: Path) -> InboxTask:
    """Read one task file. The body is the request; frontmatter may set max_questions.

    Raises:
        ValueError: empty body or a non-integer max_questions.
    """
    post = frontmatter.load(str(file_path))
    request = post.content.strip()
    if not request:
        raise ValueError(f"{file_path.name}: task request is empty")

    max_questions = post.metadata.get("max_questions")
    if max_questions is not None and (isinstance(max_questions, bool) or not isinstance(max_questions, int)):
        raise ValueError(f"{file_path.name}: max_questions must be an integer, got {max_questions!r}")
    return InboxTask(path=file_path, request=request, max_questions=max_questions)


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move a processed task file into archive_dir under a timestamped name."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    marker = "FAILED_" if failed else ""
    return Path(shutil.move(str(file_path), str(archive_dir / f"{marker}{stamp}_{file_path.name}")))
