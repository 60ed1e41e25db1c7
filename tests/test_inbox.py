"""Tests for deepseek_json/inbox.py — task files on disk, no API calls."""

import os
from pathlib import Path

import pytest

from deepseek_json.inbox import InboxTask, archive_file, ensure_dirs, load_task, scan_inbox


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_plain_task_file_has_no_question_override(tmp_path: Path) -> None:
    task = load_task(_write(tmp_path / "tracker.md", "\nBuild a wallet balance tracker.\n"))
    assert task == InboxTask(path=tmp_path / "tracker.md", request="Build a wallet balance tracker.")
    assert task.slug == "tracker"


def test_frontmatter_sets_max_questions(tmp_path: Path) -> None:
    f = _write(tmp_path / "prices.md", "---\nmax_questions: 2\nowner: ops\n---\nPrice feed with a 60s cache.\n")
    task = load_task(f)
    assert task.request == "Price feed with a 60s cache."
    assert task.max_questions == 2


@pytest.mark.parametrize("value", ["two", "true", "1.5"])
def test_non_integer_max_questions_rejected(tmp_path: Path, value: str) -> None:
    f = _write(tmp_path / "bad.md", f"---\nmax_questions: {value}\n---\nSomething\n")
    with pytest.raises(ValueError, match="max_questions"):
        load_task(f)


def test_empty_request_rejected(tmp_path: Path) -> None:
    f = _write(tmp_path / "empty.md", "---\nmax_questions: 1\n---\n   \n")
    with pytest.raises(ValueError, match="empty"):
        load_task(f)


def test_archive_keeps_original_name(tmp_path: Path) -> None:
    inbox, archive = tmp_path / "inbox", tmp_path / "archive"
    ensure_dirs(inbox, archive)
    src = _write(inbox / "tracker.md", "A task")

    dest = archive_file(src, archive)

    assert not src.exists()
    assert dest.exists()
    assert dest.parent == archive
    assert dest.name.endswith("_tracker.md")
    assert not dest.name.startswith("FAILED_")


def test_archive_marks_failures(tmp_path: Path) -> None:
    inbox, archive = tmp_path / "inbox", tmp_path / "archive"
    ensure_dirs(inbox, archive)

    dest = archive_file(_write(inbox / "broken.md", "Bad task"), archive, failed=True)

    assert dest.name.startswith("FAILED_")
    assert dest.name.endswith("_broken.md")


def test_scan_returns_markdown_oldest_first(tmp_path: Path) -> None:
    newer = _write(tmp_path / "newer.md", "b")
    older = _write(tmp_path / "older.md", "a")
    _write(tmp_path / "notes.txt", "skip")
    os.utime(older, (1_000_000, 1_000_000))
    os.utime(newer, (2_000_000, 2_000_000))

    assert scan_inbox(tmp_path) == [older, newer]


def test_scan_empty_dir(tmp_path: Path) -> None:
    assert scan_inbox(tmp_path) == []
