"""Tests for vault bootstrap and the JSON Q&A archive."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from askai.errors import ArchiveIOError
from askai.models import QAPair
from askai.vault import ARCHIVE_FILE_NAME, QAArchive, ensure_vault_exists


# ---------------------------------------------------------------------------
# ensure_vault_exists
# ---------------------------------------------------------------------------


def test_ensure_vault_creates_missing_dir(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"
    assert ensure_vault_exists(target) == target
    assert target.is_dir()


def test_ensure_vault_existing_dir_ok(tmp_path: Path) -> None:
    assert ensure_vault_exists(tmp_path) == tmp_path


def test_ensure_vault_rejects_file(tmp_path: Path) -> None:
    f = tmp_path / "vault"
    f.write_text("x")
    with pytest.raises(ArchiveIOError, match="not a directory"):
        ensure_vault_exists(f)


@pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
def test_ensure_vault_rejects_read_only_dir(tmp_path: Path) -> None:
    ro = tmp_path / "ro"
    ro.mkdir()
    ro.chmod(0o500)
    try:
        with pytest.raises(ArchiveIOError, match="permissions"):
            ensure_vault_exists(ro)
    finally:
        ro.chmod(0o700)


# ---------------------------------------------------------------------------
# QAArchive
# ---------------------------------------------------------------------------


def test_load_missing_file_is_empty(tmp_path: Path) -> None:
    assert QAArchive.in_vault(tmp_path).load() == []


def test_append_creates_document(tmp_path: Path) -> None:
    archive = QAArchive.in_vault(tmp_path)
    when = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    assert archive.append(QAPair("What is AI?", "Artificial Intelligence.", when)) == 1

    doc = json.loads((tmp_path / ARCHIVE_FILE_NAME).read_text(encoding="utf-8"))
    assert doc == {"qas": [{
        "question": "What is AI?",
        "answer": "Artificial Intelligence.",
        "time": "2026-01-02T03:04:05+00:00",
    }]}


def test_append_preserves_order_and_duplicates(tmp_path: Path) -> None:
    archive = QAArchive.in_vault(tmp_path)
    archive.append(QAPair("q1", "a1"))
    archive.append(QAPair("q2", "a2"))
    assert archive.append(QAPair("q1", "a1")) == 3

    assert [(p.question, p.answer) for p in archive.load()] == [("q1", "a1"), ("q2", "a2"), ("q1", "a1")]


def test_load_parses_timestamps(tmp_path: Path) -> None:
    archive = QAArchive.in_vault(tmp_path)
    archive.append(QAPair("q", "a", datetime(2026, 5, 1, tzinfo=timezone.utc)))
    [pair] = archive.load()
    assert pair.created_at == datetime(2026, 5, 1, tzinfo=timezone.utc)


def test_append_leaves_no_temp_files(tmp_path: Path) -> None:
    archive = QAArchive.in_vault(tmp_path)
    archive.append(QAPair("q", "a"))
    assert [p.name for p in tmp_path.iterdir()] == [ARCHIVE_FILE_NAME]


@pytest.mark.parametrize("content", ["", "   \n", '{"qas": null}'])
def test_empty_documents_load_as_empty(tmp_path: Path, content: str) -> None:
    (tmp_path / ARCHIVE_FILE_NAME).write_text(content, encoding="utf-8")
    assert QAArchive.in_vault(tmp_path).load() == []


def test_corrupt_json_raises(tmp_path: Path) -> None:
    (tmp_path / ARCHIVE_FILE_NAME).write_text("{not json", encoding="utf-8")
    archive = QAArchive.in_vault(tmp_path)
    with pytest.raises(ArchiveIOError, match="parse"):
        archive.append(QAPair("q", "a"))
    # The corrupt file is not overwritten.
    assert (tmp_path / ARCHIVE_FILE_NAME).read_text(encoding="utf-8") == "{not json"


def test_wrong_shape_raises(tmp_path: Path) -> None:
    (tmp_path / ARCHIVE_FILE_NAME).write_text('{"qas": {"q": "a"}}', encoding="utf-8")
    with pytest.raises(ArchiveIOError, match="qas"):
        QAArchive.in_vault(tmp_path).load()


def test_unreadable_path_raises(tmp_path: Path) -> None:
    (tmp_path / ARCHIVE_FILE_NAME).mkdir()
    with pytest.raises(ArchiveIOError, match="read"):
        QAArchive.in_vault(tmp_path).load()


def test_undecodable_archive_raises(tmp_path: Path) -> None:
    (tmp_path / ARCHIVE_FILE_NAME).write_bytes(b'{"qas": ["\xff"]}')
    archive = QAArchive.in_vault(tmp_path)
    with pytest.raises(ArchiveIOError, match="read"):
        archive.load()
    with pytest.raises(ArchiveIOError, match="read"):
        archive.append(QAPair("q", "a"))


@pytest.mark.parametrize("entry", ["null", '"text"', "[1, 2]"])
def test_non_object_entry_raises(tmp_path: Path, entry: str) -> None:
    (tmp_path / ARCHIVE_FILE_NAME).write_text(f'{{"qas": [{entry}]}}', encoding="utf-8")
    archive = QAArchive.in_vault(tmp_path)
    with pytest.raises(ArchiveIOError, match="entry 0 is not an object"):
        archive.load()
    with pytest.raises(ArchiveIOError, match="entry 0 is not an object"):
        archive.append(QAPair("q", "a"))


def test_invalid_time_raises_on_load(tmp_path: Path) -> None:
    doc = {"qas": [
        {"question": "q1", "answer": "a1", "time": "2026-01-01T00:00:00+00:00"},
        {"question": "q2", "answer": "a2", "time": "not a time"},
    ]}
    (tmp_path / ARCHIVE_FILE_NAME).write_text(json.dumps(doc), encoding="utf-8")
    with pytest.raises(ArchiveIOError, match="entry 1 has an invalid time"):
        QAArchive.in_vault(tmp_path).load()


def test_load_accepts_nanosecond_and_zulu_times(tmp_path: Path) -> None:
    doc = {"qas": [
        {"question": "q1", "answer": "a1", "time": "2024-03-10T14:22:30.123456789+05:30"},
        {"question": "q2", "answer": "a2", "time": "2024-03-10T08:52:30Z"},
    ]}
    (tmp_path / ARCHIVE_FILE_NAME).write_text(json.dumps(doc), encoding="utf-8")

    first, second = QAArchive.in_vault(tmp_path).load()

    assert first.created_at.microsecond == 123456
    assert first.created_at.utcoffset().total_seconds() == 5.5 * 3600
    assert second.created_at == datetime(2024, 3, 10, 8, 52, 30, tzinfo=timezone.utc)
