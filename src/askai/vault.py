"""Vault directory bootstrap and the plain-JSON Q&A archive.

The archive is a single JSON document rewritten in full on every append::

    {"qas": [{"question": "...", "answer": "...", "time": "2026-01-01T00:00:00+00:00"}]}

Insertion order is creation order. Writes go to a temp file in the same
directory and are renamed over the target, so a crash mid-write never leaves
a truncated archive behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from askai.errors import ArchiveIOError
from askai.models import QAPair

ARCHIVE_FILE_NAME = "que_ans.json"


def ensure_vault_exists(path: Path) -> Path:
    """Create the vault directory if missing and check it is writable.

    Raises:
        ArchiveIOError: If *path* exists but is not a directory, is not
            writable, or cannot be created.
    """
    if not path.exists():
        try:
            path.mkdir(mode=0o755, parents=True)
        except OSError as exc:
            raise ArchiveIOError(f"failed to create vault directory '{path}': {exc}") from exc
        return path

    if not path.is_dir():
        raise ArchiveIOError(f"vault path exists but is not a directory: {path}")
    if not os.access(path, os.W_OK):
        raise ArchiveIOError(f"insufficient permissions to write to vault directory: {path}")
    return path


class QAArchive:
    """Ordered, file-backed archive of every completed Q&A exchange.

    Args:
        path: Location of the archive JSON file (normally ``<vault>/que_ans.json``).
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def in_vault(cls, vault: Path) -> QAArchive:
        return cls(vault / ARCHIVE_FILE_NAME)

    def load(self) -> list[QAPair]:
        """Return all archived pairs in insertion order ([] if the file is missing).

        Raises:
            ArchiveIOError: If the file cannot be read or parsed.
        """
        pairs = []
        for i, item in enumerate(self._read_raw()):
            try:
                pairs.append(QAPair.from_archive_dict(item))
            except ValueError as exc:
                raise ArchiveIOError(
                    f"Q&A archive '{self.path}' entry {i} has an invalid time: {exc}"
                ) from exc
        return pairs

    def append(self, pair: QAPair) -> int:
        """Read the existing archive, append *pair*, rewrite the whole file.

        Returns:
            Number of entries in the archive after the append.

        Raises:
            ArchiveIOError: On any read, parse or write failure.
        """
        entries = self._read_raw()
        entries.append(pair.to_archive_dict())
        self._write_raw(entries)
        return len(entries)

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read_raw(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ArchiveIOError(f"failed to read Q&A archive '{self.path}': {exc}") from exc

        if not text.strip():
            return []

        try:
            doc = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArchiveIOError(f"failed to parse Q&A archive '{self.path}': {exc}") from exc

        qas = doc.get("qas") if isinstance(doc, dict) else None
        if not isinstance(doc, dict) or not isinstance(qas or [], list):
            raise ArchiveIOError(f"Q&A archive '{self.path}' is not a {{\"qas\": [...]}} document")
        entries = list(qas or [])
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ArchiveIOError(
                    f"Q&A archive '{self.path}' entry {i} is not an object: {entry!r}"
                )
        return entries

    def _write_raw(self, entries: list[dict]) -> None:
        content = json.dumps({"qas": entries}, indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        except OSError as exc:
            raise ArchiveIOError(f"failed to write Q&A archive '{self.path}': {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise ArchiveIOError(f"failed to write Q&A archive '{self.path}': {exc}") from exc
