"""Local metadata ledger of published documents.

The ledger is a JSON file (``<files_dir>/metadata.json`` by default)::

    {
      "documents": [
        {"title": "intro", "file": "intro.md",
         "notion_url": "https://www.notion.so/...", "date": "2025-03-07",
         "content_hash": "5d41402abc4b2a76b9719d911017c592"}
      ]
    }

A file is skipped when its entry already carries a URL.  The MD5 of the
source recorded at upload time lets the pipeline warn about sources edited
since then; re-uploading them is an explicit opt-in.
"""

from __future__ import annotations

import calendar
import json
import re
from datetime import date
from pathlib import Path

from mdbridge.errors import MdBridgeLedgerError
from mdbridge.models import LedgerEntry
from mdbridge.observability import get_logger
from mdbridge.utils.hashing import md5_hash

log = get_logger("mdbridge.ledger")

_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def validate_and_format_date(value: str) -> str | None:
    """Normalise ``YYYY-M-D`` to ``YYYY-MM-DD``; ``None`` if invalid.

    >>> validate_and_format_date("2024-3-7")
    '2024-03-07'
    >>> validate_and_format_date("2023-02-29") is None
    True
    """
    m = _DATE_RE.match(value or "")
    if m is None:
        return None
    year, month, day = (int(g) for g in m.groups())
    if not 1 <= month <= 12:
        return None
    if not 1 <= day <= calendar.monthrange(year, month)[1]:
        return None
    return f"{year:04d}-{month:02d}-{day:02d}"


def _today() -> str:
    return date.today().isoformat()


class Ledger:
    """In-memory view of the ledger file."""

    def __init__(self, path: str | Path, entries: list[LedgerEntry] | None = None) -> None:
        self.path = Path(path)
        self.entries: list[LedgerEntry] = list(entries or [])

    @classmethod
    def load(cls, path: str | Path) -> Ledger:
        """Read the ledger at *path*.

        A missing or unreadable file gives an empty ledger.  Entry dates are
        normalised; malformed ones are replaced by today's date.
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return cls(path)
        except (OSError, ValueError) as exc:
            log.warning(
                "Ledger unreadable, starting empty",
                extra={"extra_fields": {"path": str(path), "error": str(exc)}},
            )
            return cls(path)

        documents = raw.get("documents", []) if isinstance(raw, dict) else []
        entries: list[LedgerEntry] = []
        for item in documents:
            if not isinstance(item, dict):
                continue
            entry = LedgerEntry.from_dict(item)
            if entry.date:
                formatted = validate_and_format_date(entry.date)
                if formatted is None:
                    log.warning(
                        "Malformed ledger date, using today",
                        extra={"extra_fields": {"file": entry.file, "date": entry.date}},
                    )
                    formatted = _today()
                entry.date = formatted
            entries.append(entry)
        return cls(path, entries)

    def find(self, file: str) -> LedgerEntry | None:
        for entry in self.entries:
            if entry.file == file:
                return entry
        return None

    def needs_processing(self, file: str) -> bool:
        """True when *file* has no entry or its entry has no URL yet."""
        entry = self.find(file)
        return entry is None or not entry.url

    def is_stale(self, file: str, content: str) -> bool:
        """True when *file* was uploaded from different content than *content*."""
        entry = self.find(file)
        if entry is None or not entry.url or not entry.content_hash:
            return False
        return entry.content_hash != md5_hash(content)

    def record(self, file: str, url: str, content: str) -> LedgerEntry:
        """Add or update the entry for *file* after a successful upload."""
        entry = self.find(file)
        if entry is None:
            entry = LedgerEntry(title=Path(file).stem, file=file)
            self.entries.append(entry)
        entry.url = url
        entry.date = _today()
        entry.content_hash = md5_hash(content)
        return entry

    def save(self) -> None:
        """Write the ledger as indented UTF-8 JSON."""
        payload = {"documents": [entry.to_dict() for entry in self.entries]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise MdBridgeLedgerError(
                message=f"Could not write ledger {self.path}: {exc}",
                context={"path": str(self.path)},
                cause=exc,
            ) from exc
