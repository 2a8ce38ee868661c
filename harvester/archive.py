"""Append-only archive of captured pages, plus failure diagnostics."""

import csv
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from errors import PersistenceError
from targets import HarvestTarget

logger = logging.getLogger(__name__)

INDEX_FIELDS = ["id", "timestamp", "source_domain", "url", "content_type", "path"]
DIAGNOSTIC_FIELDS = ["timestamp", "url", "screenshot_path", "html_path", "reason"]


class ArchiveRecord(BaseModel):
    id: str
    timestamp: str
    source_domain: str
    url: str
    content_type: str = "html"
    path: str


class DiagnosticRecord(BaseModel):
    timestamp: str
    url: str
    screenshot_path: Optional[str] = None
    html_path: Optional[str] = None
    reason: str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def file_stamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z").replace(":", "-").replace(".", "-")


def safe_url(url: str, limit: int = 100) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", url)[:limit]


def _ensure_index(path: Path, fields: list[str]) -> None:
    if not path.exists():
        with open(path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(fields)


def _exclusive_write(directory: Path, base: str, suffix: str, data, mode: str) -> Path:
    """Write to a new file named ``base + suffix``; never replace an existing one."""
    candidate = directory / f"{base}{suffix}"
    n = 1
    while True:
        try:
            kwargs = {"encoding": "utf-8"} if "b" not in mode else {}
            with open(candidate, mode, **kwargs) as f:
                f.write(data)
            return candidate
        except FileExistsError:
            candidate = directory / f"{base}_{n}{suffix}"
            n += 1


class ArchiveWriter:
    def __init__(self, root: Path, clock=utc_now):
        self.root = Path(root)
        self.pages_dir = self.root / "pages"
        self.index_path = self.root / "archive_index.csv"
        self.clock = clock
        try:
            self.pages_dir.mkdir(parents=True, exist_ok=True)
            _ensure_index(self.index_path, INDEX_FIELDS)
        except OSError as e:
            raise PersistenceError(f"Archive directory unusable: {e}") from e
        self._ids = self._load_ids()

    def _load_ids(self) -> set[str]:
        with open(self.index_path, newline="", encoding="utf-8") as f:
            return {row["id"] for row in csv.DictReader(f) if row.get("id")}

    def is_archived(self, target_id: str) -> bool:
        return target_id in self._ids

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.root.resolve().parent).as_posix()
        except ValueError:
            return os.path.relpath(path, self.root.parent)

    def record(self, target: HarvestTarget, content: str, source_domain: str,
               content_type: str = "html") -> Optional[ArchiveRecord]:
        """Write the page and append one index row; ``None`` if the id is already archived."""
        if self.is_archived(target.id):
            logger.info("Target %s already archived, skipping write", target.id)
            return None
        moment = self.clock()
        base = f"{file_stamp(moment)}_{safe_url(target.url)}"
        try:
            path = _exclusive_write(self.pages_dir, base, f".{content_type}", content, "x")
        except OSError as e:
            raise PersistenceError(f"Archive write failed: {e}", url=target.url) from e
        try:
            record = ArchiveRecord(
                id=target.id,
                timestamp=moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                source_domain=source_domain,
                url=target.url,
                content_type=content_type,
                path=self._relative(path),
            )
            with open(self.index_path, "a", newline="", encoding="utf-8") as f:
                csv.DictWriter(f, fieldnames=INDEX_FIELDS).writerow(record.model_dump())
        except OSError as e:
            # no page file without its index row
            try:
                path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove unindexed page %s", path)
            raise PersistenceError(f"Archive write failed: {e}", url=target.url) from e
        self._ids.add(target.id)
        logger.info("Archived: %s", path)
        return record

    def records(self) -> list[ArchiveRecord]:
        with open(self.index_path, newline="", encoding="utf-8") as f:
            return [ArchiveRecord(**row) for row in csv.DictReader(f)]


class DiagnosticCapture:
    """Screenshot, markup and reason for targets that could not be archived."""

    def __init__(self, root: Path, clock=utc_now):
        self.root = Path(root)
        self.index_path = self.root / "failures.csv"
        self.clock = clock
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            _ensure_index(self.index_path, DIAGNOSTIC_FIELDS)
        except OSError as e:
            raise PersistenceError(f"Diagnostic directory unusable: {e}") from e
        self._recorded: dict[str, DiagnosticRecord] = {}

    def record_failure(self, target: HarvestTarget, reason: str,
                       screenshot: Optional[bytes] = None, html: Optional[str] = None) -> DiagnosticRecord:
        """Persist failure artifacts once per target; later calls return the first record."""
        if target.id in self._recorded:
            return self._recorded[target.id]
        moment = self.clock()
        base = f"FAIL_{file_stamp(moment)}_{safe_url(target.url)}"
        try:
            screenshot_path = _exclusive_write(self.root, base, ".png", screenshot, "xb") if screenshot else None
            html_path = _exclusive_write(self.root, base, ".html", html, "x") if html is not None else None
            record = DiagnosticRecord(
                timestamp=moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                url=target.url,
                screenshot_path=str(screenshot_path) if screenshot_path else None,
                html_path=str(html_path) if html_path else None,
                reason=reason,
            )
            with open(self.index_path, "a", newline="", encoding="utf-8") as f:
                csv.DictWriter(f, fieldnames=DIAGNOSTIC_FIELDS).writerow(record.model_dump())
        except OSError as e:
            raise PersistenceError(f"Diagnostic write failed: {e}", url=target.url) from e
        self._recorded[target.id] = record
        logger.info("Debug info saved to %s", self.root)
        return record
