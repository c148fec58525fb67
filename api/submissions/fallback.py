"""
Flat-file JSON store used when the database cannot be initialized.

Every operation reads the whole array, changes it in memory and rewrites the
whole file. There is no locking: a second process writing the same file can
lose updates.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from core.db import StorageError

from .repository import normalize_submission, submission_params, utc_now_iso
from .schema import COLUMNS, STATUSES

logger = logging.getLogger(__name__)


def _check_record(path: Path, index: int, record: Any) -> None:
    if not isinstance(record, dict) or not isinstance(record.get("id"), str):
        raise StorageError(f"{path}: entry {index} is not a submission record.")
    try:
        normalize_submission(record)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"{path}: entry {index} has an invalid field: {exc}") from exc


def _newest_first(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=lambda r: str(r.get("timestamp") or ""), reverse=True)


class JsonFileSubmissionStore:
    name = "fallback"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _ensure_file(self) -> None:
        if self.path.exists():
            return None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to create {self.path.parent}: {exc}") from exc
        self._write([])

    def _read(self) -> list[dict[str, Any]]:
        self._ensure_file()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Failed to read {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError(f"{self.path} does not contain a JSON array.")
        for index, record in enumerate(data):
            _check_record(self.path, index, record)
        return data

    def _write(self, records: list[dict[str, Any]]) -> None:
        # Write to a sibling temp file and swap it in, so readers never see half a file.
        try:
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        except OSError as exc:
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            Path(tmp).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc

    def _create(self, record: dict[str, Any]) -> dict[str, Any]:
        records = self._read()
        if any(r.get("id") == record["id"] for r in records):
            raise StorageError(f"Submission id already exists: {record['id']}")
        records.append(dict(zip(COLUMNS, submission_params(record))))
        self._write(records)
        return {"id": record["id"], "changes": 1}

    def _update_status(self, submission_id: str, status: str) -> int:
        records = self._read()
        for r in records:
            if r.get("id") == submission_id:
                r["status"] = status
                r["status_updated"] = utc_now_iso()
                self._write(records)
                return 1
        return 0

    def _stats(self) -> dict[str, int]:
        records = self._read()
        stats = {"total": len(records), **{status: 0 for status in STATUSES}}
        for r in records:
            if r.get("status") in STATUSES:
                stats[r["status"]] += 1
        return stats

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._create, record)

    async def get_all(self) -> list[dict[str, Any]]:
        records = await asyncio.to_thread(self._read)
        return [normalize_submission(r) for r in _newest_first(records)]

    async def get_by_id(self, submission_id: str) -> dict[str, Any] | None:
        records = await asyncio.to_thread(self._read)
        for r in records:
            if r.get("id") == submission_id:
                return normalize_submission(r)
        return None

    async def get_by_status(self, status: str) -> list[dict[str, Any]]:
        records = await asyncio.to_thread(self._read)
        return [normalize_submission(r) for r in _newest_first(records) if r.get("status") == status]

    async def update_status(self, submission_id: str, status: str) -> int:
        changes = await asyncio.to_thread(self._update_status, submission_id, status)
        if not changes:
            logger.info("fallback_update_missed id=%s", submission_id)
        return changes

    async def get_stats(self) -> dict[str, int]:
        return await asyncio.to_thread(self._stats)
