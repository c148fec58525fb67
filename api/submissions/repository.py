"""
Submission persistence helpers (raw SQL).

`SubmissionRepository` only depends on the three adapter primitives, so the
same SQL runs on PostgreSQL and SQLite. `JsonFileSubmissionStore` in
`fallback.py` exposes the same methods.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

from core.db import Database

from .schema import COLUMNS, QUANTITY_FIELDS


def utc_now_iso() -> str:
    # Fixed-width microseconds keep ISO strings sortable as text.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def normalize_submission(row: dict[str, Any]) -> dict[str, Any]:
    """
    Coerce engine-specific column types to one shape.

    SQLite returns BOOLEAN as 0/1; Postgres returns bool.
    """
    out = {name: row.get(name) for name in COLUMNS}
    out["acknowledgment"] = bool(out["acknowledgment"])
    for field in QUANTITY_FIELDS:
        out[field] = int(out[field] or 0)
    return out


def submission_params(record: dict[str, Any]) -> tuple[Any, ...]:
    params: list[Any] = []
    for name in COLUMNS:
        value = record.get(name)
        if name in QUANTITY_FIELDS:
            value = int(value or 0)
        elif name == "status":
            value = value or "pending"
        elif name == "acknowledgment":
            value = bool(value)
        params.append(value)
    return tuple(params)


class SubmissionStore(Protocol):
    async def create(self, record: dict[str, Any]) -> dict[str, Any]: ...

    async def get_all(self) -> list[dict[str, Any]]: ...

    async def get_by_id(self, submission_id: str) -> dict[str, Any] | None: ...

    async def get_by_status(self, status: str) -> list[dict[str, Any]]: ...

    async def update_status(self, submission_id: str, status: str) -> int: ...

    async def get_stats(self) -> dict[str, int]: ...


_INSERT_SQL = (
    f"INSERT INTO submissions ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in COLUMNS)})"
)


class SubmissionRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one submission. `record` must already carry id and timestamp.
        """
        changes = await self.db.execute(_INSERT_SQL, *submission_params(record))
        return {"id": record["id"], "changes": changes}

    async def get_all(self) -> list[dict[str, Any]]:
        rows = await self.db.fetch_all(
            """
            SELECT *
            FROM submissions
            ORDER BY timestamp DESC
            """
        )
        return [normalize_submission(r) for r in rows]

    async def get_by_id(self, submission_id: str) -> dict[str, Any] | None:
        row = await self.db.fetch_one(
            """
            SELECT *
            FROM submissions
            WHERE id = ?
            """,
            submission_id,
        )
        return normalize_submission(row) if row is not None else None

    async def get_by_status(self, status: str) -> list[dict[str, Any]]:
        rows = await self.db.fetch_all(
            """
            SELECT *
            FROM submissions
            WHERE status = ?
            ORDER BY timestamp DESC
            """,
            status,
        )
        return [normalize_submission(r) for r in rows]

    async def update_status(self, submission_id: str, status: str) -> int:
        # Unknown ids update zero rows; callers re-fetch to confirm.
        return await self.db.execute(
            """
            UPDATE submissions
            SET status = ?, status_updated = ?
            WHERE id = ?
            """,
            status,
            utc_now_iso(),
            submission_id,
        )

    async def get_stats(self) -> dict[str, int]:
        row = await self.db.fetch_one(
            """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending,
                SUM(CASE WHEN status = 'approved' THEN 1 ELSE 0 END) AS approved,
                SUM(CASE WHEN status = 'rejected' THEN 1 ELSE 0 END) AS rejected
            FROM submissions
            """
        )
        row = row or {}
        # SUM over an empty table is NULL on both engines.
        return {key: int(row.get(key) or 0) for key in ("total", "pending", "approved", "rejected")}
