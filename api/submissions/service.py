"""
Submission business logic.

Handlers call these functions with the store selected at startup; nothing
here knows which backend is active.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import pydantic

from .repository import SubmissionStore, utc_now_iso
from .schema import STATUSES
from .schemas import SubmissionCreate

logger = logging.getLogger(__name__)

# Form key -> column. `endUser` is optional at the boundary and stored as "".
REQUIRED_FIELDS = {
    "distributorName": "distributor_name",
    "installDate": "install_date",
    "neededByDate": "needed_by_date",
    "rsm": "rsm",
    "acknowledgment": "acknowledgment",
}


# Client-caused input problems (HTTP 400).
class ValidationError(RuntimeError):
    pass


# Absent entity (HTTP 404).
class NotFoundError(RuntimeError):
    pass


_last_id_us = 0


def next_submission_id() -> str:
    """
    Epoch microseconds as a string, strictly increasing within the process.
    """
    global _last_id_us
    now_us = time.time_ns() // 1000
    if now_us <= _last_id_us:
        now_us = _last_id_us + 1
    _last_id_us = now_us
    return str(now_us)


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_required_fields(payload: dict[str, Any]) -> list[str]:
    missing = []
    for form_key, column in REQUIRED_FIELDS.items():
        value = payload.get(form_key, payload.get(column))
        if _is_blank(value):
            missing.append(form_key)
    return missing


def _format_pydantic_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "Invalid fields: " + "; ".join(parts)


def validate_status(status: Any) -> str:
    if status not in STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(STATUSES)}")
    return status


def build_submission(payload: Any) -> dict[str, Any]:
    """
    Validate a form payload and return a full record ready for `create`.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    missing = missing_required_fields(payload)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        data = SubmissionCreate.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(_format_pydantic_error(exc)) from exc

    if not data.acknowledgment:
        raise ValidationError("Missing required fields: acknowledgment")

    record = data.model_dump()
    record.update(
        id=next_submission_id(),
        timestamp=utc_now_iso(),
        status="pending",
        status_updated=None,
    )
    return record


async def submit(store: SubmissionStore, payload: Any) -> str:
    record = build_submission(payload)
    await store.create(record)
    logger.info("submission_created id=%s distributor=%s", record["id"], record["distributor_name"])
    return record["id"]


async def list_submissions(store: SubmissionStore, *, status: str | None = None) -> list[dict]:
    if status is None:
        return await store.get_all()
    return await store.get_by_status(validate_status(status))


async def get_submission(store: SubmissionStore, submission_id: str) -> dict:
    submission = await store.get_by_id(submission_id)
    if submission is None:
        raise NotFoundError("Submission not found")
    return submission


async def change_status(store: SubmissionStore, submission_id: str, status: Any) -> dict:
    status = validate_status(status)
    await store.update_status(submission_id, status)
    # The store does not check existence; re-read to confirm.
    submission = await get_submission(store, submission_id)
    logger.info("submission_status_updated id=%s status=%s", submission_id, status)
    return submission


async def stats(store: SubmissionStore) -> dict[str, int]:
    return await store.get_stats()
