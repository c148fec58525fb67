"""
Submission API endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from . import schemas, service
from .dependencies import get_store
from .repository import SubmissionStore

router = APIRouter()


@router.post("/api/submit")
async def submit(
    payload: Any = Body(...),
    store: SubmissionStore = Depends(get_store),
) -> dict:
    submission_id = await service.submit(store, payload)
    return {
        "success": True,
        "message": "Form submitted successfully",
        "submissionId": submission_id,
    }


@router.get("/api/submissions")
async def list_submissions(
    status: str | None = Query(default=None),
    store: SubmissionStore = Depends(get_store),
) -> dict:
    submissions = await service.list_submissions(store, status=status)
    return {"success": True, "submissions": submissions}


@router.get("/api/submissions/stats")
async def submission_stats(store: SubmissionStore = Depends(get_store)) -> dict:
    return {"success": True, "stats": await service.stats(store)}


@router.get("/api/submissions/{submission_id}")
async def get_submission(
    submission_id: str,
    store: SubmissionStore = Depends(get_store),
) -> dict:
    submission = await service.get_submission(store, submission_id)
    return {"success": True, "submission": submission}


@router.put("/api/submissions/{submission_id}/status")
async def update_status(
    submission_id: str,
    request: schemas.StatusUpdateRequest,
    store: SubmissionStore = Depends(get_store),
) -> dict:
    submission = await service.change_status(store, submission_id, request.status)
    return {
        "success": True,
        "message": "Status updated successfully",
        "submission": submission,
    }
