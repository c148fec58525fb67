"""
Store dependency for submission routes.
"""

from __future__ import annotations

from fastapi import Request

from .lifecycle import StoreLifecycle
from .repository import SubmissionStore


def get_lifecycle(request: Request) -> StoreLifecycle:
    return request.app.state.storage


def get_store(request: Request) -> SubmissionStore:
    return get_lifecycle(request).store
