from __future__ import annotations

import pytest

from core.db import SQLiteDatabase
from submissions import service
from submissions.fallback import JsonFileSubmissionStore
from submissions.repository import SubmissionRepository
from submissions.schema import ensure_schema


@pytest.fixture
def anyio_backend():
    return "asyncio"


def form_payload(**overrides):
    payload = {
        "distributorName": "Acme",
        "endUser": "Northwind Hospital",
        "installDate": "2025-01-10",
        "neededByDate": "2025-01-05",
        "rsm": "J. Doe",
        "acknowledgment": True,
        "nexusQuantity": 2,
    }
    payload.update(overrides)
    return payload


def make_record(**overrides):
    return service.build_submission(form_payload(**overrides))


@pytest.fixture
async def sqlite_db(tmp_path):
    db = SQLiteDatabase(tmp_path / "submissions.db")
    await db.connect()
    await ensure_schema(db)
    yield db
    await db.close()


@pytest.fixture(params=["sqlite", "fallback"])
async def store(request, tmp_path):
    if request.param == "fallback":
        yield JsonFileSubmissionStore(tmp_path / "submissions.json")
        return

    db = SQLiteDatabase(tmp_path / "submissions.db")
    await db.connect()
    await ensure_schema(db)
    yield SubmissionRepository(db)
    await db.close()
