"""
Storage lifecycle: pick a backend, initialize it, fall back if that fails.

    uninitialized -> selecting_backend -> initializing -> ready
                                                       -> fallback_ready

`ready` and `fallback_ready` hold until `close()`. The chosen store is fixed
for the life of the process.
"""

from __future__ import annotations

import enum
import logging

from core.db import Database, PostgresDatabase, SQLiteDatabase
from core.settings import Settings

from .fallback import JsonFileSubmissionStore
from .repository import SubmissionRepository, SubmissionStore
from .schema import ensure_schema

logger = logging.getLogger(__name__)


class LifecycleState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    SELECTING_BACKEND = "selecting_backend"
    INITIALIZING = "initializing"
    READY = "ready"
    FALLBACK_READY = "fallback_ready"
    CLOSED = "closed"


def select_backend(settings: Settings) -> str:
    return "postgres" if settings.database_url else "sqlite"


def build_database(backend: str, settings: Settings) -> Database:
    if backend == "postgres":
        return PostgresDatabase(settings.database_url, production=settings.production)
    return SQLiteDatabase(settings.sqlite_path)


class StoreLifecycle:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.state = LifecycleState.UNINITIALIZED
        self.backend: str | None = None
        self._db: Database | None = None
        self._store: SubmissionStore | None = None

    @property
    def store(self) -> SubmissionStore:
        if self._store is None:
            raise RuntimeError(f"Submission store is not available (state={self.state.value}).")
        return self._store

    @property
    def is_fallback(self) -> bool:
        return self.state is LifecycleState.FALLBACK_READY

    async def start(self) -> SubmissionStore:
        if self.state is not LifecycleState.UNINITIALIZED:
            raise RuntimeError(f"Storage already started (state={self.state.value}).")

        self.state = LifecycleState.SELECTING_BACKEND
        self.backend = select_backend(self.settings)

        self.state = LifecycleState.INITIALIZING
        db: Database | None = None
        try:
            db = build_database(self.backend, self.settings)
            await db.connect()
            await ensure_schema(db)
        except Exception:
            logger.warning(
                "storage_init_failed backend=%s fallback_path=%s",
                self.backend,
                self.settings.fallback_json_path,
                exc_info=True,
            )
            if db is not None:
                await self._close_quietly(db)
            self.backend = JsonFileSubmissionStore.name
            self._store = JsonFileSubmissionStore(self.settings.fallback_json_path)
            self.state = LifecycleState.FALLBACK_READY
            return self._store

        self._db = db
        self._store = SubmissionRepository(db)
        self.state = LifecycleState.READY
        logger.info("storage_ready backend=%s", self.backend)
        return self._store

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
        self._store = None
        self.state = LifecycleState.CLOSED

    @staticmethod
    async def _close_quietly(db: Database) -> None:
        try:
            await db.close()
        except Exception:
            logger.exception("storage_close_failed backend=%s", db.name)
