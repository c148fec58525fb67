import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.db import StorageError
from core.settings import Settings, load_settings
from submissions import router as submissions_router
from submissions.lifecycle import StoreLifecycle
from submissions.repository import utc_now_iso
from submissions.service import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Pick and initialize storage once per process.
        storage = StoreLifecycle(settings)
        await storage.start()
        app.state.storage = storage
        try:
            yield
        finally:
            await storage.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings

    # The intake form is public; lock origins down with CORS_ORIGINS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(submissions_router.router, tags=["submissions"])

    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) for err in exc.errors())
        return _error(400, f"Invalid request body: {fields or 'unreadable JSON'}")

    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        # Full detail stays in the server log.
        logger.error("storage_error method=%s path=%s", request.method, request.url.path, exc_info=exc)
        return _error(500, "Internal server error")

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error method=%s path=%s", request.method, request.url.path, exc_info=exc)
        return _error(500, "Internal server error")

    @app.get("/health")
    def health(request: Request) -> dict:
        storage: StoreLifecycle | None = getattr(request.app.state, "storage", None)
        return {
            "status": "OK",
            "timestamp": utc_now_iso(),
            "database": storage.backend if storage is not None else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)
