from __future__ import annotations

import contextlib
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from logging_config import setup_logging
from persistence import BackendUnavailable, CorruptData, IndexOutOfRange, ScheduleRepository, create_backend
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    backend = app.state.backend
    await backend.initialize()
    logger.info("Storage backend ready: %s", backend.kind)
    try:
        yield
    finally:
        await backend.close()


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IndexOutOfRange)
    async def index_out_of_range(request: Request, exc: IndexOutOfRange):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"success": False, "error": "Invalid index"}, status_code=400)

    @app.exception_handler(BackendUnavailable)
    async def backend_unavailable(request: Request, exc: BackendUnavailable):
        logger.error("Storage unavailable for %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"success": False, "error": "Storage unavailable"}, status_code=503)

    @app.exception_handler(CorruptData)
    async def corrupt_data(request: Request, exc: CorruptData):
        logger.error("Corrupt stored data for %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"success": False, "error": "Stored data is corrupt"}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    if settings is None:
        load_dotenv("local.env")
        settings = get_settings()

    setup_logging(settings.log_level)

    from endpoints.schedule_endpoints import router as schedule_router

    backend = create_backend(settings)

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.repository = ScheduleRepository(backend)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    app.include_router(schedule_router)

    # Frontend, mounted last so /api routes take precedence.
    if settings.public_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")
    else:
        logger.info("No frontend directory at %s; serving the API only", settings.public_dir)

    return app


app = create_app()
