import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from core import config
from core.exceptions import (
    AppError, app_error_handler, validation_exception_handler, http_exception_handler, global_exception_handler
)
from core.logger import setup_logger
from auth.utils import hash_password
from routers.admin import router as admin_router
from routers.auth import router as auth_router
from routers.interview import router as interview_router
from routers.materials import router as materials_router
from routers.subjects import router as subjects_router
from services.llm import get_llm_provider
from services.orchestrator import InterviewOrchestrator
from services.rate_limiter import limiter, rate_limit_exceeded_handler
from services.sheets_exporter import SheetsExporter
from services.storage import Storage, create_storage

setup_logger(log_level=config.LOG_LEVEL, log_dir=config.LOG_DIR or None)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage = app.state.storage
    admin_hash = hash_password(config.ADMIN_PASSWORD) if config.ADMIN_EMAIL and config.ADMIN_PASSWORD else None
    storage.seed(config.ADMIN_EMAIL, admin_hash, config.ADMIN_NAME)
    app.state.exporter.start()
    logger.info("Application startup: Interview Coach API")
    yield
    app.state.exporter.stop()
    logger.info("Application shutdown")


def create_app(storage: Storage = None, exporter: SheetsExporter = None, provider_factory=None) -> FastAPI:
    app = FastAPI(title="Interview Coach API", version="1.0.0", lifespan=lifespan)

    app.state.storage = storage or create_storage(config.STORAGE_BACKEND)
    app.state.exporter = exporter or SheetsExporter.from_config(app.state.storage)
    app.state.orchestrator = InterviewOrchestrator(
        app.state.storage,
        exporter=app.state.exporter,
        provider_factory=provider_factory or get_llm_provider
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Enable CORS for the frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(interview_router)
    app.include_router(subjects_router)
    app.include_router(materials_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
