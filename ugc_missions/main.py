import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text

from ugc_missions.config import settings
from ugc_missions.db.base import engine
from ugc_missions.errors import MissionWorkflowError
from ugc_missions.routers import applications, contracts, invoices, missions
from ugc_missions.services.document_storage import DocumentStorageError

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app() -> FastAPI:
    _configure_logging()
    app = FastAPI(
        title="UGC Missions API",
        default_response_class=ORJSONResponse,
    )

    allow_origins = sorted(set(settings.BACKEND_CORS_ORIGINS))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MissionWorkflowError)
    async def workflow_error_handler(request: Request, exc: MissionWorkflowError) -> ORJSONResponse:
        logger.info(
            "Workflow action rejected",
            extra={"path": request.url.path, "kind": exc.kind, "error": exc.message},
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "kind": exc.kind},
        )

    @app.exception_handler(DocumentStorageError)
    async def document_storage_error_handler(_request: Request, exc: DocumentStorageError) -> ORJSONResponse:
        logger.exception("Document storage failed", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health/db")
    def health_db() -> dict[str, str]:
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return {"db": "ok"}
        except Exception as exc:  # pragma: no cover - simple runtime check
            return {"db": f"error: {exc}"}

    app.include_router(missions.router)
    app.include_router(contracts.router)
    app.include_router(invoices.router)
    app.include_router(applications.router)

    return app


app = create_app()
