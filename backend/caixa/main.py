import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from caixa.core.config import settings
from caixa.core.database import SessionLocal, init_db
from caixa.core.errors import ClosingError, StorageError
from caixa.routes.closings import router as closings_router
from caixa.routes.health import router as health_router
from caixa.routes.receivables import router as receivables_router
from caixa.routes.reports import router as reports_router
from caixa.routes.stores import router as stores_router
from caixa.services.seed import seed_demo

logger = logging.getLogger(__name__)


def _closing_error_handler(request: Request, exc: ClosingError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Caixa API", version="0.1.0")

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ClosingError, _closing_error_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(stores_router, prefix="/stores", tags=["stores"])
    app.include_router(closings_router, prefix="/closings", tags=["closings"])
    app.include_router(receivables_router, prefix="/receivables", tags=["receivables"])
    app.include_router(reports_router, prefix="/reports", tags=["reports"])

    return app


app = create_app()

# Only seed in development or when explicitly requested
if settings.env == "dev" or os.getenv("FORCE_SEED") == "true":
    init_db()
    with SessionLocal() as db:
        seed_demo(db)
