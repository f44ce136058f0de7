import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from crm.api import api_router
from crm.core.config import Settings, get_settings
from crm.core.errors import AuthFault, CRMFault
from crm.core.logging import configure_logging
from crm.core.security import build_token_verifier
from crm.db.init_db import init_db
from crm.db.session import Database
from crm.services.attachment_promoter import AttachmentPromoter
from crm.services.attachment_stager import AttachmentStager

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    database = Database(settings.database_url)
    token_verifier = build_token_verifier(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        settings.attachments_dir.mkdir(parents=True, exist_ok=True)
        if settings.auth_mode == "secret" and not settings.jwt_secret:
            logger.warning("JWT_SECRET is not set; every authenticated request will be denied")
        await init_db(database, settings)

        yield

        await token_verifier.aclose()
        await database.close()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.token_verifier = token_verifier
    app.state.attachment_stager = AttachmentStager(
        settings.temp_uploads_dir,
        timeout_seconds=settings.file_timeout_seconds,
    )
    app.state.attachment_promoter = AttachmentPromoter(
        settings.attachments_dir,
        workers=settings.file_workers,
        timeout_seconds=settings.file_timeout_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.mount(
        settings.attachments_url_path,
        StaticFiles(directory=settings.attachments_dir, check_dir=False),
        name="order_images",
    )

    @app.exception_handler(CRMFault)
    async def handle_fault(_: Request, exc: CRMFault) -> JSONResponse:
        content = {"detail": exc.message}
        if exc.stage:
            content["stage"] = exc.stage
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthFault) and exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["health"])
    async def root() -> dict[str, str]:
        return {"message": "Welcome to the API"}

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.uvicorn_host,
        port=settings.uvicorn_port,
        reload=settings.uvicorn_reload,
    )
