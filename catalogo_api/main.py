from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalogo_api.api.routes import router
from catalogo_api.core.config import Settings, get_settings
from catalogo_api.core.db import Database
from catalogo_api.core.errors import CatalogoError, ValidationError
from catalogo_api.core.logging import configure_logging, get_logger
from catalogo_api.middlewares.request_id import RequestIdMiddleware

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        configure_logging(settings.log_level)
        # Log de arranque con parámetros clave (sin secretos)
        logger.info(
            "%s %s started (env=%s db_server=%s db_name=%s cors=%s)",
            settings.app_name,
            settings.app_version,
            settings.environment,
            settings.db_server,
            settings.db_name,
            settings.cors_allowed_origins,
        )
        try:
            yield
        finally:
            await database.dispose()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(RequestIdMiddleware)

    origins = settings.cors_origins_list()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # credenciales no se permiten con comodín
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    @app.exception_handler(CatalogoError)
    async def catalogo_error_handler(request: Request, exc: CatalogoError):
        if isinstance(exc, ValidationError):
            logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        logger.info("Invalid body on %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "JSON inválido"})

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("API escuchando en http://localhost:%s", settings.port)
    uvicorn.run(
        "catalogo_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
