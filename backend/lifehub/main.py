import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from lifehub.api.api_v1.api import api_router
from lifehub.core.config import Settings, settings as default_settings
from lifehub.core.errors import ExternalDependencyError, HubError
from lifehub.db.base import Base
from lifehub.db.session import create_db_engine, create_session_factory

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API application. Everything configurable comes from ``settings``,
    so tests can run several isolated apps side by side.
    """
    settings = settings or default_settings

    engine = create_db_engine(settings.SQLALCHEMY_DATABASE_URI)
    # Create tables for development (in production use Alembic)
    Base.metadata.create_all(bind=engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Registered Routes:")
        for route in app.routes:
            if hasattr(route, "path"):
                logger.info("  %s", route.path)
        yield
        engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # Set all CORS enabled origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def read_root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    @app.exception_handler(HubError)
    async def hub_error_handler(request: Request, exc: HubError):
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(OperationalError)
    async def storage_error_handler(request: Request, exc: OperationalError):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
        error = ExternalDependencyError("Storage unavailable")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation Error: %s", exc)
        return JSONResponse(
            status_code=422,
            content={"code": "validation_error", "message": "Validation Error", "detail": jsonable_encoder(exc.errors())},
        )

    # Global Exception Handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Global Exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"code": "internal_error", "message": "Internal Server Error", "detail": str(exc)},
        )

    return app


if __name__ == "__main__":
    logging.basicConfig(level=default_settings.LOG_LEVEL)
    uvicorn.run(create_app(), host="127.0.0.1", port=8899)
