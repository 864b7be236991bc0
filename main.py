import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_chat.api.v1 import auth, chat, chat_websocket, customers, profile, users
from crm_chat.core.config import settings
from crm_chat.core.database import init_db
from crm_chat.core.errors import CRMError
from crm_chat.core.logging import configure_logging
from crm_chat.core.messages import ERROR_BAD_REQUEST, ERROR_INTERNAL_SERVER
from crm_chat.core.redis import is_redis_available
from crm_chat.middleware.logging import LoggingMiddleware


logger = logging.getLogger("crm_chat.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as {"error": message}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": ERROR_BAD_REQUEST, "details": details},
        )

    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
        content = {"error": exc.message}
        if exc.details is not None:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": ERROR_INTERNAL_SERVER},
        )


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="CRM Chat Relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware - must be added before other middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Middleware
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    # API routes
    prefix = settings.API_V1_PREFIX
    app.include_router(auth.router, prefix=prefix)
    app.include_router(profile.router, prefix=prefix)
    app.include_router(users.router, prefix=prefix)
    app.include_router(customers.router, prefix=prefix)
    app.include_router(chat.router, prefix=prefix)
    app.include_router(chat_websocket.router, prefix=prefix)

    @app.get("/health", tags=["health"])
    def health_check() -> dict:
        return {
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "redis": is_redis_available(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=settings.DEBUG,
    )
