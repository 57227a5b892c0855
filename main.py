import logging
from contextlib import asynccontextmanager

import psycopg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from config import Settings, settings as default_settings
from db import close_pool
from errors import WritifyError, writify_error_handler
from init_db import init_database

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Check the tables on every boot so a fresh database needs no manual SQL
    init_database(app.state.settings.DATABASE_URL)
    yield
    await close_pool(app)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "message": str(exc.errors())})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "message": "The requested resource was not found"},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


async def database_error_handler(request: Request, exc: psycopg.Error):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Server error", "message": str(exc)})


def create_app(settings: Settings = default_settings) -> FastAPI:
    """
    Build the application from one Settings object. Local and production
    runs share this code and differ only in the settings passed in.
    """
    app = FastAPI(lifespan=lifespan, title="Writify API")
    app.state.settings = settings
    app.state.pool = None

    # --- Sessions (login state) ---
    # Cross-site cookies need SameSite=None, which browsers only accept with Secure
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie="writify.sid",
        max_age=settings.SESSION_MAX_AGE,
        same_site="none" if settings.COOKIE_SECURE else "lax",
        https_only=settings.COOKIE_SECURE,
    )

    # --- CORS for the separately hosted frontend ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Cookie", "Cache-Control", "Accept"],
        expose_headers=["Set-Cookie"],
    )

    app.add_exception_handler(WritifyError, writify_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(psycopg.Error, database_error_handler)

    from routes.auth import build_oauth, router as auth_router
    from routes.requests import router as requests_router
    from routes.rating import router as rating_router
    from routes.users import router as users_router

    app.state.oauth = build_oauth(settings)
    app.include_router(auth_router)
    app.include_router(requests_router)
    app.include_router(rating_router)
    app.include_router(users_router)

    @app.get("/api/test")
    async def health_check():
        return {"message": "Backend server is working correctly"}

    return app


app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
