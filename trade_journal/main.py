from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
from .config import Settings, settings as default_settings
from .database import build_engine, build_session_factory, create_tables
from .errors import JournalError, validation_message
from .api import auth, trades, stats
from .services.attachment_handler import AttachmentHandler
from .services.token_issuer import TokenIssuer
from .logging_config import setup_logging
from dotenv import load_dotenv
import logging

load_dotenv()

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def register_exception_handlers(app: FastAPI):
    """Every failure leaves the API as {"error": message}"""

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": validation_message(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the journal API with its process-wide dependencies on app.state"""
    settings = settings or default_settings
    setup_logging(settings)

    engine = build_engine(settings)
    attachment_handler = AttachmentHandler.from_settings(settings)
    attachment_handler.ensure_upload_dir()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create database tables
        await create_tables(engine)
        logger.info(f"🚀 {settings.app_name} started")
        logger.info(f"📊 Database: {engine.url.render_as_string(hide_password=True)}")
        logger.info(f"🔑 Token lifetime: {settings.token_lifetime_hours():g}h")
        yield
        await engine.dispose()
        logger.info(f"🛑 {settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Personal trading journal: trades, screenshots and win/loss statistics",
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_issuer = TokenIssuer.from_settings(settings)
    app.state.attachment_handler = attachment_handler

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routers
    prefix = settings.api_prefix
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(trades.router, prefix=f"{prefix}/trades", tags=["Trades"])
    app.include_router(stats.router, prefix=f"{prefix}/stats", tags=["Statistics"])

    # Uploaded chart screenshots
    app.mount(
        settings.uploads_url_prefix,
        StaticFiles(directory=Path(settings.upload_dir)),
        name="uploads",
    )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": VERSION}

    @app.get("/")
    async def root():
        return {
            "message": settings.app_name,
            "version": VERSION,
            "docs": "/docs",
            "status": "active",
        }

    return app


def __getattr__(name):
    # `uvicorn trade_journal.main:app` builds the default app on first access
    if name == "app":
        app = create_app()
        globals()["app"] = app
        return app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def run(settings: Optional[Settings] = None):
    import uvicorn

    settings = settings or default_settings
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
