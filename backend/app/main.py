import logging
import logging.config

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ghostmedia.realtime import RealtimeHub

from app.api.routes import router as api_router
from app.api.ws import router as ws_router
from app.config import get_settings
from app.database import SessionLocal, init_db
from app.services.ghosts import GhostReaper


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        }
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
    "loggers": {
        "ghostmedia.realtime": {
            "level": "INFO",
        },
        "app.services.ghosts": {
            "level": "INFO",
        }
    },
}


logging.config.dictConfig(LOGGING_CONFIG)

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_origin_regex=settings.cors_allow_origin_regex,
)


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server error"},
    )


@app.get("/health", tags=["system"])
def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


@app.get("/ping", tags=["system"])
def ping() -> dict[str, str]:
    return {"message": "pong"}


@app.on_event("startup")
async def _startup() -> None:
    factory = getattr(app.state, "session_factory", None)
    if factory is None:
        init_db()
        factory = SessionLocal
        app.state.session_factory = factory

    hub = RealtimeHub()
    app.state.realtime = hub
    app.state.ghosts = GhostReaper(factory, hub.router, hub.scheduler)
    await hub.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    hub: RealtimeHub | None = getattr(app.state, "realtime", None)
    if hub is not None:
        await hub.stop()


app.include_router(api_router, prefix="/api")
app.include_router(ws_router)
