from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .api.v1.models import router as models_router
from .api.v1.chat import chat_validation_handler, router as chat_router
from .api.v1.conversations import router as conversations_router
from .core.logging import setup_logging
from .db.session import dispose_db, init_db

VERSION = "0.1.0"


def create_app() -> FastAPI:
    settings = get_settings()
    # Setup logging early
    setup_logging(settings.log_level)
    app = FastAPI(title="IKnowEverything Server", version=VERSION)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o).rstrip("/") for o in settings.allowed_origins],
        allow_origin_regex=settings.allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    api_v1 = APIRouter()
    api_v1.include_router(models_router, prefix="/v1", tags=["models"])
    api_v1.include_router(chat_router, prefix="/v1", tags=["chat"])
    api_v1.include_router(conversations_router, prefix="/v1", tags=["conversations"])
    app.include_router(api_v1, prefix="/api")
    app.add_exception_handler(RequestValidationError, chat_validation_handler)

    @app.on_event("startup")
    async def _startup() -> None:
        await init_db()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await dispose_db()

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/")
    def root():
        return {"service": "iknoweverything", "version": VERSION}

    return app


app = create_app()
