# tempchat/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tempchat.api import auth, files, giphy, messages, users
from tempchat.core.config import CORS_ORIGINS
from tempchat.core.errors import ChatError
from tempchat.core.message import load_messages
from tempchat.core.rate_limit import limiter
from tempchat.infra.sqlite import init_db
from tempchat.services.broadcast import BroadcastRegistry
from tempchat.services.giphy import GiphyClient
from tempchat.services.storage import FileStorage
from tempchat.utils.logger import setup_logger

setup_logger()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.broadcast = BroadcastRegistry(load_messages)
    app.state.file_storage = FileStorage()
    app.state.giphy = GiphyClient()
    logger.info("TempChat started")
    try:
        yield
    finally:
        app.state.broadcast.close()
        logger.info("TempChat stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="TempChat Backend",
        version="1.0.0",
        description="Shared chat feed with live delivery",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    # Register routers
    app.include_router(auth.router, tags=["Auth"])
    app.include_router(messages.router, tags=["Messages"])
    app.include_router(users.router, tags=["Admin"])
    app.include_router(files.router, tags=["Files"])
    app.include_router(giphy.router, tags=["Giphy"])

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
