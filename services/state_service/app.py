from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from libs.config import get_setting
from libs.event_bus.bus import TopicBus
from libs.log import setup_logging
from .routers.http import EPOCH_HEADER, REVISION_HEADER, router as http_router
from .routers.ws import router as ws_router
from .storage import FileStateStore


def create_app(store: Optional[FileStateStore] = None) -> FastAPI:
    app = FastAPI(title="state_service")
    # the dashboard front end polls from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REVISION_HEADER, EPOCH_HEADER],
    )
    app.state.store = store if store is not None else FileStateStore(str(get_setting("services.state_file")))
    app.state.bus = TopicBus()
    app.include_router(http_router)
    app.include_router(ws_router)
    return app


def serve_app() -> FastAPI:
    """uvicorn factory: ``uvicorn services.state_service.app:serve_app --factory``."""
    setup_logging()
    return create_app()
