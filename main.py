"""
Social connection service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_middleware
from config.settings import Settings, config
from connectors.encryption import TokenCipher
from connectors.lifecycle import ConnectionManager
from connectors.registry import ProviderRegistry
from connectors.routes import router as connections_router
from connectors.state import StateSigner
from connectors.store import (
    ConnectionStore,
    InMemoryConnectionStore,
    SqlAlchemyConnectionStore,
)
from database.session import build_engine, build_session_factory

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3", "sqlalchemy.engine"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def build_connection_manager(settings: Settings = config) -> ConnectionManager:
    """Wire the lifecycle manager from settings (registry, store, cipher, state)."""
    store: ConnectionStore
    if settings.connection_store == "database":
        engine = build_engine(settings.database_url)
        store = SqlAlchemyConnectionStore(build_session_factory(engine))
    else:
        logger.warning("Using in-memory connection store — connections are lost on restart")
        store = InMemoryConnectionStore()

    return ConnectionManager(
        ProviderRegistry.from_settings(settings),
        store,
        TokenCipher.from_settings(settings),
        StateSigner(
            settings.oauth_state_secret,
            ttl_seconds=settings.oauth_state_ttl_seconds,
        ),
        refresh_buffer=timedelta(seconds=settings.refresh_buffer_seconds),
    )


def create_app(manager: Optional[ConnectionManager] = None) -> FastAPI:
    app = FastAPI(
        title="Social Connections",
        version="1.0.0",
        description="OAuth connections to social platforms for post scheduling.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    app.state.connection_manager = manager or build_connection_manager(config)

    # Routes
    app.include_router(connections_router, prefix="/api")

    @app.on_event("startup")
    async def on_startup():
        store = app.state.connection_manager.store
        if isinstance(store, SqlAlchemyConnectionStore):
            logger.info("Ensuring connection tables exist…")
            await store.create_tables()

        configured = app.state.connection_manager.registry.list_configured()
        logger.info("Connectable platforms: %s", ", ".join(configured) or "none")
        logger.info("Application ready to accept requests.")

    return app


if __name__ == "__main__":
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
