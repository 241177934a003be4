"""FastAPI application initialization and configuration."""
from __future__ import annotations

import os
import sys
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from twmt_search.config import Config
from twmt_search.core.logging_config import setup_logging, get_logger
from twmt_search.api.dependencies import (
    initialize_services,
    shutdown_services,
    get_config,
)
from twmt_search.api.routers import (
    search_router,
    history_router,
    saved_searches_router,
    stats_router,
)
from twmt_search.config.constants import (
    APP_VERSION,
    DEFAULT_HOST,
    DEFAULT_PORT,
    ENV_DB_PATH,
    ENV_PORT,
    ENV_HOST,
    ERROR_INVALID_PORT,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown lifecycle."""
    # --- startup ---
    started = time.perf_counter()
    initialize_services()

    config = get_config()
    setup_logging(config.logging)
    _logger = get_logger(__name__)
    _logger.info(
        "Startup complete in %.1fms (database: %s)",
        (time.perf_counter() - started) * 1000.0,
        config.paths.database_path,
    )

    yield

    # --- shutdown ---
    shutdown_services()


# Create FastAPI app
app = FastAPI(
    title="TWMT Search API",
    description="Full-text and pattern search over mod translation data",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware, origins from config, defaults to localhost-only
_cors_origins = Config.load().server.cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(search_router, prefix="/api", tags=["search"])
app.include_router(history_router, prefix="/api", tags=["history"])
app.include_router(saved_searches_router, prefix="/api", tags=["saved-searches"])
app.include_router(stats_router, prefix="/api", tags=["statistics"])


def main():
    """Run the server with configurable host and port."""
    import uvicorn

    prog = Path(sys.argv[0]).name
    argv = set(sys.argv[1:])
    if prog.startswith("twmt-search-web"):
        if "--version" in argv:
            print(APP_VERSION)
            return
        if "-h" in argv or "--help" in argv:
            print("Usage: twmt-search-web")
            print()
            print("Environment variables:")
            print(f"  {ENV_HOST}=<host>      (default: {DEFAULT_HOST})")
            print(f"  {ENV_PORT}=<port>      (default: {DEFAULT_PORT})")
            print(f"  {ENV_DB_PATH}=<path>   (default: ~/.twmt-search/twmt.db)")
            print()
            return

    config = Config.load()
    host = os.getenv(ENV_HOST) or config.server.host

    env_port = os.getenv(ENV_PORT)
    port = config.server.port
    if env_port:
        try:
            port = int(env_port)
        except ValueError:
            print(ERROR_INVALID_PORT.format(port=env_port))
            return
    if not (1 <= port <= 65535):
        print(ERROR_INVALID_PORT.format(port=port))
        return

    print(f"Starting TWMT search server on http://{host}:{port}")
    print(f"API docs: http://{host}:{port}/docs")
    uvicorn.run(app, host=host, port=port, log_level=config.logging.level.lower())


if __name__ == "__main__":
    main()
