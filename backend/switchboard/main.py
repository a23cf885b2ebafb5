"""
Switchboard — FastAPI Application Factory
===========================================

What:  Builds the ASGI application that serves the handler chain.
How:   create_app() assembles the dispatcher from settings and mounts a
       single catch-all route that hands every request, whatever its method
       or path, to Dispatcher.dispatch(). FastAPI's own docs routes are
       switched off so they cannot shadow paths in the chain.
Who:   uvicorn (`switchboard.main:app`) or the `switchboard` console script.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Catch-all route  /{path:path}  (any method)        │
    │        │                                            │
    │        ▼                                            │
    │  Dispatcher (first registered, first evaluated)     │
    │  ┌──────────────┐ ┌──────────────┐ ┌─────────────┐  │
    │  │ "" logger    │→│ /hello       │→│ /goodbye    │  │
    │  └──────────────┘ └──────────────┘ └─────────────┘  │
    │        └────── nothing ended it → 404 fallback      │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Timeout→504 │ NotTerminated→500 │ other→500  │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from switchboard import __version__
from switchboard.config import Settings, settings as default_settings
from switchboard.dispatch.chain import Dispatcher, RouteTable
from switchboard.dispatch.handlers import (
    goodbye_world,
    goodbye_world_corrected,
    hello_world,
    log_request,
    not_found,
)
from switchboard.exceptions import (
    DispatchTimeoutError,
    RouteNotTerminatedError,
    SwitchboardError,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(config: Settings) -> None:
    """
    Configure the root logger once at start-up.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Request lines arrive on the `switchboard.access` logger.
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # uvicorn's own access log would duplicate switchboard.access
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def announce_listening(config: Settings) -> None:
    logger.info("Server running at http://localhost:%d/", config.server_port)


# ══════════════════════════════════════════════════════════════════════════
# Dispatcher Assembly
# ══════════════════════════════════════════════════════════════════════════

def build_dispatcher(config: Settings) -> Dispatcher:
    """
    Register the production chain, in evaluation order.

        ""         log_request   (always passes on)
        /hello     hello_world
        /goodbye   goodbye_world (or the corrected variant)

    Unmatched requests get the not_found fallback unless
    unmatched_policy is "error".
    """
    table = RouteTable()
    table.register("", log_request)
    table.register("/hello", hello_world)
    table.register(
        "/goodbye",
        goodbye_world_corrected if config.correct_legacy_typos else goodbye_world,
    )

    return Dispatcher(
        table,
        timeout=config.dispatch_timeout,
        fallback=not_found if config.unmatched_policy == "not_found" else None,
    )


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map dispatch failures to JSON error responses.

    Handler hierarchy:
        DispatchTimeoutError     → 504 Gateway Timeout
        RouteNotTerminatedError  → 500 (fallback disabled, nobody answered)
        SwitchboardError (base)  → 500
        Exception (fallback)     → 500, stack trace logged server-side only
    """

    @app.exception_handler(DispatchTimeoutError)
    async def handle_timeout(request: Request, exc: DispatchTimeoutError):
        logger.warning("Dispatch timeout: %s", exc.message)
        return JSONResponse(
            status_code=504,
            content={"error": "dispatch_timeout", "message": exc.message},
        )

    @app.exception_handler(RouteNotTerminatedError)
    async def handle_not_terminated(request: Request, exc: RouteNotTerminatedError):
        logger.error("Unterminated request: %s %s", exc.method, exc.path)
        return JSONResponse(
            status_code=500,
            content={"error": "route_not_terminated", "message": exc.message},
        )

    @app.exception_handler(SwitchboardError)
    async def handle_switchboard_error(request: Request, exc: SwitchboardError):
        logger.error("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={"error": "server_error", "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create the ASGI application.

    Args:
        config: Settings to build from (default: the process-wide settings)

    The dispatcher is built here, once, and stored on app.state; requests
    only read it.
    """
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(config)
        announce_listening(config)
        yield
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="Switchboard",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.dispatcher = build_dispatcher(config)

    register_exception_handlers(app)

    async def dispatch_request(request: Request) -> Response:
        outcome = await request.app.state.dispatcher.dispatch(request)
        return outcome.to_response()

    # No method filter: extension methods (TRACE, PROPFIND, ...) reach the chain too.
    app.add_route("/{request_path:path}", dispatch_request, include_in_schema=False)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured port."""
    uvicorn.run(
        create_app(default_settings),
        host=default_settings.server_host,
        port=default_settings.server_port,
        log_config=None,
    )


app = create_app()


if __name__ == "__main__":
    run()
