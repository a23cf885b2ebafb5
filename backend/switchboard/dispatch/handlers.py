"""
Switchboard — Built-in Handlers
=================================

What:  The actions registered in the production chain.

    log_request              prefix ""        logs "METHOD target", always calls next
    hello_world              prefix /hello    200 text/plain "Hello World"
    goodbye_world            prefix /goodbye  200 "Goobye World!" (legacy spelling)
    goodbye_world_corrected  prefix /goodbye  200 text/plain "Goodbye World!"
    not_found                fallback         404 text/plain "Cannot METHOD path"

`goodbye_world` keeps the header and body exactly as the service has always
sent them (``Context-Type: text/plan``). Existing clients may compare
against those bytes, so the corrected variant is opt-in via the
`correct_legacy_typos` setting.
"""

import logging

from starlette.requests import Request

from switchboard.dispatch.chain import Next
from switchboard.dispatch.response import ChainResponse

access_logger = logging.getLogger("switchboard.access")


def request_target(request: Request) -> str:
    """Path plus query string, as it appeared on the request line."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def log_request(request: Request, response: ChainResponse, next: Next) -> None:
    access_logger.info("%s %s", request.method, request_target(request))
    await next()


async def hello_world(request: Request, response: ChainResponse, next: Next) -> None:
    response.set_header("Content-Type", "text/plain")
    response.end("Hello World")


async def goodbye_world(request: Request, response: ChainResponse, next: Next) -> None:
    response.set_header("Context-Type", "text/plan")
    response.end("Goobye World!")


async def goodbye_world_corrected(
    request: Request, response: ChainResponse, next: Next
) -> None:
    response.set_header("Content-Type", "text/plain")
    response.end("Goodbye World!")


async def not_found(request: Request, response: ChainResponse, next: Next) -> None:
    """Terminal fallback for requests no rule finished."""
    response.status_code = 404
    response.set_header("Content-Type", "text/plain")
    response.end(f"Cannot {request.method} {request.url.path}")
