"""
Switchboard — Handler Chain
=============================

What:  An ordered table of (prefix, action) rules and the dispatcher that
       walks it for each request.
How:   Rules are evaluated first-registered, first-evaluated. Every rule
       whose prefix matches the request path gets a chance to act:

           action(request, response, next)

       `next` is an async continuation that resumes the walk at the
       following rule. An action that ends the response without awaiting
       `next` stops the walk.
Who:   Built once by main.build_dispatcher(); called once per HTTP request.

Walk for GET /hello with the default table:

    ┌─────────────┐   next()   ┌──────────────┐
    │ log_request │ ─────────▶ │ hello_world  │ ──▶ end("Hello World")
    │  prefix ""  │            │ prefix /hello│
    └─────────────┘            └──────────────┘
                                       (goodbye rule is never reached)

If the walk runs out of rules with the response still open, the fallback
action runs; without a fallback, RouteNotTerminatedError is raised.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from starlette.requests import Request

from switchboard.dispatch.response import ChainResponse
from switchboard.exceptions import (
    ChainError,
    DispatchTimeoutError,
    HandlerRegistrationError,
    RouteNotTerminatedError,
)

logger = logging.getLogger(__name__)

Next = Callable[[], Awaitable[None]]
Action = Callable[[Request, ChainResponse, Next], Any]


@dataclass(frozen=True)
class HandlerRegistration:
    """One routing rule. An empty prefix matches every path."""

    prefix: str
    action: Action


def prefix_matches(prefix: str, path: str) -> bool:
    """
    Literal, case-sensitive prefix test on the request path.

    There is no pattern syntax: "/hello" matches "/hello", "/hello/x" and
    "/helloworld" alike.
    """
    return prefix == "" or path.startswith(prefix)


class RouteTable:
    """Ordered collection of rules, filled in at start-up."""

    def __init__(self) -> None:
        self._rules: List[HandlerRegistration] = []

    def register(self, prefix: str, action: Action) -> "RouteTable":
        if not isinstance(prefix, str):
            raise HandlerRegistrationError(
                f"prefix must be a string, got {type(prefix).__name__}",
                context={"prefix": repr(prefix)},
            )
        if not callable(action):
            raise HandlerRegistrationError(
                f"action for prefix '{prefix}' must be callable, "
                f"got {type(action).__name__}",
                context={"prefix": prefix},
            )
        self._rules.append(HandlerRegistration(prefix=prefix, action=action))
        return self

    @property
    def rules(self) -> Tuple[HandlerRegistration, ...]:
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


class Dispatcher:
    """
    Walks a snapshot of a RouteTable for each request.

    The rules are copied at construction, so registering more rules on the
    table afterwards does not affect a running dispatcher. Each dispatch()
    call owns its own response and continuation state; the shared rule tuple
    is only read.

    Args:
        table:    The rules to walk, in evaluation order.
        timeout:  Seconds allowed for one walk (None = no timeout).
        fallback: Terminal action run when no rule ended the response.
                  None makes an open response an error instead.
    """

    def __init__(
        self,
        table: RouteTable,
        *,
        timeout: Optional[float] = None,
        fallback: Optional[Action] = None,
    ):
        self.rules = table.rules
        self.timeout = timeout
        self.fallback = fallback

    async def dispatch(self, request: Request) -> ChainResponse:
        """
        Run the chain for one request and return the finished response.

        Raises:
            DispatchTimeoutError:    The walk exceeded `timeout`.
            RouteNotTerminatedError: No rule ended the response and there is
                                     no fallback.
            Anything an action raises, unchanged.
        """
        response = ChainResponse()
        if self.timeout is None:
            await self._walk(request, response)
        else:
            # TimeoutErrors raised inside actions propagate as themselves.
            walk = asyncio.create_task(self._walk(request, response))
            try:
                done, _ = await asyncio.wait({walk}, timeout=self.timeout)
            except asyncio.CancelledError:
                walk.cancel()
                raise

            if walk in done:
                walk.result()
            else:
                walk.cancel()
                await asyncio.wait({walk})
                logger.warning(
                    "%s %s exceeded dispatch timeout of %gs",
                    request.method,
                    request.url.path,
                    self.timeout,
                )
                raise DispatchTimeoutError(
                    self.timeout,
                    context={"method": request.method, "path": request.url.path},
                )
        return response

    async def _walk(self, request: Request, response: ChainResponse) -> None:
        path = request.url.path
        await self._step(request, response, path, 0)

        if response.finished:
            return
        if self.fallback is None:
            raise RouteNotTerminatedError(method=request.method, path=path)
        await self._invoke(self.fallback, request, response, _terminal_next)

    async def _step(
        self,
        request: Request,
        response: ChainResponse,
        path: str,
        start: int,
    ) -> None:
        for index in range(start, len(self.rules)):
            rule = self.rules[index]
            if not prefix_matches(rule.prefix, path):
                continue

            called = False

            async def next_() -> None:
                nonlocal called
                if called:
                    raise ChainError(context={"prefix": rule.prefix})
                called = True
                if not response.finished:
                    await self._step(request, response, path, index + 1)

            await self._invoke(rule.action, request, response, next_)
            return

    @staticmethod
    async def _invoke(
        action: Action,
        request: Request,
        response: ChainResponse,
        next_: Next,
    ) -> None:
        result = action(request, response, next_)
        if inspect.isawaitable(result):
            await result


async def _terminal_next() -> None:
    """Continuation handed to the fallback; there is nothing after it."""
