"""
Switchboard — Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions for the dispatcher and the user store.
How:   Each exception carries a human-readable message and an optional context
       dict. The FastAPI exception handlers in main.py turn the dispatch-side
       ones into JSON error responses; the database-side ones propagate to
       whoever called the bootstrap or the service.
Who:   Raised by the dispatcher, schema registry, bootstrap and services.

Exception Hierarchy:
    SwitchboardError (base)
    ├── HandlerRegistrationError   → raised at start-up, never reaches HTTP
    ├── ChainError                 → 500 (handler misused its continuation)
    ├── ResponseAlreadyEndedError  → 500 (write after end)
    ├── RouteNotTerminatedError    → 500 (no handler finished the response)
    ├── DispatchTimeoutError       → 504 Gateway Timeout
    ├── SchemaConflictError
    ├── SchemaNotFoundError
    ├── DatabaseConnectionError    → propagated to the bootstrap caller
    ├── MalformedFieldError        → optional user field validation
    ├── NotFoundError
    └── DatabaseError
"""

from typing import Any, Dict, Optional


class SwitchboardError(Exception):
    """
    Base exception for all Switchboard errors.

    Attributes:
        message:  Description safe to show to a client
        context:  Extra debug info (logged, not returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ── Dispatch ──────────────────────────────────────────────────────────────


class HandlerRegistrationError(SwitchboardError):
    """Raised when a rule is registered with a bad prefix or a non-callable action."""

    def __init__(
        self,
        message: str = "Invalid handler registration",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ChainError(SwitchboardError):
    """
    Raised when a handler drives the chain incorrectly.

    When:    The same `next` continuation is awaited more than once.
    """

    def __init__(
        self,
        message: str = "next() called multiple times",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ResponseAlreadyEndedError(SwitchboardError):
    """Raised when a handler writes to a response another handler already ended."""

    def __init__(
        self,
        message: str = "Response has already been ended",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RouteNotTerminatedError(SwitchboardError):
    """
    Raised when the chain runs out of handlers and nobody ended the response.

    What:    The request matched only pass-through handlers (e.g. the logger).
    When:    Only when the dispatcher is built without a fallback handler;
             with the default fallback the request gets a 404 instead.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        method: str = "",
        path: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["method"] = method
        ctx["path"] = path
        super().__init__(
            message=f"No handler terminated the response for {method} {path}".strip(),
            context=ctx,
        )
        self.method = method
        self.path = path


class DispatchTimeoutError(SwitchboardError):
    """
    Raised when walking the chain takes longer than the configured timeout.

    HTTP:    504 Gateway Timeout
    """

    def __init__(
        self,
        timeout: float = 0.0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["timeout"] = timeout
        super().__init__(
            message=f"Request handling exceeded {timeout:g} seconds",
            context=ctx,
        )
        self.timeout = timeout


# ── Schema registry ───────────────────────────────────────────────────────


class SchemaConflictError(SwitchboardError):
    """Raised when a schema name is defined a second time with a different model."""

    def __init__(
        self,
        name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["schema"] = name
        super().__init__(
            message=f"Schema '{name}' is already defined with a different model",
            context=ctx,
        )
        self.name = name


class SchemaNotFoundError(SwitchboardError):
    """Raised when looking up a schema name that was never defined."""

    def __init__(
        self,
        name: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["schema"] = name
        super().__init__(
            message=f"Schema '{name}' has not been registered",
            context=ctx,
        )
        self.name = name


# ── Database ──────────────────────────────────────────────────────────────


class DatabaseConnectionError(SwitchboardError):
    """
    Raised by the bootstrap when no usable connection can be established.

    What:    The database URL is malformed, its driver is missing, the
             endpoint refused or timed out.
    When:    Only from connect(); there is no retry.

    The URL in `context` is always rendered with the password masked.
    """

    def __init__(
        self,
        message: str = "Could not connect to the database",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MalformedFieldError(SwitchboardError):
    """
    Raised by optional user field validation.

    When:    Only when the user service runs in strict mode.
    """

    def __init__(
        self,
        message: str = "Malformed field",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(SwitchboardError):
    """Raised when a requested record does not exist."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(SwitchboardError):
    """
    Raised when a query, insert or update fails unexpectedly.

    The message stays generic; details go into `context` and the log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
