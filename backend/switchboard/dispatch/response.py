"""Per-request response accumulator handed to every action in the chain."""

from typing import Dict, Union

from starlette.responses import Response

from switchboard.exceptions import ResponseAlreadyEndedError


class ChainResponse:
    """
    Collects status, headers and body while the chain runs.

    A handler finishes the response by calling `end()`. Once finished the
    response is frozen; the dispatcher stops walking and the HTTP layer
    converts it with `to_response()`.

    Header names keep the exact spelling the handler used, so a header like
    ``Context-Type`` goes out as given and no content type is added.
    """

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.headers: Dict[str, str] = {}
        self.body = b""
        self.finished = False

    def set_header(self, name: str, value: str) -> None:
        self._ensure_open()
        self.headers[name] = value

    def end(self, body: Union[str, bytes] = b"") -> None:
        self._ensure_open()
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.finished = True

    def to_response(self) -> Response:
        return Response(
            content=self.body,
            status_code=self.status_code,
            headers=self.headers,
        )

    def _ensure_open(self) -> None:
        if self.finished:
            raise ResponseAlreadyEndedError()

    def __repr__(self) -> str:
        return (
            f"<ChainResponse(status={self.status_code}, finished={self.finished}, "
            f"body={len(self.body)} bytes)>"
        )
