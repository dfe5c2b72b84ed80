"""
Fallback handler answering unmatched requests with a 404 problem.

Use it as the last application in a chain, e.g. as a Starlette router's
``default``. Requests that negotiate neither JSON nor XML are handed to
``app`` (Starlette's plain text 404 by default).
"""

from typing import Optional

from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from ..services.response_builder import ProblemResponseBuilder
from .problem_details import can_act_as_error_handler


async def plain_not_found(scope: Scope, receive: Receive, send: Send):
    if scope["type"] == "websocket":
        await WebSocketClose()(scope, receive, send)
        return
    await PlainTextResponse("Not Found", status_code=404)(scope, receive, send)


class NotFoundHandler:
    """Creates and returns a 404 problem details response."""

    def __init__(self, app: Optional[ASGIApp] = None, builder: Optional[ProblemResponseBuilder] = None):
        self.app = app or plain_not_found
        self.builder = builder or ProblemResponseBuilder()

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        if not can_act_as_error_handler(request):
            await self.app(scope, receive, send)
            return

        response = self.builder.build(request, 404, f"Cannot {request.method} {request.url}!")
        await response(scope, receive, send)
