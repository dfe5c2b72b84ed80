"""
Problem details middleware.

Catches unhandled exceptions, trapped warnings and a missing response from
the downstream application and turns them into RFC 7807 responses.

When the client accepts neither JSON nor XML the middleware does nothing:
the downstream application runs without the trap and its failures
propagate untouched.

Implemented as pure ASGI middleware (not BaseHTTPMiddleware) to avoid
the known Starlette issue with stacked BaseHTTPMiddleware corrupting
response bodies.
"""

import inspect
import logging
import traceback
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, Union

from starlette.requests import HTTPConnection, Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.config import Settings, get_settings
from ..core.exceptions import MissingResponseError, ProblemDetailsError
from ..services.error_trap import DEFAULT_CATEGORIES, error_trap
from ..services.negotiation import NEGOTIATION_PRIORITIES, accept_header, negotiate
from ..services.response_builder import ProblemResponseBuilder

logger = logging.getLogger("problem_details.middleware.problem_details")

MISSING_RESPONSE_MESSAGE = "Application did not return a response"

CallNext = Callable[[Request], Union[Response, Awaitable[Any], Any]]


def can_act_as_error_handler(request: HTTPConnection) -> bool:
    """True when the request accepts at least one problem details representation."""
    return negotiate(accept_header(request), NEGOTIATION_PRIORITIES) is not None


def create_response_builder(settings: Optional[Settings] = None) -> ProblemResponseBuilder:
    """Construct a response builder from application settings."""
    settings = settings or get_settings()
    return ProblemResponseBuilder(
        is_debug=settings.DEBUG,
        json_flags=settings.PROBLEM_DETAILS_JSON_FLAGS,
        exception_details_in_response=settings.exception_details_in_response,
        default_detail_message=settings.PROBLEM_DETAILS_DEFAULT_DETAIL,
    )


class ProblemDetailsMiddleware:
    """Ensures a problem details response for every failure below it."""

    def __init__(
        self,
        app: Optional[ASGIApp] = None,
        builder: Optional[ProblemResponseBuilder] = None,
        trapped_categories: Tuple[Type[Warning], ...] = DEFAULT_CATEGORIES,
    ):
        self.app = app
        self.builder = builder or ProblemResponseBuilder()
        self.trapped_categories = trapped_categories

    @classmethod
    def from_settings(cls, app: Optional[ASGIApp] = None, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        return cls(
            app,
            builder=create_response_builder(settings),
            trapped_categories=settings.trapped_categories,
        )

    async def process(self, request: Request, call_next: CallNext) -> Response:
        """Run ``call_next`` and translate any failure into a problem details response."""
        if not can_act_as_error_handler(request):
            logger.debug("Cannot negotiate problem details for %s; passing through", request.scope.get("path"))
            return await _resolve(call_next(request))

        with error_trap(self.trapped_categories):
            try:
                response = await _resolve(call_next(request))
                if not isinstance(response, Response):
                    raise MissingResponseError(MISSING_RESPONSE_MESSAGE)
            except Exception as exc:
                _log_failure(request.scope, exc)
                response = self.builder.build_from_failure(request, exc)

        return response

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        if not can_act_as_error_handler(request):
            logger.debug("Cannot negotiate problem details for %s; passing through", scope.get("path"))
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        with error_trap(self.trapped_categories):
            try:
                await self.app(scope, receive, send_wrapper)
                if not response_started:
                    raise MissingResponseError(MISSING_RESPONSE_MESSAGE)
            except Exception as exc:
                if response_started:
                    # Too late to replace the response that is already on the wire
                    logger.error(
                        "Exception after response started on %s %s: %s",
                        scope.get("method", "unknown"),
                        scope.get("path", "unknown"),
                        exc,
                    )
                    raise
                _log_failure(scope, exc)
                response = self.builder.build_from_failure(request, exc)
            else:
                return

        await response(scope, receive, send)


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def _log_failure(scope: Scope, exc: Exception) -> None:
    path = scope.get("path", "unknown")
    method = scope.get("method", "unknown")
    if isinstance(exc, ProblemDetailsError):
        logger.info("Problem details raised on %s %s: %s %s", method, path, exc.status, exc.detail)
        return
    logger.error("Unhandled exception on %s %s: %s", method, path, exc)
    logger.debug("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
