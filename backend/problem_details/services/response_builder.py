"""
Problem details response builder.

Turns a status/detail pair, or any exception, into a Starlette response
carrying an RFC 7807 body. The ``Accept`` header picks the representation:
JSON when the negotiated type is a JSON type, XML otherwise, including when
nothing could be negotiated at all.

Responses built from opaque exceptions never disclose the exception
message, code or origin unless the builder runs in debug mode (or, for
message and code only, ``exception_details_in_response`` is set).
"""

import io
import traceback
from typing import Any, Callable, Dict, List, Optional

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.responses import Response

from ..core.config import DEFAULT_DETAIL_MESSAGE
from ..core.exceptions import InvalidResponseBodyError
from ..models.failure import (
    OpaqueFailure,
    StructuredProblem,
    describe_failure,
    exception_code,
    exception_message,
)
from ..models.problem import ProblemDetails
from .negotiation import NEGOTIATION_PRIORITIES, accept_header, negotiate
from .serializers import JsonFlags, encode_json, encode_xml

CONTENT_TYPE_JSON = "application/problem+json"
CONTENT_TYPE_XML = "application/problem+xml"


class ProblemResponseBuilder:
    """
    Builds problem details responses from a configured response prototype.

    The builder holds no per-request state and can be shared across
    concurrent requests.
    """

    def __init__(
        self,
        is_debug: bool = False,
        json_flags: Optional[int] = None,
        response_factory: Optional[Callable[[], Response]] = None,
        body_factory: Optional[Callable[[], Any]] = None,
        exception_details_in_response: bool = False,
        default_detail_message: str = DEFAULT_DETAIL_MESSAGE,
    ):
        self.is_debug = is_debug
        self.json_flags = JsonFlags.DEFAULT if json_flags is None else JsonFlags(json_flags)
        self.response = response_factory() if response_factory is not None else Response()
        self.body_factory = body_factory or io.BytesIO
        self.exception_details_in_response = exception_details_in_response
        self.default_detail_message = default_detail_message

    def build(
        self,
        request: HTTPConnection,
        status: int,
        detail: str,
        title: str = "",
        type: str = "",
        additional: Optional[Dict[str, Any]] = None,
    ) -> Response:
        problem = ProblemDetails(
            status=status,
            detail=detail,
            title=title,
            type=type,
            extensions=additional or {},
        )
        payload = problem.to_payload()

        if self.wants_json(request):
            return self._generate_response(
                problem.status, CONTENT_TYPE_JSON, encode_json(payload, self.json_flags).encode("utf-8")
            )
        return self._generate_response(problem.status, CONTENT_TYPE_XML, encode_xml(payload))

    def build_from_failure(self, request: HTTPConnection, exc: BaseException) -> Response:
        failure = describe_failure(exc)

        if isinstance(failure, StructuredProblem):
            return self.build(
                request,
                failure.status,
                failure.detail,
                failure.title,
                failure.type,
                failure.additional,
            )

        expose = self.is_debug or self.exception_details_in_response
        detail = failure.message if expose else self.default_detail_message
        status = failure.code if expose else 500
        additional = self.create_exception_detail(failure) if self.is_debug else {}

        return self.build(request, status, detail, "", "", additional)

    def wants_json(self, request: HTTPConnection) -> bool:
        media_type = negotiate(accept_header(request), NEGOTIATION_PRIORITIES)
        return media_type is not None and "json" in media_type

    def create_exception_detail(self, failure: OpaqueFailure) -> Dict[str, Any]:
        detail = _exception_record(failure.exception)
        detail["kind"] = failure.kind.value
        previous = [_exception_record(exc) for exc in failure.chain()]
        if previous:
            detail["stack"] = previous
        return {"exception": detail}

    def _generate_response(self, status: int, content_type: str, payload: bytes) -> Response:
        body = self.body_factory()
        try:
            if not _is_body_stream(body):
                raise InvalidResponseBodyError(
                    "The factory for generating a problem details response body stream "
                    "did not return a seekable read/write binary stream"
                )
            body.write(payload)
            body.seek(0)
            content = body.read()
        finally:
            if isinstance(body, io.IOBase):
                body.close()

        # Copy the prototype's headers; the prototype itself stays untouched
        headers = MutableHeaders(raw=list(self.response.raw_headers))
        if "content-length" in headers:
            del headers["content-length"]
        headers["content-type"] = content_type

        return Response(
            content=content,
            status_code=status,
            headers=headers,
            background=self.response.background,
        )


def _is_body_stream(body: Any) -> bool:
    return (
        isinstance(body, io.IOBase)
        and not isinstance(body, io.TextIOBase)
        and not body.closed
        and body.readable()
        and body.writable()
        and body.seekable()
    )


def _exception_record(exc: BaseException) -> Dict[str, Any]:
    filename, lineno = _exception_origin(exc)
    return {
        "class": _class_name(exc),
        "code": exception_code(exc),
        "message": exception_message(exc),
        "file": filename,
        "line": lineno,
        "trace": _format_trace(exc),
    }


def _class_name(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _exception_origin(exc: BaseException):
    # Trapped warnings and syntax errors know where they came from
    filename = getattr(exc, "filename", None)
    lineno = getattr(exc, "lineno", None)
    if isinstance(filename, str) and isinstance(lineno, int):
        return filename, lineno

    tb = exc.__traceback__
    if tb is None:
        return "", 0
    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


def _format_trace(exc: BaseException) -> List[str]:
    return [
        f"{frame.filename}:{frame.lineno} in {frame.name}"
        for frame in traceback.extract_tb(exc.__traceback__)
    ]
