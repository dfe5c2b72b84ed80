"""RFC 7807 problem details responses for Starlette and FastAPI applications."""

from .core.exceptions import (
    InvalidResponseBodyError,
    MissingResponseError,
    ProblemDetailsError,
    TrappedWarningError,
)
from .middleware import NotFoundHandler, ProblemDetailsMiddleware, create_response_builder
from .models.problem import ProblemDetails
from .services.error_trap import error_trap
from .services.response_builder import (
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_XML,
    ProblemResponseBuilder,
)
from .services.serializers import JsonFlags

__all__ = [
    "CONTENT_TYPE_JSON",
    "CONTENT_TYPE_XML",
    "InvalidResponseBodyError",
    "JsonFlags",
    "MissingResponseError",
    "NotFoundHandler",
    "ProblemDetails",
    "ProblemDetailsError",
    "ProblemDetailsMiddleware",
    "ProblemResponseBuilder",
    "TrappedWarningError",
    "create_response_builder",
    "error_trap",
]
