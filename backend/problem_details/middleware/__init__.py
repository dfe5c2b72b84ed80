"""Problem details middleware: failure interception and 404 fallback."""

from .problem_details import ProblemDetailsMiddleware, can_act_as_error_handler, create_response_builder
from .not_found import NotFoundHandler

__all__ = [
    "ProblemDetailsMiddleware",
    "NotFoundHandler",
    "can_act_as_error_handler",
    "create_response_builder",
]
