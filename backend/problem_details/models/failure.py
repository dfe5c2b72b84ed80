"""
Failure descriptors.

Every exception reaching the response builder is classified into exactly
one of two shapes: a structured problem, whose fields are trusted and
emitted verbatim, or an opaque failure, whose details are only disclosed
in debug mode.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Union

from ..core.exceptions import MissingResponseError, ProblemDetailsError, TrappedWarningError


class FailureKind(str, enum.Enum):
    """Origin of an opaque failure."""
    EXCEPTION = "exception"
    TRAPPED_ERROR = "trapped_error"
    MISSING_RESPONSE = "missing_response"


@dataclass(frozen=True)
class StructuredProblem:
    status: int
    detail: str
    title: str = ""
    type: str = ""
    additional: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OpaqueFailure:
    exception: BaseException
    kind: FailureKind = FailureKind.EXCEPTION

    @property
    def message(self) -> str:
        return exception_message(self.exception)

    @property
    def code(self) -> int:
        return exception_code(self.exception)

    def chain(self) -> Iterator[BaseException]:
        """Yield the causally-previous exceptions, most recent cause first."""
        return previous_exceptions(self.exception)


FailureDescriptor = Union[StructuredProblem, OpaqueFailure]


def describe_failure(exc: BaseException) -> FailureDescriptor:
    if isinstance(exc, ProblemDetailsError):
        return StructuredProblem(
            status=exc.status,
            detail=exc.detail,
            title=exc.title,
            type=exc.type,
            additional=dict(exc.additional),
        )
    if isinstance(exc, MissingResponseError):
        return OpaqueFailure(exc, FailureKind.MISSING_RESPONSE)
    if isinstance(exc, TrappedWarningError):
        return OpaqueFailure(exc, FailureKind.TRAPPED_ERROR)
    return OpaqueFailure(exc)


def exception_message(exc: BaseException) -> str:
    return str(exc)


def exception_code(exc: BaseException) -> int:
    code = getattr(exc, "code", 0)
    # bool is an int subclass but never a meaningful code
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return 0


def previous_exceptions(exc: BaseException) -> Iterator[BaseException]:
    seen = {id(exc)}
    current = _previous(exc)
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = _previous(current)


def _previous(exc: BaseException):
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__
