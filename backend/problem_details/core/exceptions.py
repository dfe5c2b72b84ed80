"""
Exception types for problem details handling.

``ProblemDetailsError`` is the structured problem: raise it (or a subclass)
anywhere below the middleware to fully control the emitted response.
The remaining exceptions describe failures of the pipeline itself.
"""

from typing import Any, Dict, Optional


class ProblemDetailsError(Exception):
    """Exception carrying its own RFC 7807 status, detail, title and type."""

    status: int = 500
    detail: str = ""
    title: str = ""
    type: str = ""

    def __init__(
        self,
        status: Optional[int] = None,
        detail: Optional[str] = None,
        title: Optional[str] = None,
        type: Optional[str] = None,
        additional: Optional[Dict[str, Any]] = None,
    ):
        if status is not None:
            self.status = status
        if detail is not None:
            self.detail = detail
        if title is not None:
            self.title = title
        if type is not None:
            self.type = type
        self.additional: Dict[str, Any] = dict(additional or {})
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Return the problem as a flat mapping; core keys win over additional data."""
        return {
            **self.additional,
            "status": self.status,
            "detail": self.detail,
            "title": self.title,
            "type": self.type,
        }


class MissingResponseError(RuntimeError):
    """Raised when the downstream application produced no response."""


class InvalidResponseBodyError(RuntimeError):
    """Raised when the configured body factory does not yield a writable stream.

    This is a configuration problem and is never translated into a problem
    details response.
    """


class TrappedWarningError(Exception):
    """A warning promoted to a failure by the error trap."""

    def __init__(self, message: str, category: type, filename: str, lineno: int):
        super().__init__(message)
        self.message = message
        self.category = category
        self.filename = filename
        self.lineno = lineno

    @property
    def severity(self) -> str:
        return self.category.__name__
