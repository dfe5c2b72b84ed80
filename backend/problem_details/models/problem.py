"""
RFC 7807 problem details payload.

Status codes outside the 4xx/5xx range are coerced to 500, and missing
titles and types are derived from the status code.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNKNOWN_TITLE = "Unknown Error"
TYPE_URI_TEMPLATE = "https://httpstatus.es/{status}"

DEFAULT_TITLE_MAP: Dict[int, str] = {
    # 4xx Client Error
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Payload Too Large",
    414: "Request-URI Too Long",
    415: "Unsupported Media Type",
    416: "Requested Range Not Satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    421: "Misdirected Request",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    444: "Connection Closed Without Response",
    451: "Unavailable For Legal Reasons",
    499: "Client Closed Request",
    # 5xx Server Error
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    510: "Not Extended",
    511: "Network Authentication Required",
    599: "Network Connect Timeout Error",
}


def normalize_status(status: int) -> int:
    if status < 400 or status > 599:
        return 500
    return status


def title_for_status(status: int) -> str:
    return DEFAULT_TITLE_MAP.get(status, UNKNOWN_TITLE)


def type_for_status(status: int) -> str:
    return TYPE_URI_TEMPLATE.format(status=status)


class ProblemDetails(BaseModel):
    """A single problem occurrence, ready to be serialized."""

    model_config = ConfigDict(frozen=True)

    status: int
    title: str = ""
    type: str = ""
    detail: str
    extensions: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> int:
        return normalize_status(int(value))

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        status = normalize_status(int(data.get("status", 500)))
        data = {**data, "status": status}
        data["title"] = data.get("title") or title_for_status(status)
        data["type"] = data.get("type") or type_for_status(status)
        data["extensions"] = {str(key): value for key, value in (data.get("extensions") or {}).items()}
        return data

    def to_payload(self) -> Dict[str, Any]:
        """Merge extensions under the core fields, which always take precedence."""
        return {
            **self.extensions,
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "detail": self.detail,
        }
