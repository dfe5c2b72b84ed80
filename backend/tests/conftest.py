"""
Shared pytest fixtures for the problem details test suite.
"""

import warnings
from typing import AsyncGenerator, Callable, Dict, Optional

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from problem_details.core.config import Settings
from problem_details.main import create_app
from problem_details.middleware import ProblemDetailsMiddleware
from problem_details.services.response_builder import ProblemResponseBuilder

from .assets import ApplicationError, InvalidClientRequest


def build_request(accept: Optional[str] = None, method: str = "GET", path: str = "/") -> Request:
    headers = []
    if accept is not None:
        headers.append((b"accept", accept.encode("latin-1")))
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "root_path": "",
        "scheme": "http",
        "server": ("testserver", 80),
        "query_string": b"",
        "headers": headers,
    }
    return Request(scope)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Provide a factory for bare Starlette requests."""
    return build_request


@pytest.fixture
def builder() -> ProblemResponseBuilder:
    """Provide a production-mode response builder."""
    return ProblemResponseBuilder()


@pytest.fixture
def debug_builder() -> ProblemResponseBuilder:
    """Provide a debug-mode response builder."""
    return ProblemResponseBuilder(is_debug=True)


def _failing_app(builder: ProblemResponseBuilder) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ProblemDetailsMiddleware, builder=builder)

    @app.get("/ok")
    async def ok():
        return {"status": "ok"}

    @app.get("/boom")
    async def boom():
        raise ApplicationError("Your SQL or password here", 507)

    @app.get("/sync-boom")
    def sync_boom():
        raise ApplicationError("Raised in a worker thread", 503)

    @app.get("/invalid")
    async def invalid():
        raise InvalidClientRequest(detail="Exception details", additional={"foo": "bar"})

    @app.get("/warn")
    async def warn():
        warnings.warn("Triggered warning!", UserWarning)
        return JSONResponse({"status": "unreachable"})

    return app


@pytest.fixture
def failing_app(builder: ProblemResponseBuilder) -> FastAPI:
    """Provide an app whose routes fail in different ways, in production mode."""
    return _failing_app(builder)


@pytest.fixture
def debug_failing_app(debug_builder: ProblemResponseBuilder) -> FastAPI:
    """Provide the same failing app with a debug-mode builder."""
    return _failing_app(debug_builder)


@pytest.fixture
async def test_client(failing_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for the failing app."""
    transport = ASGITransport(app=failing_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def debug_client(debug_failing_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for the debug-mode failing app."""
    transport = ASGITransport(app=debug_failing_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def settings_values() -> Dict[str, object]:
    """Provide explicit settings so tests never depend on the environment."""
    return {
        "DEBUG": False,
        "PROBLEM_DETAILS_JSON_FLAGS": None,
        "PROBLEM_DETAILS_EXCEPTION_DETAILS": None,
        "PROBLEM_DETAILS_DEFAULT_DETAIL": "An unknown error occurred.",
        "PROBLEM_DETAILS_TRAPPED_CATEGORIES": ["Warning"],
    }


@pytest.fixture
async def app_client(settings_values) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for the example application."""
    app = create_app(Settings(_env_file=None, **settings_values))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
