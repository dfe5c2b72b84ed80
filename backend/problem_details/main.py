"""
Example FastAPI application wired with problem details handling.

Every unhandled failure becomes an RFC 7807 response and unmatched routes
answer with a 404 problem.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from .core.config import Settings, get_settings
from .middleware import NotFoundHandler, ProblemDetailsMiddleware, create_response_builder

logger = logging.getLogger("problem_details.main")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Problem Details", debug=False)

    app.add_middleware(ProblemDetailsMiddleware.from_settings, settings=settings)
    app.router.default = NotFoundHandler(builder=create_response_builder(settings))

    @app.get("/health")
    async def health():
        return {"status": "healthy", "debug": settings.DEBUG}

    logger.info("Problem details application created (debug=%s)", settings.DEBUG)
    return app
