"""
Error envelope shared by all routes.

Domain errors render as ``{"detail": {"message", "code", "details"}}`` with
the status code carried by the exception class. Repository failures that
escape a service are reported as 500 without leaking driver messages.
"""

import logging
from typing import NoReturn

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .core.exceptions import DomainException, RepositoryException

logger = logging.getLogger(__name__)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        return JSONResponse(
            content={"detail": jsonable_encoder(http_exc.detail)},
            status_code=http_exc.status_code,
        )

    @app.exception_handler(RepositoryException)
    async def repository_exception_handler(
        request: Request, exc: RepositoryException
    ) -> JSONResponse:
        logger.error(
            "Unhandled repository error",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return JSONResponse(
            content={
                "detail": {
                    "message": "An error occurred processing your request",
                    "code": "REPOSITORY_ERROR",
                    "details": {},
                }
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
