# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application-wide exception handlers.

Request validation failures become 400 responses naming the offending
fields. Database and identity provider failures that escape a route
become a generic 500 and are logged with their traceback.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from linguadash.infrastructure.database.connection import DatabaseError
from linguadash.infrastructure.identity import IdentityProviderError

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one message per invalid field."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": errors},
    )


async def upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an upstream failure and return a generic 500."""
    logger.exception(
        "Request failed: %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on an application."""
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DatabaseError, upstream_error_handler)
    app.add_exception_handler(SQLAlchemyError, upstream_error_handler)
    app.add_exception_handler(IdentityProviderError, upstream_error_handler)
