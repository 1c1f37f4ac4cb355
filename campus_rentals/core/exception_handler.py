import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import DomainError

logger = logging.getLogger(__name__)


class DomainErrorHandler:
    async def __call__(self, request: Request, exc: DomainError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):

        errors = []

        for err in exc.errors():
            errors.append({
                "loc": err.get("loc"),
                "msg": str(err.get("msg")),
                "type": err.get("type"),
            })

        logger.debug("Request validation failed on %s: %s", request.url.path, errors)
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Validation failed",
                "details": errors,
            },
        )
