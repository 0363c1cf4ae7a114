"""
Exception handlers that turn failures into the API's JSON error shapes.
"""
from typing import Any, Dict, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dao_backend.exceptions import GovernanceError
from dao_backend.utils.logger import logger

REQUEST_LOCATIONS = ("body", "path", "query")


def format_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """Render pydantic errors as ``'field.path': message`` joined by ". "."""
    parts = []
    for error in errors:
        location = list(error.get("loc", ()))
        if location and location[0] in REQUEST_LOCATIONS:
            location = location[1:]
        path = ".".join(str(item) for item in location)
        message = error.get("msg", "Invalid value")
        parts.append(f"'{path}': {message}" if path else message)
    return ". ".join(parts)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = format_validation_errors(exc.errors())
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"name": "Validation Error", "message": message})


async def governance_error_handler(request: Request, exc: GovernanceError) -> JSONResponse:
    if exc.code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal Server Error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(GovernanceError, governance_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
