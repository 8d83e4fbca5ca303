"""JSON error envelope for every failure the API returns."""
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _first_issue(exc: RequestValidationError) -> str:
    """Render the first validation issue as '<field>: <message>'"""
    errors = exc.errors()
    if not errors:
        return "Invalid input"

    issue = errors[0]
    message = str(issue.get("msg", "Invalid input"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    # Drop the 'body' prefix and union tags such as 'flight'
    location = [str(part) for part in issue.get("loc", ()) if part not in ("body", "query", "path")]
    if len(location) > 1 and location[0] in ("flight", "train", "bus", "hotel"):
        location = location[1:]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def init_error_handlers(app: FastAPI) -> None:
    """
    Register handlers that render errors as {"error": ..., "details": ...}.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request data", "details": _first_issue(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            content = exc.detail
        else:
            content = {"error": str(exc.detail)}
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An error occurred"},
        )
