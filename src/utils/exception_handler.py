# src/utils/exception_handler.py
from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from .logger import setup_logger
from .exceptions import BaseAPIException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, NoResultFound

logger = setup_logger("EXCEPTION HANDLER")


def _error_content(message, error_type: str, status_code: int) -> dict:
    return {
        "success": False,
        "error": message,
        "message": message,
        "type": error_type,
        "status": status_code,
    }


def setup_exception_handlers(app: FastAPI):
    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        logger.warning(f"API Exception: {str(exc.detail)}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(
                exc.detail, exc.__class__.__name__, exc.status_code
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # Standardize common HTTP error responses
        error_details = {
            status.HTTP_400_BAD_REQUEST: "Bad request",
            status.HTTP_404_NOT_FOUND: "Resource not found",
            status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
            status.HTTP_409_CONFLICT: "Conflict",
            status.HTTP_422_UNPROCESSABLE_ENTITY: "Validation error",
            status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal server error",
        }

        detail = exc.detail or error_details.get(exc.status_code, "An error occurred")

        if exc.status_code == status.HTTP_404_NOT_FOUND:
            logger.info(f"Not found: {detail}")
        else:
            logger.warning(f"HTTP Exception {exc.status_code}: {detail}")

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(detail, "HTTPException", exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error: {str(exc)}", exc_info=True)

        if isinstance(exc, IntegrityError):
            detail = (
                "Database integrity error - possible duplicate or constraint violation"
            )
            status_code = status.HTTP_409_CONFLICT
        elif isinstance(exc, NoResultFound):
            detail = "Requested resource not found in database"
            status_code = status.HTTP_404_NOT_FOUND
        else:
            detail = "Database operation failed"
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        return JSONResponse(
            status_code=status_code,
            content=_error_content(detail, "DatabaseError", status_code),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_content(
                "Internal server error",
                "InternalServerError",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            ),
        )
