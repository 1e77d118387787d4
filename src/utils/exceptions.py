# src/utils/exceptions.py
import logging
from fastapi import HTTPException, status
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from .logger import setup_logger

logger = setup_logger("EXCEPTIONS")


class BaseAPIException(HTTPException):
    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        headers: Optional[dict] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundException(BaseAPIException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictException(BaseAPIException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UnprocessableEntityException(BaseAPIException):
    def __init__(self, detail: str = "Unprocessable entity"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail
        )


class ContextValidationException(UnprocessableEntityException):
    """A contextual appointment is missing the encounter it continues"""

    def __init__(self, detail: str = "Appointment context is incomplete"):
        super().__init__(detail=detail)


class InvalidTransitionException(ConflictException):
    def __init__(self, current_status: Any, new_status: Any):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            detail=f"Invalid status transition from {_label(current_status)} "
            f"to {_label(new_status)}"
        )


def _label(value: Any) -> str:
    return getattr(value, "value", value)


async def handle_db_exception(
    db: AsyncSession, logger: logging.Logger, operation: str, exception: Exception
):
    """Handle database exceptions with consistent logging and rollback"""
    await db.rollback()
    logger.error(f"Database error during {operation}: {str(exception)}", exc_info=True)

    # Re-raise custom exceptions
    if isinstance(exception, BaseAPIException):
        raise exception

    # Convert other exceptions to HTTP 500
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Internal server error during {operation}",
    ) from exception
