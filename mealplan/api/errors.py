"""
Conversion of application errors into HTTP responses.
"""
import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from mealplan.errors import ErrorCode, MealPlanError

logger = logging.getLogger(__name__)


def to_http_exception(error: MealPlanError) -> HTTPException:
    """Wrap a MealPlanError in an HTTPException carrying its structured body."""
    body = error.to_response()
    return HTTPException(
        status_code=error.status_code,
        detail={
            "error_code": body.error_code,
            "message": body.message,
            "details": error.details,
        },
    )


def database_error(error: SQLAlchemyError, action: str) -> HTTPException:
    logger.exception(f"Database error while {action}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error_code": ErrorCode.DATABASE_QUERY_ERROR.value,
            "message": f"Database error occurred while {action}. Please try again.",
            "details": {"error_type": type(error).__name__},
        },
    )
