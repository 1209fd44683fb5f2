"""
Error handling for API responses outside GraphQL execution.
"""
import logging

from django.http import JsonResponse

from marketplace.domain.exceptions import MarketplaceError

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "UNAUTHENTICATED": 401,
        "FORBIDDEN": 403,
        "NOT_FOUND": 404,
        "INSUFFICIENT_STOCK": 409,
        "INVALID_TRANSITION": 409,
        "EMPTY_CART": 422,
        "DUPLICATE_REQUEST": 409,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def error_response(cls, code: str, message: str, status: int | None = None) -> JsonResponse:
        return JsonResponse(
            {
                "error": {
                    "code": code,
                    "message": message,
                }
            },
            status=status or cls.ERROR_CODES.get(code, 400),
        )

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        if isinstance(error, MarketplaceError):
            return cls.error_response(error.code, error.message)

        # Log unexpected errors
        logger.error(
            "unexpected_error",
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
            exc_info=True,
        )
        return cls.error_response("INTERNAL_ERROR", "An internal error occurred")
