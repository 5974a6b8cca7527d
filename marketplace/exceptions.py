"""
Marketplace Exceptions

This module provides the exception hierarchy shared by every marketplace
service. Each exception carries enough information for the caller to tell the
failure kinds apart (validation, ownership, missing entity, unsupported upload,
price format, payment provider, storage) and is rendered as an API response by
`marketplace_exception_handler`, which is registered as the DRF
`EXCEPTION_HANDLER`.

Author: Marketplace Development Team
Version: 1.0.0
"""

import logging
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceException(Exception):
    """
    Base exception class for all marketplace errors.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code used when rendered as a response
        error_code (str): Stable machine-readable error kind
        details (Dict[str, Any]): Additional error context

    Example:
        >>> try:
        ...     course_service.update_course(course_id, caller, data)
        ... except MarketplaceException as e:
        ...     logger.warning("Update rejected: %s", e.error_code)
    """

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error_code: str = "MarketplaceError"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code or self.default_status_code
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "message": self.message,
            "status_code": self.status_code,
            "error_code": self.error_code,
            "details": self.details,
            "exception_type": self.__class__.__name__,
        }


class ValidationError(MarketplaceException):
    """Malformed or missing caller input. Never retried automatically."""

    default_status_code = status.HTTP_400_BAD_REQUEST
    default_error_code = "ValidationError"


class InvalidPrice(ValidationError):
    """A price could not be parsed as a non-negative base-10 integer."""

    default_error_code = "InvalidPrice"


class Forbidden(MarketplaceException):
    """The caller does not own the resource it tries to change."""

    default_status_code = status.HTTP_403_FORBIDDEN
    default_error_code = "Forbidden"


class NotFound(MarketplaceException):
    """A referenced entity does not exist."""

    default_status_code = status.HTTP_404_NOT_FOUND
    default_error_code = "NotFound"


class Conflict(MarketplaceException):
    """
    The request conflicts with the stored state.

    Raised when a transaction id is reused for a different purchase.
    """

    default_status_code = status.HTTP_409_CONFLICT
    default_error_code = "Conflict"


class UnsupportedMediaType(MarketplaceException):
    """Upload content type is neither an image nor the supported video type."""

    default_status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    default_error_code = "UnsupportedMediaType"


class PaymentProviderError(MarketplaceException):
    """The payment processor failed or timed out."""

    default_status_code = status.HTTP_502_BAD_GATEWAY
    default_error_code = "PaymentProviderError"


class PaymentNotVerified(MarketplaceException):
    """The processor does not confirm the reported payment."""

    default_status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_error_code = "PaymentNotVerified"


class StorageUnavailable(MarketplaceException):
    """Transient storage failure. Safe to retry with backoff."""

    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_error_code = "StorageUnavailable"


def marketplace_exception_handler(exc, context):
    """
    DRF exception handler rendering MarketplaceException instances.

    Any other exception is delegated to DRF's default handler.
    """
    if isinstance(exc, MarketplaceException):
        view = context.get("view")
        if exc.status_code >= 500:
            logger.error(
                "%s in %s: %s", exc.error_code, view.__class__.__name__, exc.message
            )
        else:
            logger.info(
                "%s in %s: %s", exc.error_code, view.__class__.__name__, exc.message
            )
        return Response(
            {"message": exc.message, "error": exc.to_dict()},
            status=exc.status_code,
        )
    return exception_handler(exc, context)
