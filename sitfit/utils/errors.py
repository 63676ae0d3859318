"""Standardized error handling for the application."""

import logging
from typing import Any, Dict, Optional

# Configure logger
logger = logging.getLogger(__name__)

GENERIC_RETRY_MESSAGE = "Something went wrong. Please try again."


class SitFitError(Exception):
    """Base exception class for all application errors."""

    def __init__(
        self,
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message, safe to show to the end user
            status_code: HTTP status code
            details: Additional error details, safe to show to the end user
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for API responses.

        Returns:
            Dict containing error details
        """
        return {
            "success": False,
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

    def log(self, level: int = logging.ERROR) -> None:
        """Log the error with appropriate level and context.

        Args:
            level: Logging level to use
        """
        log_context = {
            "error_type": self.__class__.__name__,
            "status_code": self.status_code,
            **self.details,
        }
        logger.log(level, f"{self.message}", extra=log_context)


# Ledger errors
class LedgerUnavailable(SitFitError):
    """The credit store could not be reached."""

    def __init__(self, user_id: str, operation: str):
        super().__init__(
            message="We couldn't check your credits right now. Please try again.",
            status_code=503,
        )
        self.user_id = user_id
        self.operation = operation

    def log(self, level: int = logging.ERROR) -> None:
        logger.log(
            level,
            f"Credit ledger unavailable during {self.operation} for user {self.user_id}",
            exc_info=self.__cause__ is not None,
        )


class InsufficientCredits(SitFitError):
    """The user has no credits left for a paid operation."""

    def __init__(self, user_id: str, credits: int = 0):
        super().__init__(
            message="You have used all your free try-ons this month. Upgrade to premium for unlimited try-ons.",
            status_code=402,
            details={"upgrade_required": True, "credits": credits},
        )
        self.user_id = user_id


# Payment errors
class PaymentError(SitFitError):
    """Base class for payment workflow errors."""

    pass


class InvalidPaymentSignature(PaymentError):
    """The payment confirmation signature did not verify."""

    def __init__(self, user_id: str, order_id: str, payment_id: str):
        super().__init__(message="Invalid payment signature", status_code=400)
        self.user_id = user_id
        self.order_id = order_id
        self.payment_id = payment_id

    def log(self, level: int = logging.WARNING) -> None:
        # Never include the secret or either signature here
        logger.log(
            level,
            f"Payment signature mismatch for user {self.user_id} "
            f"(order {self.order_id}, payment {self.payment_id})",
            extra={"security_event": "invalid_payment_signature"},
        )


class OrderAmountMismatch(PaymentError):
    """The requested amount differs from the price of the plan."""

    def __init__(self, plan: str, requested: int, expected: int):
        super().__init__(
            message=f"Amount does not match the price of the {plan} plan",
            status_code=400,
            details={"plan": plan, "expected_amount": expected},
        )
        self.plan = plan
        self.requested = requested

    def log(self, level: int = logging.WARNING) -> None:
        logger.log(level, f"Rejected order for {self.plan} plan: amount {self.requested} does not match the plan price")


class PaymentOrderMismatch(PaymentError):
    """A verified payment belongs to an order for another user, plan or amount."""

    def __init__(self, user_id: str, order_id: str, reason: str):
        super().__init__(message="Payment does not match the order", status_code=400)
        self.user_id = user_id
        self.order_id = order_id
        self.reason = reason

    def log(self, level: int = logging.WARNING) -> None:
        logger.log(
            level,
            f"Payment for order {self.order_id} rejected for user {self.user_id}: {self.reason}",
            extra={"security_event": "payment_order_mismatch"},
        )


class DuplicatePaymentVerification(PaymentError):
    """A payment was verified again after it had already been recorded.

    Informational only: verification of a known payment succeeds.
    """

    def __init__(self, user_id: str, payment_id: str):
        super().__init__(message="Payment already verified", status_code=200)
        self.user_id = user_id
        self.payment_id = payment_id


class PaymentProviderError(PaymentError):
    """The payment provider rejected or failed a request."""

    def __init__(self, reason: str, provider_status: Optional[int] = None):
        super().__init__(message="Payment provider is unavailable. Please try again.", status_code=502)
        self.reason = reason
        self.provider_status = provider_status

    def log(self, level: int = logging.ERROR) -> None:
        logger.log(level, f"Payment provider error (status={self.provider_status}): {self.reason}")


# Try-on errors
class InvalidImage(SitFitError):
    """An uploaded image is not an accepted data URL or is too large."""

    def __init__(self, field: str):
        super().__init__(
            message=f"Invalid {field} format or size. Please use JPEG/PNG under 10MB.",
            status_code=400,
            details={"field": field},
        )


class ImageGenerationFailed(SitFitError):
    """The image-generation provider did not produce a result."""

    def __init__(self, message: str = "Failed to generate try-on image", reason: Optional[str] = None):
        super().__init__(message=message, status_code=502)
        self.reason = reason or message

    def log(self, level: int = logging.ERROR) -> None:
        logger.log(level, f"Image generation failed: {self.reason}")


# Weather errors
class WeatherUnavailable(SitFitError):
    """The weather provider could not produce a report."""

    def __init__(self, reason: str):
        super().__init__(message="Failed to fetch weather data. Please try again later.", status_code=502)
        self.reason = reason

    def log(self, level: int = logging.ERROR) -> None:
        logger.log(level, f"Weather provider error: {self.reason}")


def convert_exception(exc: Exception) -> SitFitError:
    """Convert an arbitrary exception into an application error.

    Unknown exceptions never leak their text to the client.
    """
    if isinstance(exc, SitFitError):
        return exc
    logger.exception(f"Unhandled error: {exc}", exc_info=exc)
    return SitFitError(message=GENERIC_RETRY_MESSAGE, status_code=500)
