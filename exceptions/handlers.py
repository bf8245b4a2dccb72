from rest_framework.exceptions import APIException
from rest_framework import status
from rest_framework.views import exception_handler
from rest_framework.response import Response
from django.core.exceptions import (
    ObjectDoesNotExist,
    ValidationError as DjangoValidationError,
)
from rest_framework.exceptions import ValidationError as DRFValidationError
from utils.constants import (
    GeneralMessage,
    SeatMessage,
    BookingMessage,
    PaymentMessage,
)
import logging

logger = logging.getLogger("exceptions")


def custom_exception_handler(exc, context):
    # Handle Django's DoesNotExist as 404
    if isinstance(exc, ObjectDoesNotExist):
        return Response(
            {"success": False, "error": "Not found."},
            status=status.HTTP_404_NOT_FOUND
        )

    # Handle Django and DRF validation errors as 400
    if isinstance(exc, (DjangoValidationError, DRFValidationError)):
        if isinstance(exc, DjangoValidationError):
            error = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        else:
            error = exc.detail
        return Response(
            {"success": False, "error": error},
            status=status.HTTP_400_BAD_REQUEST,
        )

    # Handle all APIException (including the booking domain errors below)
    if isinstance(exc, APIException):
        view = context.get("view")
        logger.warning(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.detail}"
        )
        return Response(
            {"success": False, "error": exc.detail}, status=exc.status_code
        )

    # Fallback to DRF's default handler (Http404, PermissionDenied from Django)
    response = exception_handler(exc, context)
    if response is not None:
        response.data = {"success": False, "error": response.data}
        return response

    # Catch-all for any other exception
    logger.exception("Unhandled exception while processing request")
    return Response(
        {
            "success": False,
            "error": GeneralMessage.SOMETHING_WENT_WRONG,
            "detail": str(exc),
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

class AlreadyExistsException(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_code = "already_exists"


class NotFoundException(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "not_found"


class PermissionDeniedException(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = GeneralMessage.PERMISSION_DENIED
    default_code = "permission_denied"


class InvalidInputException(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = GeneralMessage.INVALID_INPUT
    default_code = "invalid_input"

class MethodNotAllowedException(APIException):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_code = "method_not_allowed"


# ---------- BOOKING DOMAIN ERRORS ----------

class InsufficientSeatsError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = SeatMessage.INSUFFICIENT_SEATS
    default_code = "insufficient_seats"


class StationNotFoundError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Station not found in route."
    default_code = "station_not_found"


class ClassUnavailableError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Class not available."
    default_code = "class_unavailable"


class TrainNotRunningOnDateError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Train does not run on the selected date."
    default_code = "train_not_running"


class AlreadyCancelledError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = BookingMessage.ALREADY_CANCELLED
    default_code = "already_cancelled"


class PaymentNotCompletedError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = BookingMessage.PAYMENT_NOT_COMPLETED
    default_code = "payment_not_completed"


class AlreadyPaidError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = PaymentMessage.PAYMENT_ALREADY_SUCCESS
    default_code = "already_paid"


class NoRefundAvailableError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = PaymentMessage.NO_REFUND_AVAILABLE
    default_code = "no_refund_available"


class PaymentFailedError(APIException):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = PaymentMessage.PAYMENT_FAILED
    default_code = "payment_failed"


class UpiUnavailableError(APIException):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_detail = PaymentMessage.UPI_UNAVAILABLE
    default_code = "upi_unavailable"
