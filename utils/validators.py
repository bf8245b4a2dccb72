import re
from datetime import date
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.utils import timezone
from utils.constants import (
    AlreadyExistsMessage, UserMessage, TrainMessage, PaymentMessage,
    BookingMessage, BookingStatus, PaymentStatus, Choices)
from exceptions.handlers import (
    AlreadyExistsException, PermissionDeniedException, InvalidInputException,
    AlreadyCancelledError, PaymentNotCompletedError, AlreadyPaidError)
import logging

logger = logging.getLogger("validators")

MOBILE_NUMBER_PATTERN = re.compile(r"^[6-9]\d{9}$")
PASSENGER_NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
CARD_NUMBER_PATTERN = re.compile(r"\d{13,19}", re.ASCII)
CVV_PATTERN = re.compile(r"\d{3,4}", re.ASCII)


class UserFieldValidators:
    """
    Reusable validation logic for user-related fields.
    Eliminates code duplication in serializers.
    """

    @staticmethod
    def validate_email_uniqueness(value, context="registration", exclude_user=None):
        """
        Validates email uniqueness for user registration and updates.
        """
        queryset = get_user_model().objects
        if exclude_user:
            queryset = queryset.exclude(pk=exclude_user.pk)

        if queryset.filter(email__iexact=value).exists():
            logger.error(f"{context.title()} failed - Email already exists: {value}")
            raise AlreadyExistsException(AlreadyExistsMessage.EMAIL_ALREADY_EXISTS)

        return value.lower()

    @staticmethod
    def validate_mobile_number_format(value):
        if not MOBILE_NUMBER_PATTERN.match(value or ""):
            raise InvalidInputException(UserMessage.MOBILE_NUMBER_INVALID)
        return value

    @staticmethod
    def validate_mobile_number_uniqueness(value, context="registration", exclude_user=None):
        """
        Validates mobile number uniqueness among active users.

        Raises:
            AlreadyExistsException: If mobile number already exists
        """
        queryset = get_user_model().objects
        if exclude_user:
            queryset = queryset.exclude(pk=exclude_user.pk)

        if queryset.filter(mobile_number=value, is_active=True).exists():
            logger.error(f"{context.title()} failed - Mobile number already exists: {value}")
            raise AlreadyExistsException(AlreadyExistsMessage.MOBILE_ALREADY_EXISTS)

        return value

    @staticmethod
    def validate_username_uniqueness(value, context="registration", exclude_user=None):
        """
        Username must be unique across ALL users (active and inactive).
        """
        queryset = get_user_model().objects
        if exclude_user:
            queryset = queryset.exclude(pk=exclude_user.pk)

        if queryset.filter(username=value).exists():
            logger.error(f"{context.title()} failed - Username already exists: {value}")
            raise AlreadyExistsException(AlreadyExistsMessage.USERNAME_ALREADY_EXISTS)

        return value


class TrainValidators:
    """
    Centralized validation logic for the train directory.
    """

    @staticmethod
    def validate_running_days(days):
        """
        Validates that every running day is a full English weekday name.

        Raises:
            ValidationError: On an unknown day name
        """
        for day in days or []:
            if day not in Choices.WEEKDAYS:
                raise ValidationError(TrainMessage.INVALID_RUNNING_DAY.format(day=day))
        return days

    @staticmethod
    def validate_route_stops(distances):
        """
        Validates that cumulative distances along the route strictly increase.

        Args:
            distances (list): Cumulative distances in route order

        Raises:
            ValidationError: If the route is too short or not increasing
        """
        if len(distances) < 2:
            raise ValidationError(TrainMessage.ROUTE_NEEDS_TWO_STOPS)
        for previous, current in zip(distances, distances[1:]):
            if current <= previous:
                raise ValidationError(TrainMessage.ROUTE_DISTANCE_NOT_INCREASING)
        return distances

    @staticmethod
    def validate_stop_position(distance, previous_distance=None, next_distance=None):
        """
        A stop's cumulative distance must lie strictly between its neighbours.

        Raises:
            ValidationError: If the distance is out of order
        """
        if previous_distance is not None and distance <= previous_distance:
            raise ValidationError(TrainMessage.ROUTE_DISTANCE_NOT_INCREASING)
        if next_distance is not None and distance >= next_distance:
            raise ValidationError(TrainMessage.ROUTE_DISTANCE_NOT_INCREASING)
        return distance

    @staticmethod
    def validate_seat_counts(total_seats, available_seats):
        if available_seats is not None and total_seats is not None and available_seats > total_seats:
            raise ValidationError(TrainMessage.SEATS_EXCEED_TOTAL)

    @staticmethod
    def parse_date(value):
        """
        Parses an ISO date query parameter.

        Raises:
            InvalidInputException: If the value is not YYYY-MM-DD
        """
        try:
            return date.fromisoformat(value)
        except (TypeError, ValueError):
            raise InvalidInputException(TrainMessage.INVALID_DATE)


class BookingValidators:
    """
    Centralized validation logic for booking-related operations.
    The lifecycle guards here are enforced by the booking services,
    not just by the views.
    """

    @staticmethod
    def validate_user_authorized(user):
        if user.is_staff or user.is_superuser:
            logger.warning(f"Admin user {user} attempted to create a booking")
            raise PermissionDeniedException(BookingMessage.ADMIN_CANNOT_CREATE_BOOKING)

    @staticmethod
    def validate_station_codes(from_code, to_code):
        from_code = (from_code or "").strip().upper()
        to_code = (to_code or "").strip().upper()
        if from_code == to_code:
            raise InvalidInputException(BookingMessage.FROM_AND_TO_MUST_BE_DIFFERENT)
        return from_code, to_code

    @staticmethod
    def validate_journey_date(journey_date):
        if journey_date < timezone.localdate():
            raise InvalidInputException(BookingMessage.JOURNEY_DATE_IN_PAST)
        return journey_date

    @staticmethod
    def validate_passenger_name(name):
        if not PASSENGER_NAME_PATTERN.match(name):
            raise InvalidInputException(BookingMessage.PASSENGER_NAME_INVALID)
        return name.strip()

    @staticmethod
    def validate_booking_cancellable(booking):
        """
        Cancellation is only possible for a paid, not yet cancelled booking.

        Raises:
            AlreadyCancelledError: If the booking is already cancelled
            PaymentNotCompletedError: If the payment is not completed
        """
        if booking.status == BookingStatus.CANCELLED:
            logger.warning(f"Cancel rejected, booking {booking.pnr} already cancelled")
            raise AlreadyCancelledError()
        if booking.payment_status != PaymentStatus.COMPLETED:
            logger.warning(
                f"Cancel rejected, booking {booking.pnr} has payment status {booking.payment_status}"
            )
            raise PaymentNotCompletedError()

    @staticmethod
    def validate_booking_modifiable(booking):
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidInputException(BookingMessage.CANNOT_MODIFY_CANCELLED)


class PaymentValidators:
    """
    Centralized validation logic for payment-related operations.
    """

    @staticmethod
    def validate_booking_payable(booking):
        """
        A booking can be paid while its payment is Pending or Failed.

        Raises:
            AlreadyPaidError: If the payment is Completed or Refunded
            InvalidInputException: If the booking is cancelled
        """
        if booking.payment_status in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            logger.warning(f"Payment rejected, booking {booking.pnr} already paid")
            raise AlreadyPaidError()
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidInputException(PaymentMessage.CANCELLED_BOOKING_NOT_PAYABLE)

    @staticmethod
    def validate_payment_method(value):
        value = (value or "").upper()
        valid_methods = [choice[0] for choice in Choices.PAYMENT_METHOD_CHOICES]
        if value not in valid_methods:
            raise InvalidInputException(PaymentMessage.INVALID_PAYMENT_METHOD)
        return value

    @staticmethod
    def luhn_check(card_number):
        """
        Validates a card number with the Luhn checksum.
        """
        total = 0
        for index, char in enumerate(reversed(card_number)):
            digit = int(char)
            if index % 2 == 1:
                digit *= 2
                if digit > 9:
                    digit -= 9
            total += digit
        return total % 10 == 0

    @staticmethod
    def validate_card_details(card_number, expiry_month, expiry_year, cvv, today=None):
        """
        Basic card validation: length, expiry, CVV and Luhn checksum.

        Returns:
            bool: True if the card details look valid
        """
        clean_number = re.sub(r"\s", "", str(card_number))
        if not CARD_NUMBER_PATTERN.fullmatch(clean_number):
            return False

        try:
            exp_month = int(expiry_month)
            exp_year = int(expiry_year)
        except (TypeError, ValueError):
            return False
        if not 1 <= exp_month <= 12:
            return False

        today = today or timezone.localdate()
        if exp_year < today.year or (exp_year == today.year and exp_month < today.month):
            return False

        if not CVV_PATTERN.fullmatch(str(cvv)):
            return False

        return PaymentValidators.luhn_check(clean_number)
