import logging
from django.db import transaction
from django.utils import timezone
from bookingsystem.models import Booking, Passenger
from trains.models import TrainClass
from utils.booking_helpers import BookingHelpers
from utils.constants import BookingMessage, BookingStatus, PaymentStatus
from utils.fare_helpers import FareHelpers
from utils.inventory_helpers import SeatInventory
from utils.train_helpers import TrainDirectoryHelpers
from utils.validators import BookingValidators
from exceptions.handlers import InvalidInputException, NotFoundException

logger = logging.getLogger("bookingsystem")


def generate_unique_pnr():
    return BookingHelpers.generate_unique_pnr()


def compute_fare(train, from_code, to_code, class_type):
    return FareHelpers.compute_fare(train, from_code, to_code, class_type)


def create_booking(user, train, from_code, to_code, class_type, passengers, journey_date,
                   contact_email=None, contact_phone=None, special_requests=None):
    """
    Books passengers on a train for one journey.

    Every check runs before any write. The seat reservation and the booking
    insert share one transaction, so a failure leaves neither behind.

    Args:
        user: Booking owner
        train (Train): Train with its stops and classes
        from_code (str): Boarding station code
        to_code (str): Destination station code
        class_type (str): Fare class code, e.g. "SL"
        passengers (list): Dicts with name, age, gender and optional berth_preference
        journey_date (date): Travel date
        contact_email (str, optional): Defaults to the user's email
        contact_phone (str, optional): Defaults to the user's mobile number
        special_requests (dict, optional): wheelchair_assistance, meal_preference, other_requests

    Returns:
        Booking: The new booking in Confirmed / Pending

    Raises:
        TrainNotRunningOnDateError, StationNotFoundError,
        ClassUnavailableError, InsufficientSeatsError
    """
    BookingValidators.validate_user_authorized(user)
    from_code, to_code = BookingValidators.validate_station_codes(from_code, to_code)
    if not passengers:
        raise InvalidInputException(BookingMessage.NO_PASSENGERS)

    TrainDirectoryHelpers.validate_runs_on(train, journey_date)
    from_stop = FareHelpers.get_stop(train, from_code)
    to_stop = FareHelpers.get_stop(train, to_code)
    fare_class = FareHelpers.get_fare_class(train, class_type)
    fare = FareHelpers.compute_fare(train, from_code, to_code, fare_class.class_type)
    breakdown = FareHelpers.price_breakdown(fare, len(passengers))
    special_requests = special_requests or {}

    with transaction.atomic():
        SeatInventory.reserve(fare_class, len(passengers))
        booking = Booking.objects.create(
            user=user,
            train=train,
            pnr=BookingHelpers.generate_unique_pnr(),
            train_number=train.train_number,
            train_name=train.name,
            from_station_code=from_stop.station_code,
            from_station_name=from_stop.station_name,
            from_departure_time=from_stop.departure_time,
            from_platform=from_stop.platform,
            to_station_code=to_stop.station_code,
            to_station_name=to_stop.station_name,
            to_arrival_time=to_stop.arrival_time,
            to_platform=to_stop.platform,
            journey_date=journey_date,
            class_type=fare_class.class_type,
            class_name=fare_class.name,
            passenger_count=len(passengers),
            status=BookingStatus.CONFIRMED,
            payment_status=PaymentStatus.PENDING,
            contact_email=contact_email or user.email,
            contact_phone=contact_phone or user.mobile_number,
            wheelchair_assistance=special_requests.get("wheelchair_assistance", False),
            meal_preference=special_requests.get("meal_preference", "None"),
            other_requests=special_requests.get("other_requests", ""),
            **breakdown,
        )
        Passenger.objects.bulk_create([
            Passenger(
                booking=booking,
                name=passenger["name"],
                age=passenger["age"],
                gender=passenger["gender"],
                berth_preference=passenger.get("berth_preference", "No Preference"),
            )
            for passenger in passengers
        ])

    logger.info(
        f"Booking created: user={user}, pnr={booking.pnr}, train={train.train_number}, "
        f"from={from_code}, to={to_code}, class={fare_class.class_type}, "
        f"passengers={len(passengers)}, total={booking.total_price}"
    )
    return booking


def get_locked_booking(booking_id, user=None):
    """
    Loads a booking row for update. Must be called inside transaction.atomic().

    Raises:
        NotFoundException: If no active booking matches
    """
    filters = {"pk": booking_id}
    if user is not None:
        filters["user"] = user
    booking = Booking.objects.select_for_update().filter(**filters).first()
    if booking is None:
        logger.error(f"Booking not found: id={booking_id}, user={user}")
        raise NotFoundException(BookingMessage.BOOKING_NOT_FOUND)
    return booking


def apply_cancellation(booking, refund, reason=None, now=None):
    """
    Moves a locked, cancellable booking to Cancelled and puts its seats back.
    payment_status becomes Refunded only when money is returned.
    """
    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = now or timezone.now()
    booking.refund_amount = refund["refund_amount"]
    booking.cancellation_charges = refund["cancellation_charges"]
    booking.cancellation_reason = reason or BookingMessage.DEFAULT_CANCEL_REASON
    if booking.refund_amount > 0:
        booking.payment_status = PaymentStatus.REFUNDED
    booking.save(update_fields=[
        "status", "payment_status", "cancelled_at", "refund_amount",
        "cancellation_charges", "cancellation_reason", "updated_at",
    ])

    fare_class = TrainClass.objects.filter(
        train_id=booking.train_id, class_type=booking.class_type
    ).first()
    if fare_class is not None:
        SeatInventory.release(fare_class, booking.passenger_count)
    else:
        logger.warning(
            f"Class {booking.class_type} no longer on train {booking.train_number}, "
            f"seats for {booking.pnr} not released"
        )


def cancel_booking(booking_id, reason=None, now=None, user=None):
    """
    Cancels a paid booking and works out the refund.

    The booking row is locked for the whole operation, so a repeated cancel
    waits for the first one and then fails with AlreadyCancelledError
    instead of releasing the seats a second time.

    Returns:
        dict: refund_amount, cancellation_charges, refund_percentage

    Raises:
        NotFoundException, AlreadyCancelledError, PaymentNotCompletedError
    """
    now = now or timezone.now()
    with transaction.atomic():
        booking = get_locked_booking(booking_id, user=user)
        BookingValidators.validate_booking_cancellable(booking)
        refund = booking.calculate_refund(now=now)
        apply_cancellation(booking, refund, reason=reason, now=now)

    logger.info(
        f"Booking cancelled: pnr={booking.pnr}, refund={refund['refund_amount']}, "
        f"charges={refund['cancellation_charges']}"
    )
    return refund


def update_booking_details(booking, data):
    """
    Updates contact details and special requests on a booking.

    Raises:
        InvalidInputException: If the booking is cancelled or data is empty
    """
    BookingValidators.validate_booking_modifiable(booking)
    if not data:
        raise InvalidInputException(BookingMessage.NO_VALID_UPDATE_FIELDS)

    for field, value in data.items():
        setattr(booking, field, value)
    booking.save(update_fields=list(data.keys()) + ["updated_at"])
    logger.info(f"Booking {booking.pnr} updated: {', '.join(data.keys())}")
    return booking
