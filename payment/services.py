import logging
from django.db import transaction
from django.utils import timezone
from bookingsystem.services import get_locked_booking, apply_cancellation
from payment.models import PaymentTransaction
from utils.constants import BookingStatus, PaymentMessage, PaymentStatus
from utils.fare_helpers import FareHelpers
from utils.payment_helpers import PaymentHelpers
from utils.validators import BookingValidators, PaymentValidators
from exceptions.handlers import (
    InvalidInputException,
    NoRefundAvailableError,
    NotFoundException,
    PaymentFailedError,
    UpiUnavailableError,
)

logger = logging.getLogger("payment")


def initiate_payment(user, booking_id, payment_method):
    """
    Opens a payment session for a Pending or Failed booking.

    Returns:
        PaymentTransaction: The INITIATED session

    Raises:
        InvalidInputException: Unknown payment method or cancelled booking
        NotFoundException: If the user has no such booking
        AlreadyPaidError: If the booking is already paid
    """
    payment_method = PaymentValidators.validate_payment_method(payment_method)
    with transaction.atomic():
        booking = get_locked_booking(booking_id, user=user)
        PaymentValidators.validate_booking_payable(booking)

        payment = PaymentTransaction.objects.create(
            booking=booking,
            payment_id=PaymentHelpers.generate_payment_id(),
            amount=booking.total_price,
            payment_method=payment_method,
            expires_at=PaymentHelpers.session_expiry(),
        )
        booking.payment_id = payment.payment_id
        booking.save(update_fields=["payment_id", "updated_at"])

    logger.info(
        f"Payment {payment.payment_id} initiated for booking {booking.pnr} "
        f"({payment_method}, {payment.amount})"
    )
    return payment


def confirm_payment(booking_id, payment_id=None):
    """
    Marks a booking paid and credits reward points to its owner.

    Allowed from Pending and Failed. Points are floor(total_price * 5%).

    Returns:
        dict: reward_points_earned

    Raises:
        NotFoundException, AlreadyPaidError, InvalidInputException
    """
    with transaction.atomic():
        booking = get_locked_booking(booking_id)
        PaymentValidators.validate_booking_payable(booking)

        booking.status = BookingStatus.CONFIRMED
        booking.payment_status = PaymentStatus.COMPLETED
        if payment_id:
            booking.payment_id = payment_id
        booking.save(update_fields=["status", "payment_status", "payment_id", "updated_at"])

        if payment_id:
            PaymentTransaction.objects.filter(payment_id=payment_id, booking=booking).update(
                status=PaymentTransaction.SUCCESS, paid_at=timezone.now()
            )

        points = FareHelpers.reward_points_for(booking.total_price)
        booking.user.add_reward_points(
            points, reason=f"Booking {booking.pnr}", booking=booking
        )

    logger.info(f"Payment confirmed for booking {booking.pnr}, {points} reward points earned")
    return {"reward_points_earned": points}


def mark_payment_failed(booking_id, payment_id=None):
    """
    Records a declined payment. The booking stays Confirmed and can be paid again.

    Raises:
        NotFoundException, AlreadyPaidError, InvalidInputException
    """
    with transaction.atomic():
        booking = get_locked_booking(booking_id)
        PaymentValidators.validate_booking_payable(booking)
        booking.payment_status = PaymentStatus.FAILED
        booking.save(update_fields=["payment_status", "updated_at"])

        if payment_id:
            PaymentTransaction.objects.filter(payment_id=payment_id, booking=booking).update(
                status=PaymentTransaction.FAILED
            )

    logger.warning(f"Payment failed for booking {booking.pnr}")
    return booking


def get_user_payment(user, payment_id):
    payment = (
        PaymentTransaction.objects.select_related("booking")
        .filter(payment_id=payment_id, booking__user=user)
        .first()
    )
    if payment is None:
        logger.error(f"Payment {payment_id} not found for user {user}")
        raise NotFoundException(PaymentMessage.PAYMENT_NOT_FOUND)
    return payment


def process_card_payment(user, payment_id, card_number, expiry_month, expiry_year, cvv):
    """
    Charges a card against an open payment session through the mock gateway.

    Returns:
        dict: Payment outcome with the reward points earned

    Raises:
        NotFoundException: Unknown payment session
        AlreadyPaidError: Booking already paid
        InvalidInputException: Expired or closed session, or bad card details
        PaymentFailedError: The gateway declined the charge
    """
    payment = get_user_payment(user, payment_id)
    booking = payment.booking
    PaymentValidators.validate_booking_payable(booking)

    if payment.status != PaymentTransaction.INITIATED:
        raise InvalidInputException(PaymentMessage.PAYMENT_NOT_PAYABLE)
    if payment.is_expired:
        logger.warning(f"Payment session {payment_id} expired")
        raise InvalidInputException(PaymentMessage.PAYMENT_SESSION_EXPIRED)
    if not PaymentValidators.validate_card_details(card_number, expiry_month, expiry_year, cvv):
        logger.warning(f"Invalid card details for payment {payment_id}")
        raise InvalidInputException(PaymentMessage.INVALID_CARD_DETAILS)

    if not PaymentHelpers.gateway_approves():
        # Failed state is committed before the error propagates
        mark_payment_failed(booking.pk, payment_id=payment_id)
        raise PaymentFailedError()

    result = confirm_payment(booking.pk, payment_id=payment_id)
    return {
        "payment_id": payment_id,
        "status": "success",
        "booking_id": booking.pk,
        "pnr": booking.pnr,
        "amount": booking.total_price,
        "reward_points_earned": result["reward_points_earned"],
        "message": "Payment successful! Your ticket has been confirmed.",
    }


def process_upi_payment(user, payment_id=None):
    raise UpiUnavailableError()


def process_refund(user, booking_id, reason=None, now=None):
    """
    Cancels a paid booking and refunds it in one step.

    Unlike a plain cancellation this refuses to go ahead when the refund
    would be zero, and in that case nothing is changed.

    Returns:
        dict: booking_id, pnr, refund_details

    Raises:
        NotFoundException, AlreadyCancelledError, PaymentNotCompletedError,
        NoRefundAvailableError
    """
    now = now or timezone.now()
    with transaction.atomic():
        booking = get_locked_booking(booking_id, user=user)
        BookingValidators.validate_booking_cancellable(booking)
        refund = booking.calculate_refund(now=now)
        if refund["refund_amount"] == 0:
            logger.warning(f"Refund rejected for booking {booking.pnr}, nothing refundable")
            raise NoRefundAvailableError()
        apply_cancellation(booking, refund, reason=reason, now=now)

    logger.info(f"Refund of {refund['refund_amount']} processed for booking {booking.pnr}")
    return {
        "booking_id": booking.pk,
        "pnr": booking.pnr,
        "refund_details": refund,
        "message": "Refund processed successfully. Amount will be credited to your account within 5-7 business days.",
    }


def payment_status(user, payment_id):
    payment = get_user_payment(user, payment_id)
    booking = payment.booking
    return {
        "payment_id": payment.payment_id,
        "booking_id": booking.pk,
        "pnr": booking.pnr,
        "amount": payment.amount,
        "status": booking.payment_status,
        "transaction_status": payment.status,
        "booking_status": booking.status,
        "created_at": payment.created_at,
        "updated_at": payment.updated_at,
    }
