from datetime import date, timedelta
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from .models import PaymentTransaction
from . import services
from accounts.models import RewardTransaction
from bookingsystem.models import Booking
from bookingsystem.services import create_booking, cancel_booking
from trains.models import TrainClass
from utils.constants import BookingStatus, PaymentStatus
from testutils.fixtures import build_train, create_passenger_user, future_date, passenger_payload
from utils.payment_helpers import PaymentHelpers
from utils.validators import PaymentValidators
from exceptions.handlers import (
    AlreadyPaidError,
    NoRefundAvailableError,
    NotFoundException,
    UpiUnavailableError,
)

VALID_CARD = "4111 1111 1111 1111"


def card_details(**overrides):
    details = {
        "card_number": VALID_CARD,
        "expiry_month": "12",
        "expiry_year": str(timezone.localdate().year + 2),
        "cvv": "123",
    }
    details.update(overrides)
    return details


class CardValidationTest(TestCase):
    """Test cases for card checks."""

    def test_luhn(self):
        self.assertTrue(PaymentValidators.luhn_check("4111111111111111"))
        self.assertFalse(PaymentValidators.luhn_check("4111111111111112"))

    def test_valid_card(self):
        self.assertTrue(PaymentValidators.validate_card_details(**card_details()))

    def test_card_number_length(self):
        self.assertFalse(PaymentValidators.validate_card_details(**card_details(card_number="4111")))

    def test_expired_card(self):
        today = date(2030, 6, 15)
        self.assertFalse(PaymentValidators.validate_card_details(
            VALID_CARD, "5", "2030", "123", today=today
        ))
        self.assertTrue(PaymentValidators.validate_card_details(
            VALID_CARD, "6", "2030", "123", today=today
        ))

    def test_cvv_length(self):
        self.assertFalse(PaymentValidators.validate_card_details(**card_details(cvv="12")))
        self.assertFalse(PaymentValidators.validate_card_details(**card_details(cvv="12345")))

    def test_non_ascii_digits_are_rejected(self):
        """Test that digits outside 0-9 fail validation instead of crashing."""
        self.assertFalse(PaymentValidators.validate_card_details(
            **card_details(card_number="411111111111111\u00b2")
        ))
        self.assertFalse(PaymentValidators.validate_card_details(
            **card_details(card_number="\u0664" * 16)
        ))
        self.assertFalse(PaymentValidators.validate_card_details(**card_details(cvv="12\u00b3")))

    def test_payment_id_format(self):
        self.assertRegex(PaymentHelpers.generate_payment_id(), r"^PAY_\d+_[a-z0-9]{9}$")


class PaymentLifecycleTest(TestCase):
    """Test cases for confirming and failing payments."""

    def setUp(self):
        cache.clear()
        self.user = create_passenger_user()
        self.train = build_train()
        self.booking = create_booking(
            self.user, self.train, "NDLS", "BPL", "SL", passenger_payload(2), future_date(10)
        )

    def test_confirm_payment_credits_reward_points(self):
        """Test floor(965 * 5%) = 48 points."""
        result = services.confirm_payment(self.booking.pk)
        self.assertEqual(result, {"reward_points_earned": 48})

        self.booking.refresh_from_db()
        self.user.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(self.booking.payment_status, PaymentStatus.COMPLETED)
        self.assertEqual(self.user.reward_points, 48)
        entry = RewardTransaction.objects.get(user=self.user)
        self.assertEqual(entry.booking, self.booking)

    def test_confirm_twice_is_rejected(self):
        services.confirm_payment(self.booking.pk)
        with self.assertRaises(AlreadyPaidError):
            services.confirm_payment(self.booking.pk)
        self.user.refresh_from_db()
        self.assertEqual(self.user.reward_points, 48)

    def test_failed_payment_can_be_retried(self):
        services.mark_payment_failed(self.booking.pk)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(self.booking.payment_status, PaymentStatus.FAILED)

        services.confirm_payment(self.booking.pk)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.COMPLETED)

    def test_confirm_unknown_booking(self):
        with self.assertRaises(NotFoundException):
            services.confirm_payment(999999)

    def test_refunded_booking_cannot_be_paid(self):
        services.confirm_payment(self.booking.pk)
        cancel_booking(self.booking.pk)
        with self.assertRaises(AlreadyPaidError):
            services.initiate_payment(self.user, self.booking.pk, "CARD")

    def test_refund_with_nothing_refundable_changes_nothing(self):
        services.confirm_payment(self.booking.pk)
        now = self.booking.journey_start - timedelta(hours=2)
        with self.assertRaises(NoRefundAvailableError):
            services.process_refund(self.user, self.booking.pk, now=now)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(self.booking.payment_status, PaymentStatus.COMPLETED)
        self.assertEqual(TrainClass.objects.get(train=self.train, class_type="SL").available_seats, 8)

    def test_upi_is_unavailable(self):
        with self.assertRaises(UpiUnavailableError):
            services.process_upi_payment(self.user)


class PaymentAPITest(APITestCase):
    """Test cases for the payment endpoints."""

    def setUp(self):
        cache.clear()
        self.user = create_passenger_user()
        self.train = build_train()
        self.booking = create_booking(
            self.user, self.train, "NDLS", "BPL", "SL", passenger_payload(1), future_date(10)
        )
        self.client.force_authenticate(user=self.user)

    def initiate(self, method="CARD"):
        return self.client.post(
            "/api/payments/", {"booking_id": self.booking.pk, "payment_method": method}, format="json"
        )

    def pay(self, payment_id, **overrides):
        data = dict(card_details(**overrides), payment_id=payment_id, cardholder_name="Asha Rao")
        return self.client.post("/api/payments/card/", data, format="json")

    def test_initiate_payment(self):
        response = self.initiate()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["payment_id"].startswith("PAY_"))
        self.assertEqual(response.data["amount"], 493)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_id, response.data["payment_id"])

    def test_initiate_rejects_unknown_method(self):
        response = self.initiate(method="WALLET")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_initiate_for_other_users_booking(self):
        other = create_passenger_user("otheruser", mobile_number="9000000001")
        self.client.force_authenticate(user=other)
        response = self.initiate()
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(PAYMENT_GATEWAY_SUCCESS_RATE=1.0)
    def test_card_payment_success(self):
        payment_id = self.initiate().data["payment_id"]
        response = self.pay(payment_id)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["reward_points_earned"], 24)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.COMPLETED)
        payment = PaymentTransaction.objects.get(payment_id=payment_id)
        self.assertEqual(payment.status, PaymentTransaction.SUCCESS)
        self.assertIsNotNone(payment.paid_at)

        again = self.initiate()
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

    @override_settings(PAYMENT_GATEWAY_SUCCESS_RATE=0.0)
    def test_card_payment_declined(self):
        payment_id = self.initiate().data["payment_id"]
        response = self.pay(payment_id)
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.FAILED)
        self.assertEqual(
            PaymentTransaction.objects.get(payment_id=payment_id).status, PaymentTransaction.FAILED
        )

        retry = self.initiate()
        self.assertEqual(retry.status_code, status.HTTP_201_CREATED)

    def test_invalid_card_details(self):
        payment_id = self.initiate().data["payment_id"]
        response = self.pay(payment_id, card_number="4111111111111112")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)

    def test_non_ascii_card_number(self):
        payment_id = self.initiate().data["payment_id"]
        response = self.pay(payment_id, card_number="411111111111111\u00b2")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "Invalid card details.")

    def test_expired_session(self):
        payment_id = self.initiate().data["payment_id"]
        PaymentTransaction.objects.filter(payment_id=payment_id).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )
        response = self.pay(payment_id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_payment_id(self):
        response = self.pay("PAY_1_missing00")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_upi_not_implemented(self):
        response = self.client.post("/api/payments/upi/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_501_NOT_IMPLEMENTED)

    @override_settings(PAYMENT_GATEWAY_SUCCESS_RATE=1.0)
    def test_refund(self):
        self.pay(self.initiate().data["payment_id"])
        response = self.client.post(
            "/api/payments/refund/", {"booking_id": self.booking.pk, "reason": "Sick"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["refund_details"]["refund_percentage"], 90)

        booking = Booking.objects.get(pk=self.booking.pk)
        self.assertEqual(booking.status, BookingStatus.CANCELLED)
        self.assertEqual(booking.payment_status, PaymentStatus.REFUNDED)
        self.assertEqual(TrainClass.objects.get(train=self.train, class_type="SL").available_seats, 10)

    def test_refund_unpaid_booking(self):
        response = self.client.post(
            "/api/payments/refund/", {"booking_id": self.booking.pk}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_payment_status_and_history(self):
        payment_id = self.initiate().data["payment_id"]
        status_response = self.client.get(f"/api/payments/status/{payment_id}/")
        self.assertEqual(status_response.status_code, status.HTTP_200_OK)
        self.assertEqual(status_response.data["status"], PaymentStatus.PENDING)
        self.assertEqual(status_response.data["pnr"], self.booking.pnr)

        history = self.client.get("/api/payments/")
        self.assertEqual(history.data["count"], 1)
