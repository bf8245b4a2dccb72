import re
from datetime import timedelta
from unittest import mock
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from .models import Booking
from . import services
from trains.models import TrainClass
from payment.services import confirm_payment
from utils.booking_helpers import BookingHelpers
from utils.constants import BookingStatus, PaymentStatus
from testutils.fixtures import build_train, create_passenger_user, future_date, passenger_payload
from exceptions.handlers import (
    AlreadyCancelledError,
    ClassUnavailableError,
    InsufficientSeatsError,
    InvalidInputException,
    NotFoundException,
    PaymentNotCompletedError,
    PermissionDeniedException,
    StationNotFoundError,
    TrainNotRunningOnDateError,
)


def seats(train, class_type):
    return TrainClass.objects.get(train=train, class_type=class_type).available_seats


class CreateBookingTest(TestCase):
    """Test cases for booking creation."""

    def setUp(self):
        cache.clear()
        self.user = create_passenger_user()
        self.train = build_train()
        self.journey_date = future_date(10)

    def book(self, count=1, class_type="SL", from_code="NDLS", to_code="BPL", **extra):
        return services.create_booking(
            self.user, self.train, from_code, to_code, class_type,
            passenger_payload(count), extra.pop("journey_date", self.journey_date), **extra
        )

    def test_create_booking_prices_and_reserves(self):
        """Test a one-passenger SL booking NDLS->BPL."""
        booking = self.book()
        self.assertTrue(re.fullmatch(r"[A-Z0-9]{10}", booking.pnr))
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(booking.payment_status, PaymentStatus.PENDING)
        self.assertEqual(booking.base_fare, 450)
        self.assertEqual(booking.taxes, 23)
        self.assertEqual(booking.convenience_fee, 20)
        self.assertEqual(booking.discount, 0)
        self.assertEqual(booking.total_price, 493)
        self.assertEqual(booking.passengers.count(), 1)
        self.assertEqual(seats(self.train, "SL"), 9)

    def test_booking_snapshots_stops_and_contact(self):
        booking = self.book(count=2)
        self.assertEqual(booking.from_station_name, "New Delhi")
        self.assertEqual(booking.to_station_code, "BPL")
        self.assertEqual(booking.class_name, "Sleeper")
        self.assertEqual(booking.contact_email, self.user.email)
        self.assertEqual(booking.passenger_count, 2)

    def test_insufficient_seats_leaves_no_trace(self):
        """Test 6 passengers on a class with 5 seats."""
        with self.assertRaises(InsufficientSeatsError):
            self.book(count=6, class_type="3A")
        self.assertEqual(seats(self.train, "3A"), 5)
        self.assertFalse(Booking.objects.exists())

    def test_unknown_station(self):
        with self.assertRaises(StationNotFoundError):
            self.book(to_code="XYZ")
        self.assertEqual(seats(self.train, "SL"), 10)
        self.assertFalse(Booking.objects.exists())

    def test_unknown_class(self):
        with self.assertRaises(ClassUnavailableError):
            self.book(class_type="1A")
        self.assertFalse(Booking.objects.exists())

    def test_train_not_running(self):
        train = build_train(train_number="44444", running_days=[])
        with self.assertRaises(TrainNotRunningOnDateError):
            services.create_booking(
                self.user, train, "NDLS", "BPL", "SL", passenger_payload(1), self.journey_date
            )
        self.assertEqual(seats(train, "SL"), 10)

    def test_same_from_and_to(self):
        with self.assertRaises(InvalidInputException):
            self.book(from_code="NDLS", to_code="ndls")

    def test_staff_cannot_book(self):
        staff = create_passenger_user("stationadmin", is_staff=True, mobile_number="9123456780")
        with self.assertRaises(PermissionDeniedException):
            services.create_booking(
                staff, self.train, "NDLS", "BPL", "SL", passenger_payload(1), self.journey_date
            )

    def test_pnr_redrawn_on_collision(self):
        first = self.book()
        first_chars = list(first.pnr)
        with mock.patch(
            "utils.booking_helpers.random.choices",
            side_effect=[first_chars, list("ZZZZZ99999")],
        ):
            self.assertEqual(BookingHelpers.generate_unique_pnr(), "ZZZZZ99999")


class CancelBookingTest(TestCase):
    """Test cases for cancellation and refunds."""

    def setUp(self):
        cache.clear()
        self.user = create_passenger_user()
        self.train = build_train()
        self.booking = services.create_booking(
            self.user, self.train, "NDLS", "BPL", "SL", passenger_payload(2), future_date(10)
        )

    def test_cannot_cancel_unpaid_booking(self):
        with self.assertRaises(PaymentNotCompletedError):
            services.cancel_booking(self.booking.pk)
        self.assertEqual(seats(self.train, "SL"), 8)

    def test_cancel_paid_booking_refunds_and_releases(self):
        confirm_payment(self.booking.pk)
        now = self.booking.journey_start - timedelta(hours=20)

        refund = services.cancel_booking(self.booking.pk, reason="Change of plans", now=now)

        self.assertEqual(refund["refund_percentage"], 75)
        self.assertEqual(refund["refund_amount"], 724)
        self.assertEqual(refund["cancellation_charges"], 241)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.CANCELLED)
        self.assertEqual(self.booking.payment_status, PaymentStatus.REFUNDED)
        self.assertEqual(self.booking.cancellation_reason, "Change of plans")
        self.assertEqual(seats(self.train, "SL"), 10)

    def test_cancel_twice_releases_seats_once(self):
        confirm_payment(self.booking.pk)
        services.cancel_booking(self.booking.pk)
        with self.assertRaises(AlreadyCancelledError):
            services.cancel_booking(self.booking.pk)
        self.assertEqual(seats(self.train, "SL"), 10)

    def test_zero_refund_keeps_payment_completed(self):
        confirm_payment(self.booking.pk)
        now = self.booking.journey_start - timedelta(hours=1)

        refund = services.cancel_booking(self.booking.pk, now=now)

        self.assertEqual(refund["refund_amount"], 0)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.CANCELLED)
        self.assertEqual(self.booking.payment_status, PaymentStatus.COMPLETED)
        self.assertEqual(self.booking.cancellation_reason, "User requested")

    def test_cancel_other_users_booking(self):
        other = create_passenger_user("otheruser", mobile_number="9000000001")
        with self.assertRaises(NotFoundException):
            services.cancel_booking(self.booking.pk, user=other)

    def test_statistics(self):
        confirm_payment(self.booking.pk)
        services.create_booking(
            self.user, self.train, "AGC", "CSMT", "3A", passenger_payload(1), future_date(12)
        )
        stats = BookingHelpers.get_booking_statistics(Booking.objects.filter(user=self.user))
        self.assertEqual(stats["total_bookings"], 2)
        self.assertEqual(stats["pending_payments"], 1)
        self.assertEqual(stats["total_spent"], self.booking.total_price)


class BookingAPITest(APITestCase):
    """Test cases for the booking endpoints."""

    def setUp(self):
        cache.clear()
        self.user = create_passenger_user()
        self.train = build_train()
        self.client.force_authenticate(user=self.user)
        self.payload = {
            "train_number": "12951",
            "from_station_code": "NDLS",
            "to_station_code": "BPL",
            "class_type": "SL",
            "journey_date": future_date(10).isoformat(),
            "passengers": passenger_payload(2),
            "contact_phone": "9876543210",
            "meal_preference": "Vegetarian",
        }

    def create(self, **overrides):
        return self.client.post("/api/bookings/", dict(self.payload, **overrides), format="json")

    def test_create_booking(self):
        response = self.create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["total_price"], 965)
        self.assertEqual(response.data["booking"]["special_requests"]["meal_preference"], "Vegetarian")
        self.assertEqual(seats(self.train, "SL"), 8)

    def test_too_many_passengers(self):
        response = self.create(passengers=passenger_payload(7))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Booking.objects.exists())

    def test_passenger_name_must_be_letters(self):
        response = self.create(passengers=[{"name": "R2D2", "age": 30, "gender": "Male"}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_journey_date_in_past(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        response = self.create(journey_date=yesterday.isoformat())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_train(self):
        response = self.create(train_number="99999")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_insufficient_seats_returns_conflict(self):
        response = self.create(class_type="3A", passengers=passenger_payload(6))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(seats(self.train, "3A"), 5)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.create()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_staff_cannot_create(self):
        staff = create_passenger_user("stationadmin", is_staff=True, mobile_number="9123456780")
        self.client.force_authenticate(user=staff)
        response = self.create()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_includes_statistics(self):
        self.create()
        response = self.client.get("/api/bookings/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_bookings"], 1)
        self.assertEqual(len(response.data["bookings"]), 1)

    def test_cannot_see_other_users_booking(self):
        booking_id = self.create().data["booking"]["id"]
        other = create_passenger_user("otheruser", mobile_number="9000000001")
        self.client.force_authenticate(user=other)
        response = self.client.get(f"/api/bookings/{booking_id}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_partial_update_contact_details(self):
        booking_id = self.create().data["booking"]["id"]
        response = self.client.patch(
            f"/api/bookings/{booking_id}/", {"contact_phone": "9123456789"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["contact_phone"], "9123456789")

    def test_partial_update_without_allowed_fields(self):
        booking_id = self.create().data["booking"]["id"]
        response = self.client.patch(
            f"/api/bookings/{booking_id}/", {"class_type": "3A"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_update_and_delete_not_allowed(self):
        booking_id = self.create().data["booking"]["id"]
        put = self.client.put(f"/api/bookings/{booking_id}/", self.payload, format="json")
        delete = self.client.delete(f"/api/bookings/{booking_id}/")
        self.assertEqual(put.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertEqual(delete.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_cancel_pending_booking_rejected(self):
        booking_id = self.create().data["booking"]["id"]
        response = self.client.post(f"/api/bookings/{booking_id}/cancel/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_paid_booking(self):
        booking_id = self.create().data["booking"]["id"]
        confirm_payment(booking_id)
        response = self.client.post(
            f"/api/bookings/{booking_id}/cancel/", {"reason": "Plans changed"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["refund_details"]["refund_percentage"], 90)
        self.assertEqual(response.data["booking"]["status"], BookingStatus.CANCELLED)
        self.assertEqual(seats(self.train, "SL"), 10)

        again = self.client.post(f"/api/bookings/{booking_id}/cancel/", {}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

    def test_upcoming_and_history(self):
        self.create()
        upcoming = self.client.get("/api/bookings/upcoming/")
        history = self.client.get("/api/bookings/history/", {"limit": 5})
        self.assertEqual(upcoming.data["count"], 1)
        self.assertEqual(history.data["count"], 1)

    def test_pnr_lookup_is_public(self):
        pnr = self.create().data["pnr"]
        self.client.force_authenticate(user=None)
        response = self.client.get(f"/api/bookings/pnr/{pnr}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["passengers"]), 2)

    def test_unknown_pnr(self):
        response = self.client.get("/api/bookings/pnr/ABCDE12345/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
