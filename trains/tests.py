from datetime import date, timedelta
from decimal import Decimal
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from .models import RouteStop, Train, TrainClass
from utils.fare_helpers import FareHelpers, round_half_up
from utils.inventory_helpers import SeatInventory
from utils.cache_helpers import CacheHelpers
from utils.train_helpers import TrainDirectoryHelpers
from utils.validators import TrainValidators
from testutils.fixtures import build_train, future_date
from exceptions.handlers import (
    ClassUnavailableError,
    InsufficientSeatsError,
    InvalidInputException,
    StationNotFoundError,
)


def next_weekday(weekday):
    """Next date after today falling on weekday (Monday is 0)."""
    today = timezone.localdate()
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


class FareCalculationTest(TestCase):
    """Test cases for per-passenger fares and price breakdowns."""

    def setUp(self):
        self.train = build_train()

    def test_fare_is_base_plus_distance_times_rate(self):
        """Test fare NDLS->BPL in SL: 100 + 700 * 0.50."""
        self.assertEqual(FareHelpers.compute_fare(self.train, "NDLS", "BPL", "SL"), 450)
        self.assertEqual(FareHelpers.compute_fare(self.train, "NDLS", "CSMT", "3A"), 2050)

    def test_fare_is_symmetric(self):
        """Test that swapping stations gives the same fare."""
        forward = FareHelpers.compute_fare(self.train, "AGC", "CSMT", "3A")
        backward = FareHelpers.compute_fare(self.train, "CSMT", "AGC", "3A")
        self.assertEqual(forward, backward)

    def test_station_codes_are_case_insensitive(self):
        self.assertEqual(FareHelpers.compute_fare(self.train, "ndls", "bpl", "sl"), 450)

    def test_unknown_station_raises(self):
        with self.assertRaises(StationNotFoundError):
            FareHelpers.compute_fare(self.train, "NDLS", "XYZ", "SL")

    def test_unknown_class_raises(self):
        with self.assertRaises(ClassUnavailableError):
            FareHelpers.compute_fare(self.train, "NDLS", "BPL", "1A")

    def test_fare_rounds_half_up(self):
        """Test that 10.5 rounds to 11, not to the even 10."""
        train = build_train(
            train_number="11111",
            stops=[("AAA", "Alpha", None, None, 0), ("BBB", "Bravo", None, None, 1)],
            classes=[("GEN", 50, Decimal("10.00"), Decimal("0.50"))],
        )
        self.assertEqual(FareHelpers.compute_fare(train, "AAA", "BBB", "GEN"), 11)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(Decimal("22.5")), 23)
        self.assertEqual(round_half_up(Decimal("22.49")), 22)
        self.assertEqual(round_half_up(2.5), 3)

    def test_price_breakdown(self):
        """Test total = base + 5% tax + 20 convenience fee."""
        breakdown = FareHelpers.price_breakdown(450, 2)
        self.assertEqual(breakdown, {
            "base_fare": 900,
            "taxes": 45,
            "convenience_fee": 20,
            "discount": 0,
            "total_price": 965,
        })

    def test_price_breakdown_rounds_taxes_half_up(self):
        breakdown = FareHelpers.price_breakdown(450, 1)
        self.assertEqual(breakdown["taxes"], 23)
        self.assertEqual(breakdown["total_price"], 493)

    def test_reward_points_are_floored(self):
        self.assertEqual(FareHelpers.reward_points_for(965), 48)
        self.assertEqual(FareHelpers.reward_points_for(493), 24)
        self.assertEqual(FareHelpers.reward_points_for(19), 0)


class RefundTierTest(TestCase):
    """Test cases for the refund tiers."""

    def setUp(self):
        self.journey_start = FareHelpers.journey_start(future_date(10))

    def refund_at(self, hours_before, total=1000):
        now = self.journey_start - timedelta(hours=hours_before)
        return FareHelpers.calculate_refund(total, self.journey_start, now=now)

    def test_more_than_48_hours_refunds_90_percent(self):
        self.assertEqual(
            self.refund_at(49),
            {"refund_amount": 900, "cancellation_charges": 100, "refund_percentage": 90},
        )

    def test_tier_boundaries_are_exclusive(self):
        """Test that exactly 48, 12 and 4 hours fall into the lower tier."""
        self.assertEqual(self.refund_at(48)["refund_percentage"], 75)
        self.assertEqual(self.refund_at(12)["refund_percentage"], 50)
        self.assertEqual(self.refund_at(4)["refund_percentage"], 0)

    def test_middle_tiers(self):
        self.assertEqual(self.refund_at(13)["refund_amount"], 750)
        self.assertEqual(self.refund_at(5)["refund_amount"], 500)

    def test_after_departure_refunds_nothing(self):
        result = self.refund_at(-10)
        self.assertEqual(result["refund_amount"], 0)
        self.assertEqual(result["cancellation_charges"], 1000)

    def test_refund_plus_charges_equals_total(self):
        for hours in (100, 30, 6, 1):
            result = self.refund_at(hours, total=965)
            self.assertEqual(result["refund_amount"] + result["cancellation_charges"], 965)

    def test_refund_rounds_half_up(self):
        """Test 965 * 0.75 = 723.75 refunds 724."""
        self.assertEqual(self.refund_at(20, total=965)["refund_amount"], 724)


class SeatInventoryTest(TestCase):
    """Test cases for seat reservation and release."""

    def setUp(self):
        self.train = build_train()
        self.sleeper = TrainClass.objects.get(train=self.train, class_type="SL")

    def test_reserve_decrements_seats(self):
        SeatInventory.reserve(self.sleeper, 3)
        self.sleeper.refresh_from_db()
        self.assertEqual(self.sleeper.available_seats, 7)

    def test_reserve_more_than_available_changes_nothing(self):
        with self.assertRaises(InsufficientSeatsError):
            SeatInventory.reserve(self.sleeper, 11)
        self.sleeper.refresh_from_db()
        self.assertEqual(self.sleeper.available_seats, 10)

    def test_reserve_rejects_non_positive_count(self):
        with self.assertRaises(InvalidInputException):
            SeatInventory.reserve(self.sleeper, 0)

    def test_stale_instance_cannot_oversell(self):
        """Test that a second holder of a stale row loses the last seat."""
        TrainClass.objects.filter(pk=self.sleeper.pk).update(available_seats=1)
        first = TrainClass.objects.get(pk=self.sleeper.pk)
        second = TrainClass.objects.get(pk=self.sleeper.pk)

        SeatInventory.reserve(first, 1)
        with self.assertRaises(InsufficientSeatsError):
            SeatInventory.reserve(second, 1)

        self.sleeper.refresh_from_db()
        self.assertEqual(self.sleeper.available_seats, 0)

    def test_k_reservations_against_k_minus_one_seats(self):
        """Test that K single-seat reserves on K-1 seats give exactly one failure."""
        k = 5
        TrainClass.objects.filter(pk=self.sleeper.pk).update(available_seats=k - 1)
        holders = [TrainClass.objects.get(pk=self.sleeper.pk) for _ in range(k)]

        successes, failures = 0, 0
        for holder in holders:
            try:
                SeatInventory.reserve(holder, 1)
                successes += 1
            except InsufficientSeatsError:
                failures += 1

        self.assertEqual(successes, k - 1)
        self.assertEqual(failures, 1)
        self.sleeper.refresh_from_db()
        self.assertEqual(self.sleeper.available_seats, 0)

    def test_release_is_clamped_to_total(self):
        SeatInventory.reserve(self.sleeper, 1)
        SeatInventory.release(self.sleeper, 5)
        self.sleeper.refresh_from_db()
        self.assertEqual(self.sleeper.available_seats, 10)

    def test_available_seats_cannot_exceed_total_in_database(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                TrainClass.objects.filter(pk=self.sleeper.pk).update(available_seats=11)


class TrainModelTest(TestCase):
    """Test cases for Train model behaviour."""

    def test_train_number_is_generated(self):
        train = Train.objects.create(name="Intercity Express", running_days=["Monday"])
        self.assertEqual(len(train.train_number), 5)
        self.assertTrue(train.train_number.isdigit())

    def test_runs_on_uses_weekday_name(self):
        train = build_train(running_days=["Monday"])
        self.assertTrue(train.runs_on(next_weekday(0)))
        self.assertFalse(train.runs_on(next_weekday(1)))

    def test_invalid_running_day_fails_clean(self):
        train = Train(name="Bad Days", running_days=["Funday"])
        with self.assertRaises(ValidationError):
            train.clean()

    def test_station_code_is_uppercased(self):
        train = build_train(stops=[("ndls", "New Delhi", None, None, 0), ("agc", "Agra", None, None, 200)])
        self.assertEqual(
            list(train.stops.values_list("station_code", flat=True)), ["NDLS", "AGC"]
        )

    def test_route_out_of_order_fails_full_clean(self):
        """Test that a route whose distances go backwards is rejected."""
        train = build_train(stops=[
            ("AAA", "Alpha", None, None, 0),
            ("BBB", "Bravo", None, None, 500),
            ("CCC", "Charlie", None, None, 300),
        ])
        with self.assertRaises(ValidationError):
            train.full_clean()
        with self.assertRaises(ValidationError):
            train.stops.get(station_code="CCC").full_clean()
        with self.assertRaises(ValidationError):
            train.stops.get(station_code="BBB").full_clean()
        train.stops.get(station_code="AAA").full_clean()

    def test_valid_route_passes_full_clean(self):
        train = build_train()
        train.full_clean()
        for stop in train.stops.all():
            stop.full_clean()

    def test_new_stop_must_fit_between_neighbours(self):
        train = build_train()
        stop = RouteStop(
            train=train, sequence=5, station_code="PUNE", station_name="Pune", distance=1300
        )
        with self.assertRaises(ValidationError):
            stop.full_clean()
        stop.distance = 1600
        stop.full_clean()

    def test_soft_deleted_train_is_hidden(self):
        train = build_train()
        train.is_active = False
        train.save()
        self.assertFalse(Train.objects.filter(pk=train.pk).exists())
        self.assertTrue(Train.all_objects.filter(pk=train.pk).exists())


class TrainValidatorsTest(TestCase):

    def test_route_distances_must_increase(self):
        TrainValidators.validate_route_stops([0, 100, 250])
        with self.assertRaises(ValidationError):
            TrainValidators.validate_route_stops([0, 100, 100])
        with self.assertRaises(ValidationError):
            TrainValidators.validate_route_stops([0])

    def test_parse_date(self):
        self.assertEqual(TrainValidators.parse_date("2030-01-15"), date(2030, 1, 15))
        with self.assertRaises(InvalidInputException):
            TrainValidators.parse_date("15/01/2030")


class TrainCacheTest(TestCase):
    """Test cases for the cached train directory."""

    def setUp(self):
        cache.clear()
        self.train = build_train()
        self.journey_date = future_date(5)

    def test_get_or_set_calls_producer_once(self):
        calls = []

        def producer():
            calls.append(1)
            return ["value"]

        self.assertEqual(CacheHelpers.get_or_set("test:key", producer, 60), ["value"])
        self.assertEqual(CacheHelpers.get_or_set("test:key", producer, 60), ["value"])
        self.assertEqual(len(calls), 1)

    def test_seat_change_invalidates_search(self):
        """Test that a reservation is visible in the next search."""
        results = TrainDirectoryHelpers.search_trains("NDLS", "BPL", self.journey_date)
        sleeper = next(c for c in results[0]["classes"] if c["class_type"] == "SL")
        self.assertEqual(sleeper["available_seats"], 10)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            SeatInventory.reserve(TrainClass.objects.get(train=self.train, class_type="SL"), 2)
        self.assertEqual(len(callbacks), 1)

        results = TrainDirectoryHelpers.search_trains("NDLS", "BPL", self.journey_date)
        sleeper = next(c for c in results[0]["classes"] if c["class_type"] == "SL")
        self.assertEqual(sleeper["available_seats"], 8)

    def test_invalidation_waits_for_commit(self):
        """Test that the cache version moves only when the seat change commits."""
        version = CacheHelpers.train_cache_version()
        with self.captureOnCommitCallbacks(execute=True):
            with transaction.atomic():
                SeatInventory.reserve(TrainClass.objects.get(train=self.train, class_type="SL"), 2)
                self.assertEqual(CacheHelpers.train_cache_version(), version)
        self.assertEqual(CacheHelpers.train_cache_version(), version + 1)

    def test_rolled_back_reservation_keeps_cached_search(self):
        """Test that a rolled back seat change leaves the cached search intact."""
        TrainDirectoryHelpers.search_trains("NDLS", "BPL", self.journey_date)
        version = CacheHelpers.train_cache_version()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(IntegrityError):
                with transaction.atomic():
                    SeatInventory.reserve(TrainClass.objects.get(train=self.train, class_type="SL"), 2)
                    raise IntegrityError("booking insert failed")

        self.assertEqual(callbacks, [])
        self.assertEqual(CacheHelpers.train_cache_version(), version)
        results = TrainDirectoryHelpers.search_trains("NDLS", "BPL", self.journey_date)
        sleeper = next(c for c in results[0]["classes"] if c["class_type"] == "SL")
        self.assertEqual(sleeper["available_seats"], 10)
        self.assertEqual(TrainClass.objects.get(train=self.train, class_type="SL").available_seats, 10)

    def test_directory_change_invalidates_on_commit(self):
        version = CacheHelpers.train_cache_version()
        with self.captureOnCommitCallbacks(execute=True):
            TrainClass.objects.filter(train=self.train, class_type="3A").first().save()
        self.assertEqual(CacheHelpers.train_cache_version(), version + 1)

    def test_version_bump_changes_keys(self):
        before = CacheHelpers.stations_key()
        CacheHelpers.bump_train_cache_version()
        self.assertNotEqual(before, CacheHelpers.stations_key())


class TrainDirectoryAPITest(APITestCase):
    """Test cases for the public train endpoints."""

    def setUp(self):
        cache.clear()
        self.train = build_train()
        self.journey_date = future_date(7)

    def test_list_trains(self):
        response = self.client.get("/api/trains/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]["train_number"], "12951")
        self.assertEqual(response.data[0]["source"], "NDLS")
        self.assertEqual(response.data[0]["destination"], "CSMT")

    def test_train_detail_includes_route_and_classes(self):
        response = self.client.get("/api/trains/12951/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["stops"]), 4)
        self.assertEqual(len(response.data["classes"]), 2)

    def test_unknown_train_returns_404(self):
        response = self.client.get("/api/trains/99999/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data["success"])

    def test_search_finds_train_in_direction_of_travel(self):
        response = self.client.get(
            "/api/trains/search/", {"from": "ndls", "to": "BPL", "date": self.journey_date.isoformat()}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        trip = response.data["trains"][0]
        self.assertEqual(trip["journey_details"]["distance"], 700)
        prices = {c["class_type"]: c["price"] for c in trip["classes"]}
        self.assertEqual(prices["SL"], 450)

    def test_search_ignores_reverse_direction(self):
        response = self.client.get(
            "/api/trains/search/", {"from": "BPL", "to": "NDLS", "date": self.journey_date.isoformat()}
        )
        self.assertEqual(response.data["count"], 0)

    def test_search_skips_trains_not_running_that_day(self):
        build_train(train_number="22222", running_days=["Monday"])
        response = self.client.get(
            "/api/trains/search/", {"from": "NDLS", "to": "BPL", "date": next_weekday(1).isoformat()}
        )
        numbers = [t["train_number"] for t in response.data["trains"]]
        self.assertEqual(numbers, ["12951"])

    def test_search_requires_params(self):
        response = self.client.get("/api/trains/search/", {"from": "NDLS"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_rejects_bad_date(self):
        response = self.client.get("/api/trains/search/", {"from": "NDLS", "to": "BPL", "date": "tomorrow"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stations_sorted_by_name(self):
        response = self.client.get("/api/trains/stations/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [s["code"] for s in response.data], ["AGC", "BPL", "CSMT", "NDLS"]
        )

    def test_schedule(self):
        response = self.client.get("/api/trains/12951/schedule/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["route"][1]["arrival_time"], "19:00")
        self.assertEqual(response.data["duration"], "16h 30m")

    def test_availability(self):
        response = self.client.get(
            "/api/trains/12951/availability/",
            {"date": self.journey_date.isoformat(), "from": "NDLS", "to": "AGC"},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        third_ac = next(a for a in response.data["availability"] if a["class_type"] == "3A")
        self.assertEqual(third_ac["price"], 550)
        self.assertEqual(third_ac["status"], "Available")

    def test_availability_on_non_running_day(self):
        build_train(train_number="33333", running_days=["Monday"])
        response = self.client.get(
            "/api/trains/33333/availability/",
            {"date": next_weekday(2).isoformat(), "from": "NDLS", "to": "AGC"},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_fare_quote(self):
        response = self.client.get(
            "/api/trains/12951/fare/", {"from": "BPL", "to": "NDLS", "class_type": "SL"}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["fare"], 450)

    def test_fare_quote_for_missing_class(self):
        response = self.client.get(
            "/api/trains/12951/fare/", {"from": "NDLS", "to": "BPL", "class_type": "1A"}
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
