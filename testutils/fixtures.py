from datetime import time, timedelta
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.utils import timezone
from utils.constants import Choices

DEFAULT_STOPS = [
    ("NDLS", "New Delhi", None, time(16, 0), 0),
    ("AGC", "Agra Cantt", time(19, 0), time(19, 5), 200),
    ("BPL", "Bhopal Junction", time(23, 50), time(23, 55), 700),
    ("CSMT", "Mumbai CST", time(8, 30), None, 1400),
]

DEFAULT_CLASSES = [
    ("SL", 10, Decimal("100.00"), Decimal("0.50")),
    ("3A", 5, Decimal("300.00"), Decimal("1.25")),
]


def create_passenger_user(username="passenger1", **extra):
    """Creates a regular booking user for tests."""
    defaults = {
        "email": f"{username}@example.com",
        "mobile_number": "9876543210",
        "password": "StrongPass123",
    }
    defaults.update(extra)
    return get_user_model().objects.create_user(username=username, **defaults)


def build_train(train_number="12951", running_days=None, stops=None, classes=None, **extra):
    """
    Creates a train with its route and fare classes.
    Runs every day unless running_days is given.
    """
    from trains.models import Train, RouteStop, TrainClass

    train = Train.objects.create(
        train_number=train_number,
        name=extra.pop("name", "Rajdhani Express"),
        train_type=extra.pop("train_type", "Rajdhani"),
        running_days=list(Choices.WEEKDAYS) if running_days is None else running_days,
        total_distance=extra.pop("total_distance", 1400),
        duration_minutes=extra.pop("duration_minutes", 990),
        **extra,
    )
    for sequence, (code, name, arrival, departure, distance) in enumerate(stops or DEFAULT_STOPS, start=1):
        RouteStop.objects.create(
            train=train,
            sequence=sequence,
            station_code=code,
            station_name=name,
            arrival_time=arrival,
            departure_time=departure,
            distance=distance,
            day=1 if sequence < 4 else 2,
        )
    for class_type, seats, base_price, price_per_km in classes or DEFAULT_CLASSES:
        TrainClass.objects.create(
            train=train,
            class_type=class_type,
            total_seats=seats,
            available_seats=seats,
            base_price=base_price,
            price_per_km=price_per_km,
        )
    return train


def passenger_payload(count=1):
    return [
        {"name": f"Passenger {chr(65 + index)}", "age": 30 + index, "gender": "Male"}
        for index in range(count)
    ]


def future_date(days=10):
    return timezone.localdate() + timedelta(days=days)
