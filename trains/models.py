from django.db import models
from django.db.models import F, Q
import random
from utils.constants import Choices
from utils.validators import TrainValidators


class ActiveManager(models.Manager):
    """Manager that returns only active records"""

    def get_queryset(self):
        return super().get_queryset().filter(is_active=True)


class Train(models.Model):
    """
    Represents a train with its number, name, type, running days, and status.
    Route stops and fare classes hang off the train as related rows.
    Supports soft delete via is_active.
    """

    train_number = models.CharField(max_length=5, unique=True, blank=True, db_index=True)
    name = models.CharField(max_length=100)
    train_type = models.CharField(
        max_length=20,
        choices=Choices.TRAIN_TYPE_CHOICES,
        default="Express",
        db_index=True
        )
    running_days = models.JSONField(default=list, blank=True)
    total_distance = models.PositiveIntegerField(default=0)
    duration_minutes = models.PositiveIntegerField(default=0)
    pantry_available = models.BooleanField(default=False)
    wifi_available = models.BooleanField(default=False)
    is_active = models.BooleanField(
        default=True, help_text="Indicates if the train is active or soft deleted", db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Managers
    objects = ActiveManager()  # Returns only active records
    all_objects = models.Manager()  # Returns all records including inactive

    def generate_train_number(self):
        """
        Generates a unique 5-digit train number for new trains.
        """
        while True:
            train_number = str(random.randint(10000, 99999))
            if not Train.all_objects.filter(train_number=train_number).exists():
                return train_number

    def clean(self):
        TrainValidators.validate_running_days(self.running_days)
        if self.pk and self.stops.exists():
            TrainValidators.validate_route_stops(
                list(self.stops.order_by("sequence").values_list("distance", flat=True))
            )

    def save(self, *args, **kwargs):
        """
        Saves the train, auto-generating a train number if needed.
        """
        if not self.train_number:
            self.train_number = self.generate_train_number()

        super().save(*args, **kwargs)

    def runs_on_day(self, day_name):
        return day_name in (self.running_days or [])

    def runs_on(self, journey_date):
        return self.runs_on_day(Choices.WEEKDAYS[journey_date.weekday()])

    @property
    def formatted_duration(self):
        hours, minutes = divmod(self.duration_minutes, 60)
        return f"{hours}h {minutes}m"

    @property
    def source(self):
        return self.stops.first()

    @property
    def destination(self):
        return self.stops.last()

    def __str__(self):
        status = " (Inactive)" if not self.is_active else ""
        return f"{self.name} ({self.train_number}){status}"

    class Meta:
        db_table = "trains"
        verbose_name = "Train"
        verbose_name_plural = "Trains"
        ordering = ["train_number"]
        indexes = [
            models.Index(fields=['train_number', 'is_active']),
            models.Index(fields=['train_type', 'is_active']),
        ]


class RouteStop(models.Model):
    """
    A stop on a train's route.
    distance is cumulative from the origin and strictly increases with sequence.
    """

    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name="stops")
    sequence = models.PositiveSmallIntegerField()
    station_code = models.CharField(max_length=10, db_index=True)
    station_name = models.CharField(max_length=100)
    arrival_time = models.TimeField(null=True, blank=True)
    departure_time = models.TimeField(null=True, blank=True)
    platform = models.CharField(max_length=10, default="TBD")
    distance = models.PositiveIntegerField(help_text="Cumulative distance from origin in km")
    day = models.PositiveSmallIntegerField(default=1)
    halt_minutes = models.PositiveSmallIntegerField(default=2)

    def clean(self):
        if not self.train_id or self.distance is None or self.sequence is None:
            return
        others = RouteStop.objects.filter(train_id=self.train_id).exclude(pk=self.pk)
        previous_stop = others.filter(sequence__lt=self.sequence).order_by("-sequence").first()
        next_stop = others.filter(sequence__gt=self.sequence).order_by("sequence").first()
        TrainValidators.validate_stop_position(
            self.distance,
            previous_distance=previous_stop.distance if previous_stop else None,
            next_distance=next_stop.distance if next_stop else None,
        )

    def save(self, *args, **kwargs):
        self.station_code = self.station_code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.station_name} ({self.station_code}) - {self.distance} km"

    class Meta:
        db_table = "route_stops"
        ordering = ["train", "sequence"]
        constraints = [
            models.UniqueConstraint(fields=["train", "sequence"], name="unique_stop_sequence_per_train"),
            models.UniqueConstraint(fields=["train", "station_code"], name="unique_station_per_train"),
        ]


class TrainClass(models.Model):
    """
    A fare class carried by a train, with its seat inventory and pricing.
    available_seats is only changed through utils.inventory_helpers.SeatInventory.
    """

    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name="classes")
    class_type = models.CharField(max_length=3, choices=Choices.CLASS_TYPE_CHOICES)
    name = models.CharField(max_length=30)
    total_seats = models.PositiveIntegerField()
    available_seats = models.PositiveIntegerField()
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    price_per_km = models.DecimalField(max_digits=8, decimal_places=2)
    amenities = models.JSONField(default=list, blank=True)

    def clean(self):
        TrainValidators.validate_seat_counts(self.total_seats, self.available_seats)

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = dict(Choices.CLASS_TYPE_CHOICES).get(self.class_type, self.class_type)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.train.train_number} {self.class_type} ({self.available_seats}/{self.total_seats})"

    class Meta:
        db_table = "train_classes"
        ordering = ["train", "class_type"]
        constraints = [
            models.UniqueConstraint(fields=["train", "class_type"], name="unique_class_per_train"),
            models.CheckConstraint(
                condition=Q(available_seats__lte=F("total_seats")),
                name="available_seats_within_total",
            ),
        ]
