from django.conf import settings
from django.db import models
from utils.constants import Choices, BookingStatus, PaymentStatus
from utils.fare_helpers import FareHelpers


class ActiveBookingManager(models.Manager):
    """Manager that hides soft deleted bookings"""

    def get_queryset(self):
        return super().get_queryset().filter(is_active=True)


class Booking(models.Model):
    """
    Booking model for train reservations.

    Train and stop details are copied onto the booking when it is made so the
    ticket keeps showing what was sold even if the timetable changes later.
    status and payment_status together form the booking lifecycle:

        Created           Confirmed / Pending
        PaymentSucceeded  Confirmed / Completed
        PaymentFailed     Confirmed / Failed
        Cancelled         Cancelled / Refunded (or Completed when nothing is refunded)
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bookings')
    train = models.ForeignKey('trains.Train', on_delete=models.PROTECT, related_name='bookings')
    pnr = models.CharField(max_length=10, unique=True, db_index=True)

    # Journey snapshot
    train_number = models.CharField(max_length=5)
    train_name = models.CharField(max_length=100)
    from_station_code = models.CharField(max_length=10)
    from_station_name = models.CharField(max_length=100)
    from_departure_time = models.TimeField(null=True, blank=True)
    from_platform = models.CharField(max_length=10, default="TBD")
    to_station_code = models.CharField(max_length=10)
    to_station_name = models.CharField(max_length=100)
    to_arrival_time = models.TimeField(null=True, blank=True)
    to_platform = models.CharField(max_length=10, default="TBD")
    journey_date = models.DateField(db_index=True)
    class_type = models.CharField(max_length=3, choices=Choices.CLASS_TYPE_CHOICES)
    class_name = models.CharField(max_length=30)
    passenger_count = models.PositiveSmallIntegerField()

    # Price breakdown, total_price = base_fare + taxes + convenience_fee - discount
    total_price = models.PositiveIntegerField()
    base_fare = models.PositiveIntegerField()
    taxes = models.PositiveIntegerField(default=0)
    convenience_fee = models.PositiveIntegerField(default=0)
    discount = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20, choices=Choices.BOOKING_STATUS_CHOICES, default=BookingStatus.CONFIRMED
    )
    payment_status = models.CharField(
        max_length=20, choices=Choices.PAYMENT_STATUS_CHOICES, default=PaymentStatus.PENDING
    )
    payment_id = models.CharField(max_length=50, blank=True, default="")

    # Cancellation
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refund_amount = models.PositiveIntegerField(default=0)
    cancellation_charges = models.PositiveIntegerField(default=0)
    cancellation_reason = models.CharField(max_length=200, blank=True, default="")

    # Contact details and special requests
    contact_email = models.EmailField()
    contact_phone = models.CharField(max_length=15)
    wheelchair_assistance = models.BooleanField(default=False)
    meal_preference = models.CharField(
        max_length=20, choices=Choices.MEAL_PREFERENCE_CHOICES, default="None"
    )
    other_requests = models.CharField(max_length=500, blank=True, default="")

    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveBookingManager()
    all_objects = models.Manager()

    @property
    def journey_start(self):
        return FareHelpers.journey_start(self.journey_date)

    @property
    def is_cancelled(self):
        return self.status == BookingStatus.CANCELLED

    def calculate_refund(self, now=None):
        return FareHelpers.calculate_refund(self.total_price, self.journey_start, now=now)

    def __str__(self):
        return f"PNR: {self.pnr} - {self.train_number} {self.class_type} - {self.user.username}"

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Booking'
        verbose_name_plural = 'Bookings'
        db_table = 'booking'
        indexes = [
            models.Index(fields=['user', 'journey_date']),
            models.Index(fields=['status', 'payment_status']),
        ]


class Passenger(models.Model):
    """
    A traveller on a booking. Seat and coach are assigned at chart preparation.
    """

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='passengers')
    name = models.CharField(max_length=50)
    age = models.PositiveSmallIntegerField()
    gender = models.CharField(max_length=10, choices=Choices.GENDER_CHOICES)
    berth_preference = models.CharField(
        max_length=20, choices=Choices.BERTH_PREFERENCE_CHOICES, default="No Preference"
    )
    seat_number = models.CharField(max_length=10, blank=True, default="")
    coach_number = models.CharField(max_length=10, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.age}, {self.gender})"

    class Meta:
        db_table = 'passenger'
        ordering = ['id']
