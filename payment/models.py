from django.db import models
from django.utils import timezone
from bookingsystem.models import Booking
from utils.constants import Choices


class PaymentTransaction(models.Model):
    """
    A payment session opened for a booking.
    Sessions start INITIATED and end SUCCESS or FAILED; a failed booking
    is paid again through a new session.
    """

    INITIATED = "INITIATED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    booking = models.ForeignKey(
        Booking, on_delete=models.CASCADE, related_name="payments"
    )
    payment_id = models.CharField(max_length=50, unique=True)
    amount = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="INR")
    payment_method = models.CharField(max_length=20, choices=Choices.PAYMENT_METHOD_CHOICES)
    status = models.CharField(
        max_length=20, choices=Choices.PAYMENT_STATUS_TRANSACTION_CHOICES, default=INITIATED
    )
    expires_at = models.DateTimeField()
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_expired(self):
        return timezone.now() > self.expires_at

    class Meta:
        db_table = "payment_transaction"
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=models.Q(status="SUCCESS"),
                name="unique_successful_payment_per_booking",
            )
        ]
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.payment_id} - {self.booking.pnr} - {self.status}"
