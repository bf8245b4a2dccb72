import random
import string
import logging
from django.utils import timezone
from django.db.models import Count, Q, Sum
from utils.constants import BookingStatus, FareRules, PaymentStatus

logger = logging.getLogger("bookingsystem")

PNR_ALPHABET = string.ascii_uppercase + string.digits


class BookingHelpers:
    """
    Reusable helper methods for booking operations.
    Centralizes booking-related utilities to reduce redundancy.
    """

    @staticmethod
    def generate_unique_pnr():
        """
        Generate a unique 10 character PNR from A-Z and 0-9.
        Draws again until no booking, active or not, holds the value.

        Returns:
            str: Unique PNR
        """
        from bookingsystem.models import Booking

        while True:
            pnr = "".join(random.choices(PNR_ALPHABET, k=FareRules.PNR_LENGTH))
            if not Booking.all_objects.filter(pnr=pnr).exists():
                return pnr

    @staticmethod
    def get_booking_statistics(queryset):
        """
        Get booking statistics with a single aggregation query.

        Args:
            queryset: Booking queryset

        Returns:
            dict: Booking statistics
        """
        stats = queryset.aggregate(
            total=Count('id'),
            confirmed=Count('id', filter=Q(status=BookingStatus.CONFIRMED)),
            cancelled=Count('id', filter=Q(status=BookingStatus.CANCELLED)),
            pending=Count('id', filter=Q(payment_status=PaymentStatus.PENDING)),
            failed=Count('id', filter=Q(payment_status=PaymentStatus.FAILED)),
            spent=Sum('total_price', filter=Q(payment_status=PaymentStatus.COMPLETED)),
        )

        return {
            "total_bookings": stats['total'],
            "confirmed_bookings": stats['confirmed'],
            "cancelled_bookings": stats['cancelled'],
            "pending_payments": stats['pending'],
            "failed_payments": stats['failed'],
            "total_spent": stats['spent'] or 0,
        }

    @staticmethod
    def upcoming_bookings(queryset):
        """
        Bookings still to be travelled, soonest first.
        """
        return queryset.filter(
            journey_date__gte=timezone.localdate(),
            status__in=[BookingStatus.CONFIRMED, BookingStatus.RAC],
        ).order_by("journey_date")

    @staticmethod
    def booking_history(queryset, limit=10):
        return queryset.order_by("-created_at")[:limit]
