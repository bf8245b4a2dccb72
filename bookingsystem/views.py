import logging
from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.decorators import action
from django.http import Http404
from django.shortcuts import get_object_or_404
from .models import Booking
from .serializers import (
    BookingSerializer,
    BookingCreateSerializer,
    BookingSummarySerializer,
    BookingUpdateSerializer,
    CancelBookingSerializer,
)
from . import services
from utils.queryset_helpers import UserFilterableQuerysetMixin
from utils.booking_helpers import BookingHelpers
from utils.constants import BookingMessage
from exceptions.handlers import (
    NotFoundException,
    MethodNotAllowedException,
)

logger = logging.getLogger("bookingsystem")


class IsRegularUser(IsAuthenticated):
    def has_permission(self, request, view):
        is_authenticated = super().has_permission(request, view)
        if view.action == "create":
            return is_authenticated and not (
                request.user.is_staff or request.user.is_superuser
            )
        return is_authenticated


class BookingViewSet(UserFilterableQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing bookings.
    Creation and cancellation go through bookingsystem.services so the
    seat inventory and the booking row always change together.
    """

    queryset = Booking.objects.prefetch_related("passengers")
    serializer_class = BookingSerializer
    permission_classes = [IsRegularUser]
    user_field = "user"  # Specify the user field
    filter_fields = ["status", "payment_status"]  # Fields to filter by query parameters
    default_ordering = ["-created_at"]  # Specify default ordering

    def get_serializer_class(self):
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "partial_update":
            return BookingUpdateSerializer
        if self.action in ["list", "upcoming", "history"]:
            return BookingSummarySerializer
        return BookingSerializer

    def create(self, request, *args, **kwargs):
        """
        Handles booking creation requests.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = services.create_booking(
            user=request.user,
            train=data["train"],
            from_code=data["from_station_code"],
            to_code=data["to_station_code"],
            class_type=data["class_type"],
            passengers=data["passengers"],
            journey_date=data["journey_date"],
            contact_email=data.get("contact_email"),
            contact_phone=data.get("contact_phone"),
            special_requests={
                "wheelchair_assistance": data.get("wheelchair_assistance", False),
                "meal_preference": data.get("meal_preference", "None"),
                "other_requests": data.get("other_requests", ""),
            },
        )

        return Response(
            {
                "message": "Booking created successfully! Please complete the payment.",
                "pnr": booking.pnr,
                "total_price": booking.total_price,
                "payment_required": True,
                "booking": BookingSerializer(booking).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def list(self, request, *args, **kwargs):
        """
        Lists bookings with statistics.
        """
        queryset = self.get_queryset()
        serializer = self.get_serializer(queryset, many=True)
        stats = BookingHelpers.get_booking_statistics(queryset)
        return Response(dict(stats, bookings=serializer.data))

    def update(self, request, *args, **kwargs):
        if not kwargs.get("partial", False):
            raise MethodNotAllowedException(BookingMessage.UPDATE_NOT_ALLOWED)
        booking = self.get_object()
        serializer = self.get_serializer(booking, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        services.update_booking_details(booking, serializer.validated_data)
        return Response(BookingSerializer(booking).data)

    def destroy(self, request, *args, **kwargs):
        raise MethodNotAllowedException(BookingMessage.DELETE_NOT_ALLOWED)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        """Cancel a paid booking and return the refund details."""
        booking = self.get_object()
        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund = services.cancel_booking(
            booking.pk, reason=serializer.validated_data.get("reason"), user=booking.user
        )
        booking.refresh_from_db()
        return Response(
            {
                "message": "Booking cancelled successfully.",
                "booking": BookingSummarySerializer(booking).data,
                "refund_details": refund,
            }
        )

    @action(detail=False, methods=["get"], url_path="upcoming")
    def upcoming(self, request):
        bookings = BookingHelpers.upcoming_bookings(self.get_queryset())
        serializer = self.get_serializer(bookings, many=True)
        return Response({"bookings": serializer.data, "count": len(serializer.data)})

    @action(detail=False, methods=["get"], url_path="history")
    def history(self, request):
        try:
            limit = max(int(request.query_params.get("limit", 10)), 1)
        except ValueError:
            limit = 10
        bookings = BookingHelpers.booking_history(self.get_queryset(), limit=limit)
        serializer = self.get_serializer(bookings, many=True)
        return Response({"bookings": serializer.data, "count": len(serializer.data)})

    @action(detail=False, methods=["get"], url_path=r"pnr/(?P<pnr>[A-Za-z0-9]+)",
            permission_classes=[AllowAny])
    def by_pnr(self, request, pnr=None):
        """Public PNR status lookup."""
        booking = Booking.objects.prefetch_related("passengers").filter(pnr=pnr.upper()).first()
        if booking is None:
            logger.error(f"Booking not found with PNR {pnr}")
            raise NotFoundException(BookingMessage.BOOKING_NOT_FOUND_WITH_PNR)
        return Response(BookingSerializer(booking).data)

    def get_object(self):
        """Get booking object with user-specific access"""
        queryset = self.get_queryset()
        lookup_url_kwarg = self.lookup_url_kwarg or self.lookup_field
        filter_kwargs = {self.lookup_field: self.kwargs[lookup_url_kwarg]}
        try:
            obj = get_object_or_404(queryset, **filter_kwargs)
        except Http404:
            raise NotFoundException(BookingMessage.BOOKING_NOT_FOUND)
        self.check_object_permissions(self.request, obj)
        return obj
