from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from .models import PaymentTransaction
from .serializers import (
    PaymentTransactionSerializer,
    InitiatePaymentSerializer,
    CardPaymentSerializer,
    RefundSerializer,
)
from . import services
from utils.queryset_helpers import UserSpecificQuerysetMixin
import logging

logger = logging.getLogger("payment")


class PaymentTransactionViewSet(UserSpecificQuerysetMixin, viewsets.GenericViewSet):
    """
    ViewSet for payment sessions.
    Listing returns the caller's payment history; creating opens a session.
    """

    queryset = PaymentTransaction.objects.select_related("booking")
    serializer_class = PaymentTransactionSerializer
    permission_classes = [IsAuthenticated]
    user_field = "booking__user"  # Specify the user relationship field

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        serializer = self.get_serializer(queryset, many=True)
        return Response({"payments": serializer.data, "count": len(serializer.data)})

    def create(self, request, *args, **kwargs):
        """
        Initiates a payment session for one of the caller's bookings.
        """
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.initiate_payment(
            request.user,
            serializer.validated_data["booking_id"],
            serializer.validated_data["payment_method"],
        )
        redirect_prefix = "card" if payment.payment_method == "CARD" else "upi"
        return Response(
            dict(
                PaymentTransactionSerializer(payment).data,
                redirect_url=f"/payment/{redirect_prefix}/{payment.payment_id}",
            ),
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"], url_path="card")
    def card(self, request):
        """Pay an open session by card through the mock gateway."""
        serializer = CardPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = services.process_card_payment(
            request.user,
            data["payment_id"],
            data["card_number"],
            data["expiry_month"],
            data["expiry_year"],
            data["cvv"],
        )
        return Response(result)

    @action(detail=False, methods=["post"], url_path="upi")
    def upi(self, request):
        return Response(services.process_upi_payment(request.user, request.data.get("payment_id")))

    @action(detail=False, methods=["post"], url_path="refund")
    def refund(self, request):
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.process_refund(
            request.user,
            serializer.validated_data["booking_id"],
            reason=serializer.validated_data.get("reason"),
        )
        return Response(result)

    @action(detail=False, methods=["get"], url_path=r"status/(?P<payment_id>[A-Za-z0-9_]+)")
    def payment_status(self, request, payment_id=None):
        return Response(services.payment_status(request.user, payment_id))
