from rest_framework import serializers
from .models import PaymentTransaction
from utils.validators import PaymentValidators


class PaymentTransactionSerializer(serializers.ModelSerializer):
    """
    Serializer for PaymentTransaction model.
    """

    booking_id = serializers.IntegerField(source="booking.id", read_only=True)
    pnr = serializers.CharField(source="booking.pnr", read_only=True)

    class Meta:
        model = PaymentTransaction
        fields = [
            "payment_id",
            "booking_id",
            "pnr",
            "amount",
            "currency",
            "payment_method",
            "status",
            "expires_at",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


class InitiatePaymentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    payment_method = serializers.CharField()

    def validate_payment_method(self, value):
        """
        Validates that the payment method is CARD or UPI.
        Uses centralized validator.
        """
        return PaymentValidators.validate_payment_method(value)


class CardPaymentSerializer(serializers.Serializer):
    payment_id = serializers.CharField(max_length=50)
    card_number = serializers.CharField(max_length=23)
    expiry_month = serializers.CharField(max_length=2)
    expiry_year = serializers.CharField(max_length=4)
    cvv = serializers.CharField(max_length=4, write_only=True)
    cardholder_name = serializers.CharField(max_length=100)


class RefundSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    reason = serializers.CharField(required=False, allow_blank=True, max_length=200)
