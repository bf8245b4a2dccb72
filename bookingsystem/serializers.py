from django.conf import settings
from rest_framework import serializers
from .models import Booking, Passenger
from trains.models import Train
from utils.validators import BookingValidators, UserFieldValidators
from utils.constants import BookingMessage, Choices, TrainMessage
from exceptions.handlers import NotFoundException


class PassengerSerializer(serializers.ModelSerializer):
    """
    Serializes a passenger. Seat and coach are assigned later and read-only here.
    """

    name = serializers.CharField(min_length=2, max_length=50)
    age = serializers.IntegerField(min_value=1, max_value=120)

    class Meta:
        model = Passenger
        fields = ["name", "age", "gender", "berth_preference", "seat_number", "coach_number"]
        read_only_fields = ["seat_number", "coach_number"]

    def validate_name(self, value):
        return BookingValidators.validate_passenger_name(value)


class BookingCreateSerializer(serializers.Serializer):
    """
    Validates a booking request before it reaches the booking service.
    """

    train_number = serializers.CharField(max_length=5)
    from_station_code = serializers.CharField(max_length=10)
    to_station_code = serializers.CharField(max_length=10)
    class_type = serializers.ChoiceField(choices=Choices.CLASS_TYPE_CHOICES)
    journey_date = serializers.DateField()
    passengers = PassengerSerializer(many=True)
    contact_email = serializers.EmailField(required=False)
    contact_phone = serializers.CharField(required=False, max_length=15)
    wheelchair_assistance = serializers.BooleanField(required=False, default=False)
    meal_preference = serializers.ChoiceField(
        choices=Choices.MEAL_PREFERENCE_CHOICES, required=False, default="None"
    )
    other_requests = serializers.CharField(
        required=False, allow_blank=True, max_length=500, default=""
    )

    def validate_journey_date(self, value):
        return BookingValidators.validate_journey_date(value)

    def validate_contact_phone(self, value):
        return UserFieldValidators.validate_mobile_number_format(value)

    def validate_passengers(self, value):
        max_passengers = settings.BOOKING_MAX_PASSENGERS
        if not 1 <= len(value) <= max_passengers:
            raise serializers.ValidationError(
                BookingMessage.PASSENGER_COUNT_INVALID.format(max_passengers=max_passengers)
            )
        return value

    def validate(self, data):
        """
        Resolves the train and normalises the station codes.
        """
        data["from_station_code"], data["to_station_code"] = BookingValidators.validate_station_codes(
            data["from_station_code"], data["to_station_code"]
        )
        train = Train.objects.prefetch_related("stops", "classes").filter(
            train_number=data["train_number"]
        ).first()
        if train is None:
            raise NotFoundException(TrainMessage.TRAIN_NOT_FOUND)
        data["train"] = train
        return data


class BookingSerializer(serializers.ModelSerializer):
    """
    Full booking representation with passengers and price breakdown.
    """

    passengers = PassengerSerializer(many=True, read_only=True)
    price_breakdown = serializers.SerializerMethodField()
    special_requests = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "pnr",
            "train_number",
            "train_name",
            "from_station_code",
            "from_station_name",
            "from_departure_time",
            "from_platform",
            "to_station_code",
            "to_station_name",
            "to_arrival_time",
            "to_platform",
            "journey_date",
            "class_type",
            "class_name",
            "passenger_count",
            "passengers",
            "total_price",
            "price_breakdown",
            "status",
            "payment_status",
            "payment_id",
            "contact_email",
            "contact_phone",
            "special_requests",
            "cancelled_at",
            "refund_amount",
            "cancellation_charges",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_price_breakdown(self, obj):
        return {
            "base_fare": obj.base_fare,
            "taxes": obj.taxes,
            "convenience_fee": obj.convenience_fee,
            "discount": obj.discount,
        }

    def get_special_requests(self, obj):
        return {
            "wheelchair_assistance": obj.wheelchair_assistance,
            "meal_preference": obj.meal_preference,
            "other_requests": obj.other_requests,
        }


class BookingSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = [
            "id",
            "pnr",
            "train_number",
            "train_name",
            "from_station_code",
            "to_station_code",
            "journey_date",
            "class_type",
            "passenger_count",
            "total_price",
            "status",
            "payment_status",
        ]
        read_only_fields = fields


class BookingUpdateSerializer(serializers.ModelSerializer):
    """
    Only contact details and special requests can change after booking.
    """

    class Meta:
        model = Booking
        fields = [
            "contact_email",
            "contact_phone",
            "wheelchair_assistance",
            "meal_preference",
            "other_requests",
        ]

    def validate_contact_phone(self, value):
        return UserFieldValidators.validate_mobile_number_format(value)


class CancelBookingSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=200)
