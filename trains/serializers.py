import logging
from rest_framework import serializers
from .models import Train, RouteStop, TrainClass

logger = logging.getLogger("trains")


class RouteStopSerializer(serializers.ModelSerializer):
    class Meta:
        model = RouteStop
        fields = [
            "sequence",
            "station_code",
            "station_name",
            "arrival_time",
            "departure_time",
            "platform",
            "distance",
            "day",
            "halt_minutes",
        ]


class TrainClassSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrainClass
        fields = [
            "class_type",
            "name",
            "total_seats",
            "available_seats",
            "base_price",
            "price_per_km",
            "amenities",
        ]


class TrainSerializer(serializers.ModelSerializer):
    """
    Serializes train data for list responses, with origin and terminus codes.
    """

    source = serializers.SerializerMethodField()
    destination = serializers.SerializerMethodField()
    duration = serializers.CharField(source="formatted_duration", read_only=True)

    class Meta:
        model = Train
        fields = [
            "train_number",
            "name",
            "train_type",
            "running_days",
            "source",
            "destination",
            "total_distance",
            "duration",
            "pantry_available",
            "wifi_available",
        ]
        read_only_fields = fields

    def _stop_code(self, obj, index):
        stops = list(obj.stops.all())
        return stops[index].station_code if stops else None

    def get_source(self, obj):
        return self._stop_code(obj, 0)

    def get_destination(self, obj):
        return self._stop_code(obj, -1)


class TrainDetailSerializer(TrainSerializer):
    """
    Serializes a train with its full route and fare classes.
    """

    stops = RouteStopSerializer(many=True, read_only=True)
    classes = TrainClassSerializer(many=True, read_only=True)

    class Meta(TrainSerializer.Meta):
        fields = TrainSerializer.Meta.fields + ["stops", "classes"]
        read_only_fields = fields

