import logging
from rest_framework import viewsets, permissions
from rest_framework.response import Response
from rest_framework.decorators import action
from django.http import Http404
from .models import Train
from .serializers import TrainSerializer, TrainDetailSerializer
from utils.constants import TrainMessage
from utils.queryset_helpers import FilterableQuerysetMixin
from utils.validators import TrainValidators
from utils.fare_helpers import FareHelpers
from utils.train_helpers import TrainDirectoryHelpers
from exceptions.handlers import (
    InvalidInputException,
    NotFoundException,
)

logger = logging.getLogger("trains")


class TrainViewSet(FilterableQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """
    Public, read-only train directory.
    Trains are managed through the Django admin.
    """

    queryset = Train.objects.prefetch_related("stops", "classes")
    permission_classes = [permissions.AllowAny]
    lookup_field = "train_number"
    filter_fields = ["train_type"]  # Fields to filter by query parameters

    def get_serializer_class(self):
        if self.action == "retrieve":
            return TrainDetailSerializer
        return TrainSerializer

    def get_object(self):
        """
        Return the object if present else raises 404.
        """
        try:
            return super().get_object()
        except Http404:
            logger.error(f"Train not found with number {self.kwargs.get('train_number')}")
            raise NotFoundException(TrainMessage.TRAIN_NOT_FOUND)

    def _required_params(self, names, message):
        values = [self.request.query_params.get(name, "").strip() for name in names]
        if not all(values):
            raise InvalidInputException(message)
        return values

    @action(detail=False, methods=["get"], url_path="search")
    def search(self, request):
        """Trains between two stations on a date, with class prices."""
        from_code, to_code, date_value = self._required_params(
            ["from", "to", "date"], TrainMessage.SEARCH_PARAMS_REQUIRED
        )
        journey_date = TrainValidators.parse_date(date_value)
        trains = TrainDirectoryHelpers.search_trains(from_code, to_code, journey_date)
        return Response(
            {
                "trains": trains,
                "search_params": {"from": from_code, "to": to_code, "date": date_value},
                "count": len(trains),
            }
        )

    @action(detail=False, methods=["get"], url_path="stations")
    def stations(self, request):
        return Response(TrainDirectoryHelpers.list_stations())

    @action(detail=True, methods=["get"], url_path="schedule")
    def schedule(self, request, train_number=None):
        train = self.get_object()
        return Response(TrainDirectoryHelpers.schedule(train))

    @action(detail=True, methods=["get"], url_path="availability")
    def availability(self, request, train_number=None):
        """Seats left and price per class for one journey."""
        date_value, from_code, to_code = self._required_params(
            ["date", "from", "to"], TrainMessage.AVAILABILITY_PARAMS_REQUIRED
        )
        journey_date = TrainValidators.parse_date(date_value)
        train = self.get_object()
        return Response(
            TrainDirectoryHelpers.availability(train, journey_date, from_code, to_code)
        )

    @action(detail=True, methods=["get"], url_path="fare")
    def fare(self, request, train_number=None):
        """Per-passenger fare quote between two stops."""
        from_code, to_code, class_type = self._required_params(
            ["from", "to", "class_type"], TrainMessage.FARE_PARAMS_REQUIRED
        )
        train = self.get_object()
        fare = FareHelpers.compute_fare(train, from_code, to_code, class_type)
        return Response(
            {
                "train_number": train.train_number,
                "from": from_code.upper(),
                "to": to_code.upper(),
                "class_type": class_type.upper(),
                "fare": fare,
            }
        )
