import logging
from exceptions.handlers import TrainNotRunningOnDateError
from utils.cache_helpers import CacheHelpers
from utils.constants import BookingStatus, CacheKeys, Choices, TrainMessage
from utils.fare_helpers import FareHelpers

logger = logging.getLogger("trains")


def _format_time(value):
    return value.strftime("%H:%M") if value else None


class TrainDirectoryHelpers:
    """
    Read-side helpers for the train directory.
    Results are plain dicts so they can be cached and returned as-is.
    """

    @staticmethod
    def stop_summary(stop):
        return {
            "station_code": stop.station_code,
            "station_name": stop.station_name,
            "arrival_time": _format_time(stop.arrival_time),
            "departure_time": _format_time(stop.departure_time),
            "platform": stop.platform,
            "distance": stop.distance,
            "day": stop.day,
        }

    @staticmethod
    def validate_runs_on(train, journey_date):
        """
        Raises:
            TrainNotRunningOnDateError: If the weekday of journey_date is not a running day
        """
        if not train.runs_on(journey_date):
            day_name = Choices.WEEKDAYS[journey_date.weekday()]
            logger.warning(f"Train {train.train_number} does not run on {day_name}")
            raise TrainNotRunningOnDateError(
                TrainMessage.TRAIN_NOT_RUNNING.format(
                    train_number=train.train_number, day_name=day_name
                )
            )

    @staticmethod
    def class_quotes(train, from_code, to_code):
        """
        Prices and seat counts for every class the train carries.
        """
        quotes = []
        for fare_class in train.classes.all():
            quotes.append({
                "class_type": fare_class.class_type,
                "class_name": fare_class.name,
                "available_seats": fare_class.available_seats,
                "total_seats": fare_class.total_seats,
                "price": FareHelpers.compute_fare(train, from_code, to_code, fare_class.class_type),
                "amenities": fare_class.amenities,
                "status": "Available" if fare_class.available_seats > 0 else BookingStatus.WAITING_LIST,
            })
        return quotes

    @staticmethod
    def _search(from_code, to_code, journey_date):
        from trains.models import Train

        trains = (
            Train.objects.filter(stops__station_code=from_code)
            .filter(stops__station_code=to_code)
            .prefetch_related("stops", "classes")
            .distinct()
        )

        results = []
        for train in trains:
            if not train.runs_on(journey_date):
                continue
            from_stop = FareHelpers.get_stop(train, from_code)
            to_stop = FareHelpers.get_stop(train, to_code)
            if from_stop.sequence >= to_stop.sequence:
                continue
            results.append({
                "train_number": train.train_number,
                "name": train.name,
                "train_type": train.train_type,
                "running_days": train.running_days,
                "pantry_available": train.pantry_available,
                "wifi_available": train.wifi_available,
                "journey_details": {
                    "from": TrainDirectoryHelpers.stop_summary(from_stop),
                    "to": TrainDirectoryHelpers.stop_summary(to_stop),
                    "duration": train.formatted_duration,
                    "distance": to_stop.distance - from_stop.distance,
                },
                "classes": TrainDirectoryHelpers.class_quotes(train, from_code, to_code),
            })
        logger.info(
            f"Search {from_code}->{to_code} on {journey_date} matched {len(results)} trains"
        )
        return results

    @staticmethod
    def search_trains(from_code, to_code, journey_date):
        """
        Trains running on journey_date that stop at from_code before to_code.

        Args:
            from_code (str): Boarding station code
            to_code (str): Destination station code
            journey_date (date): Travel date

        Returns:
            list: One dict per train with journey details and class quotes
        """
        from_code = from_code.strip().upper()
        to_code = to_code.strip().upper()
        key = CacheHelpers.search_key(from_code, to_code, journey_date)
        return CacheHelpers.get_or_set(
            key,
            lambda: TrainDirectoryHelpers._search(from_code, to_code, journey_date),
            CacheKeys.SEARCH_TIMEOUT,
        )

    @staticmethod
    def _stations():
        from trains.models import RouteStop

        stations = {}
        stops = RouteStop.objects.filter(train__is_active=True).values_list(
            "station_code", "station_name"
        )
        for code, name in stops:
            stations.setdefault(code, {"code": code, "name": name})
        return sorted(stations.values(), key=lambda station: station["name"])

    @staticmethod
    def list_stations():
        """
        Every station served by an active train, sorted by name.
        """
        return CacheHelpers.get_or_set(
            CacheHelpers.stations_key(),
            TrainDirectoryHelpers._stations,
            CacheKeys.STATIONS_TIMEOUT,
        )

    @staticmethod
    def schedule(train):
        return {
            "train_number": train.train_number,
            "name": train.name,
            "route": [
                dict(TrainDirectoryHelpers.stop_summary(stop), halt_minutes=stop.halt_minutes)
                for stop in train.stops.all()
            ],
            "running_days": train.running_days,
            "total_distance": train.total_distance,
            "duration": train.formatted_duration,
        }

    @staticmethod
    def availability(train, journey_date, from_code, to_code):
        """
        Seat availability and price per class for one journey.

        Raises:
            TrainNotRunningOnDateError: If the train does not run that day
            StationNotFoundError: If either station is not on the route
        """
        TrainDirectoryHelpers.validate_runs_on(train, journey_date)
        return {
            "train_number": train.train_number,
            "name": train.name,
            "date": journey_date.isoformat(),
            "from": from_code.strip().upper(),
            "to": to_code.strip().upper(),
            "availability": TrainDirectoryHelpers.class_quotes(train, from_code, to_code),
        }
