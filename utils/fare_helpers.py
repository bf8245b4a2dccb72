import logging
from datetime import datetime, time
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from django.utils import timezone
from exceptions.handlers import StationNotFoundError, ClassUnavailableError
from utils.constants import FareRules, TrainMessage

logger = logging.getLogger("fares")


def round_half_up(value):
    """
    Rounds to the nearest integer currency unit, halves away from zero.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class FareHelpers:
    """
    Fare and refund arithmetic for bookings.

    Every method here is a pure function of its arguments: nothing is read
    from or written to the database beyond the train's already-loaded route
    and classes, so results are safe to recompute or cache by callers.
    """

    @staticmethod
    def get_stop(train, station_code):
        """
        Finds a stop on the train's route by station code.

        Raises:
            StationNotFoundError: If the station is not on the route
        """
        station_code = (station_code or "").strip().upper()
        for stop in train.stops.all():
            if stop.station_code == station_code:
                return stop
        raise StationNotFoundError(
            TrainMessage.STATION_NOT_FOUND.format(
                station_code=station_code, train_number=train.train_number
            )
        )

    @staticmethod
    def get_fare_class(train, class_type):
        """
        Finds a fare class on the train by class type code.

        Raises:
            ClassUnavailableError: If the train does not carry the class
        """
        class_type = (class_type or "").strip().upper()
        for fare_class in train.classes.all():
            if fare_class.class_type == class_type:
                return fare_class
        raise ClassUnavailableError(
            TrainMessage.CLASS_UNAVAILABLE.format(
                class_type=class_type, train_number=train.train_number
            )
        )

    @staticmethod
    def compute_fare(train, from_code, to_code, class_type):
        """
        Per-passenger fare between two stops for a class.

        price = round(base_price + |to.distance - from.distance| * price_per_km)

        Returns:
            int: Fare in whole currency units
        """
        from_stop = FareHelpers.get_stop(train, from_code)
        to_stop = FareHelpers.get_stop(train, to_code)
        fare_class = FareHelpers.get_fare_class(train, class_type)

        distance = abs(to_stop.distance - from_stop.distance)
        price = Decimal(fare_class.base_price) + Decimal(distance) * Decimal(fare_class.price_per_km)
        return round_half_up(price)

    @staticmethod
    def price_breakdown(fare, passenger_count, discount=FareRules.DEFAULT_DISCOUNT):
        """
        Builds the stored price breakdown for a booking.

        Args:
            fare (int): Per-passenger fare from compute_fare
            passenger_count (int): Number of passengers
            discount (int): Discount in currency units, stored as given

        Returns:
            dict: base_fare, taxes, convenience_fee, discount, total_price
        """
        base_fare = fare * passenger_count
        taxes = round_half_up(Decimal(base_fare) * FareRules.TAX_RATE)
        convenience_fee = FareRules.CONVENIENCE_FEE
        return {
            "base_fare": base_fare,
            "taxes": taxes,
            "convenience_fee": convenience_fee,
            "discount": discount,
            "total_price": base_fare + taxes + convenience_fee - discount,
        }

    @staticmethod
    def reward_points_for(total_price):
        """
        Reward points earned on a completed payment: floor(total * 5%).
        """
        points = (Decimal(total_price) * FareRules.REWARD_RATE).quantize(
            Decimal("1"), rounding=ROUND_FLOOR
        )
        return max(int(points), 0)

    @staticmethod
    def refund_fraction(hours_until_journey):
        """
        Refund tier for the time left before the journey.
        Defined for any number of hours, including negative ones.
        """
        for threshold, fraction in FareRules.REFUND_TIERS:
            if hours_until_journey > threshold:
                return fraction
        return Decimal("0")

    @staticmethod
    def journey_start(journey_date):
        """
        Start of the journey day in the current timezone.
        """
        return timezone.make_aware(datetime.combine(journey_date, time.min))

    @staticmethod
    def calculate_refund(total_price, journey_start, now=None):
        """
        Splits a booking total into refund and cancellation charges.

        Args:
            total_price (int): Amount paid for the booking
            journey_start (datetime): Aware datetime the journey begins
            now (datetime, optional): Reference time, defaults to timezone.now()

        Returns:
            dict: refund_amount, cancellation_charges, refund_percentage
        """
        now = now or timezone.now()
        hours_until_journey = (journey_start - now).total_seconds() / 3600
        fraction = FareHelpers.refund_fraction(hours_until_journey)
        refund_amount = round_half_up(Decimal(total_price) * fraction)
        return {
            "refund_amount": refund_amount,
            "cancellation_charges": total_price - refund_amount,
            "refund_percentage": int(fraction * 100),
        }
