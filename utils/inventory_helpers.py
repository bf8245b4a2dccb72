import logging
from django.db import transaction
from django.db.models import F
from django.db.models.functions import Least
from exceptions.handlers import InsufficientSeatsError, InvalidInputException
from utils.cache_helpers import CacheHelpers
from utils.constants import SeatMessage

logger = logging.getLogger("inventory")


class SeatInventory:
    """
    Seat counters for fare classes.

    Both operations are a single conditional UPDATE against the class row,
    so two callers holding stale copies of the same TrainClass can never
    take more seats than the row has. Cached directory entries are
    invalidated only once the seat change commits.
    """

    @staticmethod
    def _validate_count(count):
        if not isinstance(count, int) or isinstance(count, bool) or count < 1:
            raise InvalidInputException(SeatMessage.INVALID_SEAT_COUNT)

    @staticmethod
    def reserve(train_class, count):
        """
        Takes count seats from the class.

        Raises:
            InvalidInputException: If count is not a positive integer
            InsufficientSeatsError: If fewer than count seats are left
        """
        from trains.models import TrainClass

        SeatInventory._validate_count(count)
        updated = TrainClass.objects.filter(
            pk=train_class.pk, available_seats__gte=count
        ).update(available_seats=F("available_seats") - count)

        if not updated:
            logger.warning(
                f"Reserve of {count} seats rejected for {train_class.class_type} on train {train_class.train_id}"
            )
            raise InsufficientSeatsError()

        train_class.refresh_from_db(fields=["available_seats"])
        transaction.on_commit(CacheHelpers.bump_train_cache_version)
        logger.info(
            f"Reserved {count} seats in {train_class.class_type} on train {train_class.train_id}, "
            f"{train_class.available_seats} left"
        )
        return train_class.available_seats

    @staticmethod
    def release(train_class, count):
        """
        Returns count seats to the class, never above total_seats.
        """
        from trains.models import TrainClass

        SeatInventory._validate_count(count)
        TrainClass.objects.filter(pk=train_class.pk).update(
            available_seats=Least(F("available_seats") + count, F("total_seats"))
        )

        train_class.refresh_from_db(fields=["available_seats"])
        transaction.on_commit(CacheHelpers.bump_train_cache_version)
        logger.info(
            f"Released {count} seats in {train_class.class_type} on train {train_class.train_id}, "
            f"{train_class.available_seats} left"
        )
        return train_class.available_seats
