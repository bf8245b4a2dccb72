import logging
from django.core.cache import cache
from utils.constants import CacheKeys

logger = logging.getLogger("cache")


class CacheHelpers:
    """
    Read-through caching for train directory lookups.

    Keys live under a version namespace. Bumping the version makes every
    previously cached search and station list unreachable at once, so seat
    changes never have to enumerate the keys they invalidate.
    """

    @staticmethod
    def train_cache_version():
        cache.add(CacheKeys.TRAIN_VERSION, 1, timeout=None)
        return cache.get(CacheKeys.TRAIN_VERSION, 1)

    @staticmethod
    def bump_train_cache_version():
        cache.add(CacheKeys.TRAIN_VERSION, 1, timeout=None)
        try:
            version = cache.incr(CacheKeys.TRAIN_VERSION)
        except ValueError:
            # Key evicted between add and incr
            cache.set(CacheKeys.TRAIN_VERSION, 2, timeout=None)
            version = 2
        logger.debug(f"Train cache version bumped to {version}")
        return version

    @staticmethod
    def search_key(from_code, to_code, journey_date):
        return CacheKeys.TRAIN_SEARCH.format(
            version=CacheHelpers.train_cache_version(),
            from_code=from_code,
            to_code=to_code,
            date=journey_date.isoformat(),
        )

    @staticmethod
    def stations_key():
        return CacheKeys.STATIONS.format(version=CacheHelpers.train_cache_version())

    @staticmethod
    def get_or_set(key, producer, timeout):
        """
        Returns the cached value for key, computing and storing it on a miss.

        Args:
            key (str): Cache key
            producer (callable): Zero-argument callable building the value
            timeout (int): Seconds to keep the value

        Returns:
            The cached or freshly produced value
        """
        value = cache.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key}")
            return value

        logger.debug(f"Cache miss: {key}")
        value = producer()
        cache.set(key, value, timeout)
        return value
