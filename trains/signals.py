import logging
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from .models import Train, RouteStop, TrainClass
from utils.cache_helpers import CacheHelpers

logger = logging.getLogger("trains")


@receiver(post_save, sender=Train)
@receiver(post_save, sender=RouteStop)
@receiver(post_save, sender=TrainClass)
@receiver(post_delete, sender=RouteStop)
@receiver(post_delete, sender=TrainClass)
def invalidate_train_cache(sender, instance, **kwargs):
    """Drop cached searches and station lists when the directory changes."""
    logger.debug(f"{sender.__name__} {instance.pk} changed, train cache invalidation queued")
    transaction.on_commit(CacheHelpers.bump_train_cache_version)
