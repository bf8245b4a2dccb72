import logging
from django.db import models, transaction
from django.db.models import F
from django.contrib.auth.models import AbstractUser, UserManager
from django.utils import timezone
from exceptions.handlers import InvalidInputException
from utils.constants import UserMessage

logger = logging.getLogger("accounts")


class User(AbstractUser):
    """
    Custom user model extending Django's AbstractUser for railway bookings.

    Adds the passenger-facing profile fields and the reward point ledger
    balance. The balance is only ever changed through add_reward_points and
    deduct_reward_points so that every change leaves a RewardTransaction row.
    """
    email = models.EmailField(unique=True)
    mobile_number = models.CharField(max_length=15)
    reward_points = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)

    REQUIRED_FIELDS = ["email", "mobile_number"]
    USERNAME_FIELD = "username"

    objects = UserManager()

    class Meta:
        db_table = "users"

    def add_reward_points(self, points, reason="General", booking=None):
        """
        Credits reward points with a single UPDATE so concurrent credits
        are never lost, and records the ledger entry.

        Returns:
            int: The new reward point balance
        """
        if points <= 0:
            return self.reward_points

        with transaction.atomic():
            User.objects.filter(pk=self.pk).update(
                reward_points=F("reward_points") + points
            )
            RewardTransaction.objects.create(
                user=self, points=points, reason=reason, booking=booking
            )
        self.refresh_from_db(fields=["reward_points"])
        logger.info(
            f"Added {points} reward points to user {self.username} for: {reason}"
        )
        return self.reward_points

    def deduct_reward_points(self, points, reason="Redemption"):
        """
        Deducts reward points, refusing to take the balance below zero.

        Raises:
            InvalidInputException: If the balance is lower than points
        """
        with transaction.atomic():
            updated = User.objects.filter(
                pk=self.pk, reward_points__gte=points
            ).update(reward_points=F("reward_points") - points)
            if not updated:
                raise InvalidInputException(UserMessage.INSUFFICIENT_REWARD_POINTS)
            RewardTransaction.objects.create(user=self, points=-points, reason=reason)
        self.refresh_from_db(fields=["reward_points"])
        logger.info(
            f"Deducted {points} reward points from user {self.username} for: {reason}"
        )
        return self.reward_points

    def __str__(self):
        return self.username


class RewardTransaction(models.Model):
    """
    One entry in a user's reward point ledger.
    Positive points are earned, negative points are redeemed.
    """
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="reward_transactions"
    )
    points = models.IntegerField()
    reason = models.CharField(max_length=200)
    booking = models.ForeignKey(
        "bookingsystem.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reward_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "reward_transactions"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user.username}: {self.points:+d} ({self.reason})"
