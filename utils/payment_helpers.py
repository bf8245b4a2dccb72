import random
import string
import time
import logging
from datetime import timedelta
from django.conf import settings
from django.utils import timezone
from utils.constants import FareRules

logger = logging.getLogger("payment")


class PaymentHelpers:
    """
    Reusable helper methods for payment operations.
    Centralizes payment-related utilities to reduce redundancy.
    """

    @staticmethod
    def generate_payment_id():
        """
        Generates a payment ID of the form PAY_<epoch millis>_<9 random chars>.

        Returns:
            str: Payment ID
        """
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        return f"PAY_{int(time.time() * 1000)}_{suffix}"

    @staticmethod
    def session_expiry():
        return timezone.now() + timedelta(minutes=FareRules.PAYMENT_SESSION_MINUTES)

    @staticmethod
    def gateway_approves():
        """
        Mock card gateway. Approves a share of charges set by
        PAYMENT_GATEWAY_SUCCESS_RATE.
        """
        approved = random.random() < settings.PAYMENT_GATEWAY_SUCCESS_RATE
        logger.debug(f"Mock gateway {'approved' if approved else 'declined'} the charge")
        return approved
