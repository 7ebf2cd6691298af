"""
Outbound account notifications.

There is no mail transport configured; messages are written to the
application log so operators can relay links during onboarding.
"""
import logging

logger = logging.getLogger(__name__)


def send_password_reset(email: str, token: str) -> None:
    """Deliver a password reset token to the account email."""
    logger.info("Password reset requested for %s (token=%s)", email, token)


def send_email_verification(email: str, token: str) -> None:
    """Deliver an email verification token to the new address."""
    logger.info("Email verification requested for %s (token=%s)", email, token)
