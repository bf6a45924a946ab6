"""
Email verification with one-time codes.

Codes live in the ``otps`` table (hash only) with an expiry, so they survive
restarts and work across instances. A code is valid while ``now <
expires_at`` and is deleted on first successful use or after too many wrong
guesses.
"""

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.core.errors import DeliveryError, InvalidInput
from app.repositories.otp import OtpRepository
from app.services.codes import generate_otp
from app.services.email import get_email_service
from database.connection import store_errors

logger = logging.getLogger(__name__)


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise InvalidInput("invalid email", reason="a valid email is required")
    return email


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def send_verification_code(email: str) -> None:
    """Store a fresh code for ``email`` and deliver it."""
    email = _normalize_email(email)
    code = generate_otp(settings.otp_length)
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.otp_ttl_minutes)

    with store_errors("store_otp"):
        OtpRepository.delete_expired()
        OtpRepository.replace(email, hash_code(code), expires_at)

    try:
        get_email_service().send_verification_code(email, code, settings.otp_ttl_minutes)
    except Exception as e:
        raise DeliveryError(f"verification email to {email}: {e}") from e
    logger.info(f"Verification code issued for {email}, expires at {expires_at.isoformat()}")


def _claim_attempt(email: str) -> dict | None:
    """Count an attempt against the live code for ``email`` and return the row.

    Returns None when there is no usable code. Expired codes and codes that
    already used up their attempts are deleted.
    """
    for _ in range(settings.otp_max_attempts + 1):
        otp = OtpRepository.get_by_email(email)
        if not otp:
            logger.warning(f"No verification code pending for {email}")
            return None

        if datetime.now(timezone.utc) >= _parse_timestamp(otp["expires_at"]):
            OtpRepository.delete(otp["id"])
            logger.warning(f"Expired verification code for {email}")
            return None

        if otp["attempts"] >= settings.otp_max_attempts:
            OtpRepository.delete(otp["id"])
            logger.warning(f"Verification code for {email} has no attempts left")
            return None

        claimed = OtpRepository.increment_attempts(otp["id"], otp["attempts"])
        if claimed:
            return claimed

    logger.warning(f"Could not count a verification attempt for {email}")
    return None


def verify_code(email: str, code: str) -> bool:
    """Check and consume a code. Returns False for wrong, expired or used codes.

    Every check counts as an attempt. After ``OTP_MAX_ATTEMPTS`` wrong codes
    the stored code is deleted and a new one has to be requested.
    """
    email = _normalize_email(email)
    code = (code or "").strip()
    if not code:
        return False

    with store_errors("verify_otp"):
        otp = _claim_attempt(email)
        if not otp:
            return False

        if not hmac.compare_digest(otp["code_hash"], hash_code(code)):
            if otp["attempts"] >= settings.otp_max_attempts:
                OtpRepository.delete(otp["id"])
                logger.warning(f"Too many wrong verification codes for {email}, code deleted")
            else:
                logger.warning(
                    f"Wrong verification code for {email} "
                    f"(attempt {otp['attempts']}/{settings.otp_max_attempts})"
                )
            return False

        # Only the request that deletes the row gets to use it
        if not OtpRepository.delete(otp["id"]):
            logger.warning(f"Verification code for {email} was already used")
            return False

    logger.info(f"Email {email} verified")
    return True
