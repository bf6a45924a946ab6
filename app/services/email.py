import logging

import resend

from app.core.config import get_settings
from app.services.localization import get_message

logger = logging.getLogger(__name__)

VERIFICATION_TEMPLATE = """
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; color: #1f2937; max-width: 480px; margin: 0 auto; padding: 24px;">
    <h2 style="margin-top: 0;">{heading}</h2>
    <p>{intro}</p>
    <p style="font-size: 30px; font-weight: bold; letter-spacing: 6px; text-align: center;">{code}</p>
    <p style="font-size: 13px; color: #6b7280;">{expiry}</p>
    <p style="font-size: 12px; color: #9ca3af;">{ignore}</p>
    <p style="font-size: 12px;"><a href="{web_app_url}">{web_app_url}</a></p>
</body>
</html>
"""


class EmailService:
    """Transactional email through Resend. Only the OTP message is sent."""

    def __init__(self):
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.from_email = settings.resend_from_email
        self.web_app_url = settings.web_app_url

        if not settings.resend_api_key:
            logger.warning("RESEND_API_KEY is not set, verification emails will fail")

    def send_verification_code(self, to: str, code: str, ttl_minutes: int) -> bool:
        """Send a one-time email verification code. Raises on provider errors."""
        html = VERIFICATION_TEMPLATE.format(
            heading=get_message("verification_email_heading"),
            intro=get_message("verification_email_intro"),
            code=code,
            expiry=get_message("verification_email_expiry", minutes=ttl_minutes),
            ignore=get_message("verification_email_ignore"),
            web_app_url=self.web_app_url,
        )

        try:
            result = resend.Emails.send({
                "from": self.from_email,
                "to": [to],
                "subject": get_message("verification_email_subject"),
                "html": html,
            })
        except Exception as e:
            logger.error(f"Resend rejected verification email to {to}: {e}")
            raise

        logger.info(f"Verification email queued for {to}: {result.get('id') if isinstance(result, dict) else result}")
        return True


# Singleton instance
_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get the email service singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
