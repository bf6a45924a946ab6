"""
Repository for email verification codes.
Codes are stored hashed, expire, count failed attempts and are deleted
after first use.
"""

from datetime import datetime, timezone

from database.connection import get_db, with_retry


class OtpRepository:

    @staticmethod
    @with_retry()
    def replace(email: str, code_hash: str, expires_at: datetime) -> dict | None:
        """Store the live code for an email, replacing any previous one."""
        db = get_db()
        result = db.table("otps").upsert({
            "email": email,
            "code_hash": code_hash,
            "expires_at": expires_at.isoformat(),
            "attempts": 0,
        }, on_conflict="email").execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_email(email: str) -> dict | None:
        db = get_db()
        result = db.table("otps").select("*").eq("email", email).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def increment_attempts(otp_id: str, expected: int) -> dict | None:
        """Count one verification attempt if nobody else counted one since we read ``expected``."""
        db = get_db()
        result = db.table("otps").update({"attempts": expected + 1}).eq(
            "id", otp_id
        ).eq("attempts", expected).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def delete(otp_id: str) -> bool:
        """Delete a code. Returns False if another request consumed it first."""
        db = get_db()
        result = db.table("otps").delete().eq("id", otp_id).execute()
        return bool(result and result.data and len(result.data) > 0)

    @staticmethod
    @with_retry()
    def delete_expired() -> int:
        """Delete expired codes. Returns the number of deleted rows."""
        db = get_db()
        result = db.table("otps").delete().lt(
            "expires_at", datetime.now(timezone.utc).isoformat()
        ).execute()
        return len(result.data) if result and result.data else 0
