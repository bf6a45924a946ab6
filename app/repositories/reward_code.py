from datetime import datetime, timezone

from database.connection import get_db, with_retry


class RewardCodeRepository:
    """Access to ``reward_codes``: one row per redemption, pending until fulfilled."""

    @staticmethod
    def create(transaction_id: str, user_id: str, code: str, reward_id: str | None = None) -> dict | None:
        """Insert a pending reward code. Raises APIError 23505 if ``code`` is taken."""
        db = get_db()
        data = {
            "transaction_id": transaction_id,
            "user_id": user_id,
            "code": code,
            "fulfilled_at": None,
        }
        if reward_id:
            data["reward_id"] = reward_id
        result = db.table("reward_codes").insert(data).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_transaction(transaction_id: str) -> dict | None:
        db = get_db()
        result = db.table("reward_codes").select("*").eq("transaction_id", transaction_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def list_by_user(user_id: str) -> list[dict]:
        db = get_db()
        result = db.table("reward_codes").select("*").eq(
            "user_id", user_id
        ).order("created_at", desc=True).execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def list_all() -> list[dict]:
        db = get_db()
        result = db.table("reward_codes").select(
            "id, transaction_id, user_id, reward_id, code, created_at, fulfilled_at"
        ).order("created_at", desc=True).execute()
        return result.data if result and result.data else []

    @staticmethod
    def mark_fulfilled(transaction_id: str) -> dict | None:
        """Set ``fulfilled_at`` if it is still null.

        Returns the updated row, or None when no pending code matched.
        """
        db = get_db()
        result = db.table("reward_codes").update({
            "fulfilled_at": datetime.now(timezone.utc).isoformat(),
        }).eq("transaction_id", transaction_id).is_("fulfilled_at", "null").execute()
        return result.data[0] if result and result.data else None
