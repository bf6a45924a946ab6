from database.connection import get_db, with_retry

EARN = "earn"
REDEEM = "redeem"


class PointTransactionRepository:
    """Append-only access to the ``point_transactions`` ledger."""

    @staticmethod
    def credit_points(user_id: str, amount: int, description: str) -> dict | None:
        """Credit the balance and append the ``earn`` row in one transaction.

        Returns ``{new_balance, ledger_transaction_id}``.
        """
        db = get_db()
        result = db.rpc("credit_points", {
            "p_user_id": user_id,
            "p_amount": amount,
            "p_description": description,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def redeem_points(
        user_id: str,
        amount: int,
        description: str,
        codes: list[str],
        reward_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict | None:
        """Debit, append the ``redeem`` row and issue a reward code in one transaction.

        ``codes`` are candidate reward codes tried in order until one is
        unique. Returns ``{new_balance, ledger_transaction_id, reward_code}``.
        """
        db = get_db()
        result = db.rpc("redeem_points", {
            "p_user_id": user_id,
            "p_amount": amount,
            "p_description": description,
            "p_codes": codes,
            "p_reward_id": reward_id,
            "p_idempotency_key": idempotency_key,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def create(
        user_id: str,
        type: str,
        amount: int,
        description: str,
        balance_after: int,
        idempotency_key: str | None = None,
    ) -> dict | None:
        """Append a ledger entry. ``amount`` is signed (negative for redeem)."""
        db = get_db()
        data = {
            "user_id": user_id,
            "type": type,
            "amount": amount,
            "description": description,
            "balance_after": balance_after,
        }
        if idempotency_key:
            data["idempotency_key"] = idempotency_key
        result = db.table("point_transactions").insert(data).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_idempotency_key(user_id: str, idempotency_key: str) -> dict | None:
        """Find the entry a previous request recorded under the same key."""
        db = get_db()
        result = db.table("point_transactions").select("*").eq(
            "user_id", user_id
        ).eq("idempotency_key", idempotency_key).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def list_recent(user_id: str, limit: int = 10) -> list[dict]:
        """Most recent ledger entries for a user, newest first."""
        db = get_db()
        result = db.table("point_transactions").select(
            "id, type, amount, description, created_at"
        ).eq("user_id", user_id).order("created_at", desc=True).limit(limit).execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def list_by_user(user_id: str) -> list[dict]:
        """Every ledger entry for a user, oldest first."""
        db = get_db()
        result = db.table("point_transactions").select(
            "id, type, amount, created_at"
        ).eq("user_id", user_id).order("created_at").execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def get_many(transaction_ids: list[str]) -> list[dict]:
        """Batch-fetch ledger entries by ID."""
        if not transaction_ids:
            return []
        db = get_db()
        result = db.table("point_transactions").select(
            "id, user_id, amount, description, created_at"
        ).in_("id", transaction_ids).execute()
        return result.data if result and result.data else []
