from database.connection import get_db, with_retry


class ProfileRepository:
    """Access to the ``profiles`` table.

    The ``points`` column is only ever written through
    :meth:`compare_and_set_points`.
    """

    @staticmethod
    def create(user_id: str, email: str, name: str, is_admin: bool = False) -> dict | None:
        """Create the profile row for a newly registered principal."""
        db = get_db()
        result = db.table("profiles").insert({
            "id": user_id,
            "email": email.lower(),
            "name": name,
            "points": 0,
            "is_admin": is_admin,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_id(user_id: str) -> dict | None:
        """Get a profile by principal ID."""
        db = get_db()
        result = db.table("profiles").select("*").eq("id", user_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_email(email: str) -> dict | None:
        """Get a profile by email (case-insensitive, emails are stored lowercased)."""
        db = get_db()
        result = db.table("profiles").select("*").eq("email", email.strip().lower()).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_all() -> list[dict]:
        """Get all profiles, newest first."""
        db = get_db()
        result = db.table("profiles").select(
            "id, email, name, points, is_admin, created_at"
        ).order("created_at", desc=True).execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def get_many(user_ids: list[str]) -> list[dict]:
        """Batch-fetch profiles by ID."""
        if not user_ids:
            return []
        db = get_db()
        result = db.table("profiles").select("id, email, name").in_("id", user_ids).execute()
        return result.data if result and result.data else []

    @staticmethod
    def compare_and_set_points(user_id: str, expected: int, new_points: int) -> dict | None:
        """Set the balance only if it still equals ``expected``.

        Returns the updated row, or None when another request changed the
        balance first (zero rows matched).
        """
        db = get_db()
        result = db.table("profiles").update({
            "points": new_points,
            "updated_at": "now()",
        }).eq("id", user_id).eq("points", expected).execute()
        return result.data[0] if result and result.data else None
