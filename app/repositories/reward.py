from database.connection import get_db, with_retry


class RewardRepository:

    @staticmethod
    def create(name: str, points_cost: int) -> dict | None:
        """Create a catalog entry."""
        db = get_db()
        result = db.table("rewards").insert({
            "name": name,
            "points_cost": points_cost,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_id(reward_id: str) -> dict | None:
        db = get_db()
        result = db.table("rewards").select("*").eq("id", reward_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_all() -> list[dict]:
        """Get the catalog, cheapest first."""
        db = get_db()
        result = db.table("rewards").select("*").order("points_cost").execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def get_many(reward_ids: list[str]) -> list[dict]:
        if not reward_ids:
            return []
        db = get_db()
        result = db.table("rewards").select("id, name, points_cost").in_("id", reward_ids).execute()
        return result.data if result and result.data else []
