from tests.fakes import FakeSupabase


def balance_of(db: FakeSupabase, user_id: str) -> int:
    return next(p["points"] for p in db.rows("profiles") if p["id"] == user_id)


def ledger_entries(db: FakeSupabase, user_id: str) -> list[dict]:
    return [t for t in db.rows("point_transactions") if t["user_id"] == user_id]


def ledger_sum(db: FakeSupabase, user_id: str) -> int:
    """sum(earn amounts) - sum(redeem amounts) for one user."""
    entries = ledger_entries(db, user_id)
    earned = sum(t["amount"] for t in entries if t["type"] == "earn")
    redeemed = sum(-t["amount"] for t in entries if t["type"] == "redeem")
    return earned - redeemed
