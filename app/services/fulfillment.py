"""
Fulfillment of redeemed rewards.

A reward code is pending while ``fulfilled_at`` is null and becomes
fulfilled exactly once; the timestamp is never overwritten.
"""

import logging

from app.core.errors import AlreadyFulfilled, InvalidInput, NotFound
from app.repositories.point_transaction import PointTransactionRepository
from app.repositories.profile import ProfileRepository
from app.repositories.reward import RewardRepository
from app.repositories.reward_code import RewardCodeRepository
from database.connection import store_errors

logger = logging.getLogger(__name__)

PENDING = "pending"
FULFILLED = "fulfilled"


def fulfillment_status(code_row: dict) -> str:
    return FULFILLED if code_row.get("fulfilled_at") else PENDING


def fulfill_reward(transaction_id: str) -> dict:
    """Mark the reward code of a redemption as fulfilled.

    Raises NotFound if the transaction has no reward code and
    AlreadyFulfilled if it was fulfilled before.
    """
    if not transaction_id or not transaction_id.strip():
        raise InvalidInput("empty transaction id", reason="transaction id is required")

    with store_errors("fulfill_reward", resource="Redemption"):
        updated = RewardCodeRepository.mark_fulfilled(transaction_id)
        if updated:
            logger.info(f"Reward code {updated['id']} fulfilled (transaction {transaction_id})")
            return updated

        existing = RewardCodeRepository.get_by_transaction(transaction_id)

    if not existing:
        raise NotFound(f"reward code for transaction {transaction_id}", resource="Redemption")
    logger.warning(f"Transaction {transaction_id} already fulfilled at {existing['fulfilled_at']}")
    raise AlreadyFulfilled(f"transaction {transaction_id}")


def list_redemptions() -> list[dict]:
    """All reward codes, newest first, each with its transaction and profile embedded."""
    with store_errors("list_redemptions"):
        codes = RewardCodeRepository.list_all()
        _enrich_rows(codes)
    return codes


def list_user_redemptions(user_id: str) -> list[dict]:
    """The user's own reward codes with the catalog entry embedded."""
    with store_errors("list_user_redemptions"):
        codes = RewardCodeRepository.list_by_user(user_id)
        reward_map = _reward_map(codes)
    for row in codes:
        row["reward"] = reward_map.get(row.get("reward_id"))
        row["status"] = fulfillment_status(row)
    return codes


def _reward_map(rows: list[dict]) -> dict[str, dict]:
    reward_ids = list({r["reward_id"] for r in rows if r.get("reward_id")})
    return {r["id"]: r for r in RewardRepository.get_many(reward_ids)}


def _enrich_rows(rows: list[dict]) -> None:
    """Batch-fetch transactions, profiles and catalog entries, then attach to rows."""
    transaction_ids = list({r["transaction_id"] for r in rows if r.get("transaction_id")})
    transaction_map = {t["id"]: t for t in PointTransactionRepository.get_many(transaction_ids)}

    user_ids = list({t["user_id"] for t in transaction_map.values()})
    profile_map = {p["id"]: p for p in ProfileRepository.get_many(user_ids)}

    reward_map = _reward_map(rows)

    for r in rows:
        transaction = transaction_map.get(r.get("transaction_id"))
        if transaction:
            transaction = dict(transaction)
            profile = profile_map.get(transaction["user_id"], {})
            transaction["profile"] = {
                "email": profile.get("email"),
                "name": profile.get("name"),
            }
        r["transaction"] = transaction
        r["reward"] = reward_map.get(r.get("reward_id"))
        r["status"] = fulfillment_status(r)
