import logging

from app.core.errors import InvalidInput, NotFound, TransientStoreError
from app.repositories.reward import RewardRepository
from app.services import ledger
from app.services.localization import get_message
from database.connection import store_errors

logger = logging.getLogger(__name__)

MAX_REWARD_NAME_LENGTH = 120


def create_reward(name: str, points_cost: int) -> dict:
    name = (name or "").strip()
    if not name:
        raise InvalidInput("empty reward name", reason="reward name is required")
    if len(name) > MAX_REWARD_NAME_LENGTH:
        raise InvalidInput(
            "reward name too long",
            reason=f"reward name must be at most {MAX_REWARD_NAME_LENGTH} characters",
        )
    points_cost = ledger.validate_amount(points_cost)

    with store_errors("create_reward"):
        reward = RewardRepository.create(name, points_cost)
    if not reward:
        raise TransientStoreError("reward insert returned no row")

    logger.info(f"Created reward {reward['id']} ({name}, {points_cost} points)")
    return reward


def list_rewards() -> list[dict]:
    with store_errors("list_rewards"):
        return RewardRepository.get_all()


def redeem_reward(
    user_id: str,
    reward_id: str,
    idempotency_key: str | None = None,
) -> tuple[dict, ledger.RedemptionResult]:
    """Redeem a catalog entry through the redemption engine. Returns (reward, result)."""
    with store_errors("get_reward", resource="Reward"):
        reward = RewardRepository.get_by_id(reward_id)
    if not reward:
        raise NotFound(f"reward {reward_id}", resource="Reward")

    result = ledger.redeem(
        user_id,
        reward["points_cost"],
        get_message("reward_redemption_description", name=reward["name"]),
        reward_id=reward["id"],
        idempotency_key=idempotency_key,
    )
    return reward, result
