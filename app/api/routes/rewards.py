from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from app.api.responses import respond
from app.core.permissions import get_current_principal
from app.domain.schemas import RedeemResult, RedemptionsResult, RewardRedeemRequest, RewardsResult
from app.services import actions
from app.services.identity import Principal

router = APIRouter()


@router.get("", response_model=RewardsResult)
def list_rewards(response: Response, principal: Principal = Depends(get_current_principal)):
    """List the reward catalog, cheapest first."""
    return respond(response, actions.get_rewards(principal))


@router.get("/redemptions", response_model=RedemptionsResult)
def list_my_redemptions(response: Response, principal: Principal = Depends(get_current_principal)):
    """List the caller's reward codes and their fulfillment status."""
    return respond(response, actions.get_my_redemptions(principal))


@router.post("/{reward_id}/redeem", response_model=RedeemResult)
def redeem_reward(
    reward_id: UUID,
    response: Response,
    data: Optional[RewardRedeemRequest] = None,
    principal: Principal = Depends(get_current_principal),
):
    """Redeem a catalog reward for its points cost."""
    idempotency_key = data.idempotency_key if data else None
    return respond(response, actions.redeem_reward(principal, str(reward_id), idempotency_key))
