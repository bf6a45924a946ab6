"""Admin-only API routes. The admin check runs inside each action, per request."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response

from app.api.responses import respond
from app.core.permissions import get_current_principal
from app.domain.schemas import (
    ActionResult,
    AddPointsResult,
    AdminAddPointsRequest,
    RedemptionsResult,
    RewardCreate,
    RewardResult,
    UsersResult,
)
from app.services import actions
from app.services.identity import Principal

router = APIRouter()


@router.get("/users", response_model=UsersResult)
def list_users(response: Response, principal: Principal = Depends(get_current_principal)):
    """List all users with their balances, newest first."""
    return respond(response, actions.get_users_for_admin_view(principal))


@router.post("/points", response_model=AddPointsResult)
def add_points_by_email(
    data: AdminAddPointsRequest,
    response: Response,
    principal: Principal = Depends(get_current_principal),
):
    """Credit points to the user registered with the given email."""
    result = actions.add_points_to_user_by_email(principal, data.email, data.amount, data.description)
    return respond(response, result)


@router.get("/redemptions", response_model=RedemptionsResult)
def list_redemptions(response: Response, principal: Principal = Depends(get_current_principal)):
    """List every redemption with its transaction and redeemer."""
    return respond(response, actions.get_admin_redeemed_rewards(principal))


@router.post("/redemptions/{transaction_id}/fulfill", response_model=ActionResult)
def fulfill_redemption(
    transaction_id: UUID,
    response: Response,
    principal: Principal = Depends(get_current_principal),
):
    """Mark a redemption as fulfilled. Fails if it already was."""
    return respond(response, actions.fulfill_reward(principal, str(transaction_id)))


@router.post("/rewards", response_model=RewardResult)
def create_reward(
    data: RewardCreate,
    response: Response,
    principal: Principal = Depends(get_current_principal),
):
    """Add an entry to the reward catalog."""
    return respond(response, actions.create_reward(principal, data.name, data.points_cost))
