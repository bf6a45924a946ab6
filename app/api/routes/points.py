from fastapi import APIRouter, Depends, Response

from app.api.responses import respond
from app.core.permissions import get_current_principal
from app.domain.schemas import AddPointsRequest, AddPointsResult, RedeemPointsRequest, RedeemResult
from app.services import actions
from app.services.identity import Principal

router = APIRouter()


@router.post("/redeem", response_model=RedeemResult)
def redeem_points(
    data: RedeemPointsRequest,
    response: Response,
    principal: Principal = Depends(get_current_principal),
):
    """Redeem points for a reward code.

    Send an idempotency_key to make retries safe: a repeated key returns the
    original redemption instead of debiting again.
    """
    result = actions.redeem_points(
        principal,
        data.amount,
        data.description,
        user_id=str(data.user_id) if data.user_id else None,
        idempotency_key=data.idempotency_key,
    )
    return respond(response, result)


@router.post("/add", response_model=AddPointsResult)
def add_points(
    data: AddPointsRequest,
    response: Response,
    principal: Principal = Depends(get_current_principal),
):
    """Credit points (e.g. after a purchase)."""
    result = actions.add_points(
        principal,
        data.amount,
        data.description,
        user_id=str(data.user_id) if data.user_id else None,
    )
    return respond(response, result)
