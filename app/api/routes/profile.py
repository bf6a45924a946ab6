from fastapi import APIRouter, Depends, Response

from app.api.responses import respond
from app.core.permissions import get_current_principal
from app.domain.schemas import ProfileResult
from app.services import actions
from app.services.identity import Principal

router = APIRouter()


@router.get("/me", response_model=ProfileResult)
def get_my_profile(response: Response, principal: Principal = Depends(get_current_principal)):
    """Get the current user's profile and recent point activity."""
    return respond(response, actions.get_user_profile(principal))
