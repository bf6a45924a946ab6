from fastapi import APIRouter, Depends, Response

from app.api.responses import respond
from app.core.security import require_access_token
from app.domain.schemas import ActionResult, SessionResult, SignInRequest, SignUpRequest
from app.services import actions

router = APIRouter()


@router.post("/sign-up", response_model=ActionResult)
def sign_up(data: SignUpRequest, response: Response):
    """Register a new account and create its profile with 0 points."""
    return respond(response, actions.sign_up(data.name, data.email, data.password))


@router.post("/sign-in", response_model=SessionResult)
def sign_in(data: SignInRequest, response: Response):
    """Exchange email and password for a session."""
    return respond(response, actions.sign_in(data.email, data.password))


@router.post("/sign-out", response_model=ActionResult)
def sign_out(response: Response, access_token: str = Depends(require_access_token)):
    """Revoke the caller's session."""
    return respond(response, actions.sign_out(access_token))
