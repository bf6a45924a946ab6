from fastapi import APIRouter, Response

from app.api.responses import respond
from app.domain.schemas import ActionResult, VerificationCheckRequest, VerificationSendRequest
from app.services import actions

router = APIRouter()


@router.post("/send", response_model=ActionResult)
def send_code(data: VerificationSendRequest, response: Response):
    """Email a one-time verification code."""
    return respond(response, actions.send_verification_code(data.email))


@router.post("/verify", response_model=ActionResult)
def verify_code(data: VerificationCheckRequest, response: Response):
    """Check and consume a verification code."""
    return respond(response, actions.verify_code(data.email, data.code))
