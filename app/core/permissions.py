from fastapi import Depends, HTTPException, status

from app.core.errors import Unauthenticated, Unauthorized
from app.core.security import require_auth
from app.repositories.profile import ProfileRepository
from app.services.identity import Principal
from database.connection import store_errors


def get_current_principal(auth_payload: dict = Depends(require_auth)) -> Principal:
    """Build the calling principal from a verified JWT payload.

    Raises:
        HTTPException 401 if the token carries no subject
    """
    if not auth_payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing sub claim",
        )
    return Principal.from_claims(auth_payload)


class AdminContext:
    """Proof that the caller was verified as an administrator for this request."""

    def __init__(self, principal: Principal, profile: dict):
        self.principal = principal
        self.profile = profile
        self.user_id = profile["id"]


def authorize_admin(principal: Principal | None) -> AdminContext:
    """Admin gate shared by every privileged operation.

    The caller's profile is re-read on every call, so a revoked admin flag
    takes effect on the next request.

    Raises:
        Unauthenticated if there is no principal
        Unauthorized if the profile is missing or not an admin
    """
    if principal is None:
        raise Unauthenticated("no principal")

    with store_errors("authorize_admin"):
        profile = ProfileRepository.get_by_id(principal.id)

    if not profile or profile.get("is_admin") is not True:
        raise Unauthorized(f"user {principal.id} is not an admin")

    return AdminContext(principal=principal, profile=profile)
