"""
Identity gateway backed by Supabase Auth.

Only the contract the loyalty core needs: register, sign in, sign out and
delete an orphaned account. Bearer-token verification lives in
``app.core.security``.
"""

import logging
from dataclasses import dataclass

from supabase import AuthError

from app.core.errors import IdentityError
from database.connection import get_db
from database.supabase_client import get_auth_client

logger = logging.getLogger(__name__)


@dataclass
class Principal:
    """An authenticated identity."""

    id: str
    email: str
    name: str = ""

    @classmethod
    def from_claims(cls, claims: dict) -> "Principal":
        metadata = claims.get("user_metadata") or {}
        return cls(
            id=claims["sub"],
            email=(claims.get("email") or "").lower(),
            name=metadata.get("name") or "",
        )


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str
    expires_in: int | None
    principal: Principal


def _principal_from_user(user, fallback_name: str = "") -> Principal:
    metadata = getattr(user, "user_metadata", None) or {}
    return Principal(
        id=user.id,
        email=(user.email or "").lower(),
        name=metadata.get("name") or fallback_name,
    )


def _sign_up_error(error: AuthError) -> IdentityError:
    message = str(error)
    if "already registered" in message:
        return IdentityError(message, message_key="email_already_registered")
    if "Password should be at least" in message:
        return IdentityError(message, message_key="weak_password")
    return IdentityError(message)


def _sign_in_error(error: AuthError) -> IdentityError:
    message = str(error)
    if "Email not confirmed" in message:
        return IdentityError(message, message_key="email_not_confirmed")
    return IdentityError(message, message_key="invalid_credentials")


class IdentityGateway:
    """Thin wrapper over the Supabase Auth API."""

    def sign_up(self, email: str, password: str, name: str) -> Principal:
        client = get_auth_client()
        try:
            response = client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"name": name}},
            })
        except AuthError as e:
            logger.warning(f"Sign up rejected for {email}: {e}")
            raise _sign_up_error(e) from e

        if not response.user:
            raise IdentityError(f"sign up for {email} returned no user")
        return _principal_from_user(response.user, fallback_name=name)

    def sign_in(self, email: str, password: str) -> AuthSession:
        client = get_auth_client()
        try:
            response = client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except AuthError as e:
            logger.warning(f"Sign in rejected for {email}: {e}")
            raise _sign_in_error(e) from e

        session = response.session
        if not session or not response.user:
            raise IdentityError(f"sign in for {email} returned no session", message_key="invalid_credentials")
        return AuthSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
            principal=_principal_from_user(response.user),
        )

    def sign_out(self, access_token: str) -> None:
        """Revoke the refresh tokens of the session that issued ``access_token``."""
        try:
            get_db().auth.admin.sign_out(access_token)
        except AuthError as e:
            logger.warning(f"Sign out failed: {e}")
            raise IdentityError(str(e)) from e

    def delete_user(self, user_id: str) -> None:
        try:
            get_db().auth.admin.delete_user(user_id)
        except AuthError as e:
            logger.error(f"Failed to delete auth user {user_id}: {e}")
            raise IdentityError(str(e)) from e


# Singleton instance
_identity_gateway: IdentityGateway | None = None


def get_identity_gateway() -> IdentityGateway:
    """Get the identity gateway singleton."""
    global _identity_gateway
    if _identity_gateway is None:
        _identity_gateway = IdentityGateway()
    return _identity_gateway
