"""
Bearer-token verification for Supabase Auth access tokens.

Tokens are checked against the project's JWKS (asymmetric signing keys
only) and must carry the ``authenticated`` audience.
"""

import logging
from functools import lru_cache

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ALLOWED_ALGORITHMS = ["RS256", "ES256", "EdDSA"]
TOKEN_AUDIENCE = "authenticated"


@lru_cache(maxsize=1)
def get_jwks() -> dict:
    """Download the signing keys once per process."""
    response = httpx.get(f"{settings.supabase_url}/auth/v1/.well-known/jwks.json", timeout=10.0)
    response.raise_for_status()
    return response.json()


def _signing_key(kid: str | None) -> dict | None:
    """Look up ``kid``, refreshing the cached key set once on a miss (key rotation)."""
    for refresh in (False, True):
        if refresh:
            logger.warning(f"Signing key {kid} not in cached JWKS, refreshing")
            get_jwks.cache_clear()
        for key in get_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    """Return the claims of a valid access token, or raise 401 (503 if JWKS is unreachable)."""
    try:
        header = jwt.get_unverified_header(token)
        alg = header.get("alg")
        if alg not in ALLOWED_ALGORITHMS:
            logger.warning(f"Rejected token signed with {alg}")
            raise _unauthorized("Invalid token: unsupported algorithm")

        key = _signing_key(header.get("kid"))
        if not key:
            logger.error(f"No signing key for kid={header.get('kid')} after JWKS refresh")
            raise _unauthorized("Invalid token: signing key not found")

        return jwt.decode(token, key, algorithms=[alg], audience=TOKEN_AUDIENCE)
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise _unauthorized("Invalid token")
    except httpx.HTTPError as e:
        logger.error(f"Could not fetch JWKS: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        )


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    if not credentials:
        logger.warning("Request without bearer token rejected")
        raise _unauthorized("Not authenticated")
    return credentials.credentials


def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    """Dependency returning the verified token claims."""
    return verify_jwt(_bearer_token(credentials))


def require_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Dependency returning the raw token once verified (for sign-out)."""
    token = _bearer_token(credentials)
    verify_jwt(token)
    return token
