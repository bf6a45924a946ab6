"""
Callable procedures exposed to the UI layer.

Every procedure returns an ``ActionResult`` (or a subclass) instead of
raising: domain errors become ``success=False`` with a localized message and
the error kind, and unexpected failures are logged and reported with a
generic message. Callers must check ``success`` before using any data.
"""

import functools
import logging
from typing import Callable, TypeVar

from postgrest.exceptions import APIError

from app.core.config import settings
from app.core.errors import (
    IdentityError,
    LoyaltyError,
    TransientStoreError,
    Unauthenticated,
)
from app.core.permissions import authorize_admin
from app.domain.schemas import (
    ActionResult,
    AddPointsResult,
    ProfileResponse,
    ProfileResult,
    RedeemResult,
    RedemptionResponse,
    RedemptionsResult,
    RewardResponse,
    RewardResult,
    RewardsResult,
    SessionResult,
    TransactionResponse,
    UsersResult,
)
from app.repositories.point_transaction import PointTransactionRepository
from app.repositories.profile import ProfileRepository
from app.services import catalog, fulfillment, ledger, verification
from app.services.identity import Principal, get_identity_gateway
from app.services.localization import get_message
from database.connection import UNIQUE_VIOLATION, store_errors

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=ActionResult)


def action(result_cls: type[R]) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Turn raised errors into a failed ``result_cls``."""
    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except LoyaltyError as e:
                if isinstance(e, TransientStoreError):
                    logger.error(f"{func.__name__} failed: {e}")
                else:
                    logger.warning(f"{func.__name__} rejected ({e.kind}): {e}")
                return result_cls(
                    success=False,
                    error=e.kind,
                    message=get_message(e.message_key, **e.params),
                )
            except Exception:
                logger.exception(f"Unexpected error in {func.__name__}")
                return result_cls(
                    success=False,
                    error=LoyaltyError.kind,
                    message=get_message(LoyaltyError.message_key),
                )
        return wrapper
    return decorator


def _require_principal(principal: Principal | None) -> Principal:
    if principal is None:
        raise Unauthenticated("no principal")
    return principal


def _resolve_target(principal: Principal | None, user_id: str | None) -> str:
    """Self-service calls act on the caller; acting on someone else needs admin."""
    principal = _require_principal(principal)
    if not user_id or user_id == principal.id:
        return principal.id
    authorize_admin(principal)
    return user_id


# ============================================
# Identity
# ============================================

@action(ActionResult)
def sign_up(name: str, email: str, password: str) -> ActionResult:
    """Register with the identity provider, then create the profile with 0 points."""
    gateway = get_identity_gateway()
    principal = gateway.sign_up(email, password, name)

    try:
        profile = ProfileRepository.create(principal.id, principal.email or email, name)
    except Exception:
        logger.exception(f"Profile creation failed for new user {principal.id}")
        profile = None

    if not profile:
        # Remove the auth account so the email can register again
        try:
            gateway.delete_user(principal.id)
        except IdentityError:
            logger.error(f"Orphaned auth user {principal.id} left without a profile")
        return ActionResult(
            success=False,
            error=TransientStoreError.kind,
            message=get_message("sign_up_profile_failed"),
        )

    logger.info(f"Registered user {principal.id} ({principal.email})")
    return ActionResult(success=True, message=get_message("sign_up_success"))


@action(SessionResult)
def sign_in(email: str, password: str) -> SessionResult:
    session = get_identity_gateway().sign_in(email, password)
    logger.info(f"User {session.principal.id} signed in")
    return SessionResult(
        success=True,
        message=get_message("sign_in_success"),
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user_id=session.principal.id,
    )


@action(ActionResult)
def sign_out(access_token: str) -> ActionResult:
    get_identity_gateway().sign_out(access_token)
    return ActionResult(success=True, message=get_message("sign_out_success"))


@action(ActionResult)
def send_verification_code(email: str) -> ActionResult:
    verification.send_verification_code(email)
    return ActionResult(success=True, message=get_message("verification_sent", email=email))


@action(ActionResult)
def verify_code(email: str, code: str) -> ActionResult:
    if not verification.verify_code(email, code):
        return ActionResult(
            success=False,
            error="invalid_code",
            message=get_message("verification_invalid"),
        )
    return ActionResult(success=True, message=get_message("verification_success"))


# ============================================
# Profile and points
# ============================================

def _get_or_create_profile(principal: Principal) -> dict:
    profile = ProfileRepository.get_by_id(principal.id)
    if profile:
        return profile

    logger.info(f"No profile for user {principal.id}, creating it")
    name = principal.name or principal.email.split("@")[0]
    try:
        profile = ProfileRepository.create(principal.id, principal.email, name)
    except APIError as e:
        if e.code != UNIQUE_VIOLATION:
            raise
        # Created by a concurrent request
        profile = ProfileRepository.get_by_id(principal.id)
    if not profile:
        raise TransientStoreError(f"profile for {principal.id} could not be created")
    return profile


@action(ProfileResult)
def get_user_profile(principal: Principal | None) -> ProfileResult:
    """The caller's profile and their most recent ledger entries."""
    principal = _require_principal(principal)
    with store_errors("get_user_profile"):
        profile = _get_or_create_profile(principal)
        activity = PointTransactionRepository.list_recent(
            principal.id, limit=settings.recent_activity_limit
        )
    return ProfileResult(
        success=True,
        message=get_message("profile_loaded"),
        profile=ProfileResponse(**profile),
        recent_activity=[TransactionResponse(**t) for t in activity],
    )


@action(RedeemResult)
def redeem_points(
    principal: Principal | None,
    amount: int,
    description: str,
    user_id: str | None = None,
    idempotency_key: str | None = None,
) -> RedeemResult:
    target = _resolve_target(principal, user_id)
    result = ledger.redeem(target, amount, description, idempotency_key=idempotency_key)
    return RedeemResult(
        success=True,
        message=get_message("points_redeemed", amount=amount, code=result.reward_code),
        new_points=result.new_balance,
        transaction_id=result.transaction_id,
        reward_code=result.reward_code,
    )


@action(AddPointsResult)
def add_points(
    principal: Principal | None,
    amount: int,
    description: str,
    user_id: str | None = None,
) -> AddPointsResult:
    target = _resolve_target(principal, user_id)
    result = ledger.add_points(target, amount, description)
    return AddPointsResult(
        success=True,
        message=get_message("points_added", amount=amount, balance=result.new_balance),
        new_points=result.new_balance,
        transaction_id=result.transaction_id,
    )


# ============================================
# Catalog
# ============================================

@action(RewardsResult)
def get_rewards(principal: Principal | None) -> RewardsResult:
    _require_principal(principal)
    rewards = catalog.list_rewards()
    return RewardsResult(
        success=True,
        message=get_message("rewards_loaded"),
        rewards=[RewardResponse(**r) for r in rewards],
    )


@action(RedeemResult)
def redeem_reward(
    principal: Principal | None,
    reward_id: str,
    idempotency_key: str | None = None,
) -> RedeemResult:
    principal = _require_principal(principal)
    reward, result = catalog.redeem_reward(principal.id, reward_id, idempotency_key)
    return RedeemResult(
        success=True,
        message=get_message("reward_redeemed", name=reward["name"], code=result.reward_code),
        new_points=result.new_balance,
        transaction_id=result.transaction_id,
        reward_code=result.reward_code,
    )


@action(RedemptionsResult)
def get_my_redemptions(principal: Principal | None) -> RedemptionsResult:
    principal = _require_principal(principal)
    rows = fulfillment.list_user_redemptions(principal.id)
    return RedemptionsResult(
        success=True,
        message=get_message("redemptions_loaded"),
        redemptions=[RedemptionResponse(**r) for r in rows],
    )


# ============================================
# Admin
# ============================================

@action(AddPointsResult)
def add_points_to_user_by_email(
    principal: Principal | None,
    email: str,
    amount: int,
    description: str | None = None,
) -> AddPointsResult:
    authorize_admin(principal)
    profile, result = ledger.add_points_by_email(
        email, amount, description or get_message("admin_points_description")
    )
    return AddPointsResult(
        success=True,
        message=get_message(
            "points_added_by_email",
            amount=amount,
            email=profile["email"],
            balance=result.new_balance,
        ),
        new_points=result.new_balance,
        transaction_id=result.transaction_id,
    )


@action(UsersResult)
def get_users_for_admin_view(principal: Principal | None) -> UsersResult:
    authorize_admin(principal)
    with store_errors("list_users"):
        users = ProfileRepository.get_all()
    return UsersResult(
        success=True,
        message=get_message("users_loaded"),
        users=[ProfileResponse(**u) for u in users],
    )


@action(RedemptionsResult)
def get_admin_redeemed_rewards(principal: Principal | None) -> RedemptionsResult:
    authorize_admin(principal)
    rows = fulfillment.list_redemptions()
    return RedemptionsResult(
        success=True,
        message=get_message("redemptions_loaded"),
        redemptions=[RedemptionResponse(**r) for r in rows],
    )


@action(ActionResult)
def fulfill_reward(principal: Principal | None, transaction_id: str) -> ActionResult:
    ctx = authorize_admin(principal)
    fulfillment.fulfill_reward(transaction_id)
    logger.info(f"Admin {ctx.user_id} fulfilled transaction {transaction_id}")
    return ActionResult(success=True, message=get_message("reward_fulfilled"))


@action(RewardResult)
def create_reward(principal: Principal | None, name: str, points_cost: int) -> RewardResult:
    authorize_admin(principal)
    reward = catalog.create_reward(name, points_cost)
    return RewardResult(
        success=True,
        message=get_message("reward_created", name=reward["name"]),
        reward=RewardResponse(**reward),
    )
