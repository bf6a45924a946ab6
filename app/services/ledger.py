"""
Points ledger and redemption engine.

Balance changes run inside the ``credit_points`` and ``redeem_points``
Postgres functions (database/schema.py), called through ``db.rpc``: the
balance update, the ledger row and the reward code commit in one
transaction, so readers never see one without the others.

If those functions are not deployed (PostgREST answers PGRST202) the same
operations are sequenced over the table API instead. That path debits with
a compare-and-set loop on ``profiles.points`` and compensates any failure
after the debit: the balance is restored and, once a ledger row exists, a
reversal ``earn`` entry is appended so that
``sum(earn) - sum(redeem) == points`` keeps holding.
"""

import logging
from dataclasses import dataclass

from postgrest.exceptions import APIError

from app.core.config import settings
from app.core.errors import (
    Conflict,
    DuplicateCodeCollision,
    InsufficientPoints,
    InvalidInput,
    NotFound,
    TransientStoreError,
)
from app.repositories.point_transaction import EARN, REDEEM, PointTransactionRepository
from app.repositories.profile import ProfileRepository
from app.repositories.reward_code import RewardCodeRepository
from app.services.codes import generate_reward_code
from app.services.localization import get_message
from database.connection import (
    CHECK_VIOLATION,
    FUNCTION_NOT_FOUND,
    INSUFFICIENT_POINTS,
    INVALID_PARAMETER_VALUE,
    NO_DATA_FOUND,
    NO_UNIQUE_CODE,
    UNIQUE_VIOLATION,
    store_errors,
)

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500


@dataclass
class CreditResult:
    new_balance: int
    transaction_id: str


@dataclass
class RedemptionResult:
    new_balance: int  # Balance right after this redemption, also on replay
    transaction_id: str
    reward_code: str
    replayed: bool = False


def validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInput("amount must be an integer", reason="amount must be a whole number")
    if amount <= 0:
        raise InvalidInput("amount must be positive", reason="amount must be greater than zero")
    return amount


def validate_description(description: str | None) -> str:
    description = (description or "").strip()
    if not description:
        raise InvalidInput("empty description", reason="description is required")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidInput(
            "description too long",
            reason=f"description must be at most {MAX_DESCRIPTION_LENGTH} characters",
        )
    return description


def _raise_for_function_error(e: APIError, user_id: str, amount: int) -> None:
    """Map the ledger functions' SQLSTATEs to domain errors. Returns for anything else."""
    if e.code == NO_DATA_FOUND:
        raise NotFound(f"profile {user_id}", resource="Profile") from e
    if e.code in (INSUFFICIENT_POINTS, CHECK_VIOLATION):
        balance = int(e.details) if e.details and str(e.details).isdigit() else None
        if balance is None:
            profile = ProfileRepository.get_by_id(user_id)
            balance = profile["points"] if profile else 0
        raise InsufficientPoints(f"balance {balance} < {amount}", balance=balance, required=amount) from e
    if e.code == NO_UNIQUE_CODE:
        raise DuplicateCodeCollision(f"no unique code for user {user_id}") from e
    if e.code == INVALID_PARAMETER_VALUE:
        raise InvalidInput(e.message, reason="amount must be greater than zero") from e


# ============================================
# Sequenced path (ledger functions not deployed)
# ============================================

def _apply_delta(user_id: str, delta: int) -> int:
    """Atomically add ``delta`` to a balance. Returns the new balance.

    Raises InsufficientPoints when the result would be negative, NotFound for
    an unknown profile, and TransientStoreError when every attempt lost the
    race against a concurrent update.
    """
    attempts = settings.balance_update_attempts
    for attempt in range(attempts):
        profile = ProfileRepository.get_by_id(user_id)
        if not profile:
            raise NotFound(f"profile {user_id}", resource="Profile")

        current = profile["points"]
        new_points = current + delta
        if new_points < 0:
            raise InsufficientPoints(
                f"balance {current} < {-delta}", balance=current, required=-delta
            )

        try:
            updated = ProfileRepository.compare_and_set_points(user_id, current, new_points)
        except APIError as e:
            if e.code == CHECK_VIOLATION:
                raise InsufficientPoints(
                    "balance check constraint", balance=current, required=-delta
                ) from e
            raise

        if updated:
            return updated["points"]

        logger.warning(
            f"Balance for user {user_id} changed concurrently, retrying ({attempt + 1}/{attempts})"
        )

    logger.error(f"Gave up updating balance for user {user_id} after {attempts} attempts")
    raise TransientStoreError("balance update contention")


def _compensate(user_id: str, delta: int, reason: str, reversal_description: str | None = None) -> None:
    """Undo a balance change after a later step failed.

    Never raises: the caller re-raises the original failure. Anything that
    cannot be undone is logged for manual reconciliation.
    """
    try:
        balance = _apply_delta(user_id, delta)
    except Exception:
        logger.exception(
            f"Manual reconciliation required: could not reverse {-delta:+d} points "
            f"for user {user_id} ({reason})"
        )
        return

    if reversal_description is None:
        logger.warning(f"Reversed {-delta:+d} points for user {user_id} ({reason})")
        return

    try:
        entry = PointTransactionRepository.create(user_id, EARN, delta, reversal_description, balance)
    except Exception:
        entry = None
        logger.exception(f"Reversal ledger entry failed for user {user_id}")
    if not entry:
        logger.error(
            f"Manual reconciliation required: balance restored for user {user_id} "
            f"but no reversal entry recorded ({reason})"
        )
        return
    logger.warning(f"Reversed redemption for user {user_id} with entry {entry['id']} ({reason})")


def issue_reward_code(transaction_id: str, user_id: str, reward_id: str | None = None) -> dict:
    """Insert a pending reward code for a redemption, retrying on collisions."""
    attempts = settings.code_generation_attempts
    for attempt in range(attempts):
        code = generate_reward_code(settings.reward_code_length)
        try:
            row = RewardCodeRepository.create(transaction_id, user_id, code, reward_id)
        except APIError as e:
            if e.code != UNIQUE_VIOLATION:
                raise
            logger.warning(f"Reward code collision, regenerating ({attempt + 1}/{attempts})")
            continue
        if not row:
            raise TransientStoreError("reward code insert returned no row")
        return row
    raise DuplicateCodeCollision(f"no unique code after {attempts} attempts")


def _credit_sequenced(user_id: str, amount: int, description: str) -> CreditResult:
    new_balance = _apply_delta(user_id, amount)
    try:
        transaction = PointTransactionRepository.create(user_id, EARN, amount, description, new_balance)
        if not transaction:
            raise TransientStoreError("ledger insert returned no row")
    except Exception:
        _compensate(user_id, -amount, "earn entry not recorded")
        raise
    return CreditResult(new_balance=new_balance, transaction_id=transaction["id"])


def _redeem_sequenced(
    user_id: str,
    amount: int,
    description: str,
    reward_id: str | None,
    idempotency_key: str | None,
) -> RedemptionResult:
    new_balance = _apply_delta(user_id, -amount)

    try:
        transaction = PointTransactionRepository.create(
            user_id, REDEEM, -amount, description, new_balance, idempotency_key
        )
        if not transaction:
            raise TransientStoreError("ledger insert returned no row")
    except APIError as e:
        _compensate(user_id, amount, "redeem entry not recorded")
        if idempotency_key and e.code == UNIQUE_VIOLATION:
            # A concurrent request with the same key won the insert
            previous = _replay(user_id, idempotency_key, amount, description)
            if previous:
                return previous
        raise
    except Exception:
        _compensate(user_id, amount, "redeem entry not recorded")
        raise

    try:
        code_row = issue_reward_code(transaction["id"], user_id, reward_id)
    except Exception:
        _compensate(
            user_id,
            amount,
            f"no reward code for transaction {transaction['id']}",
            reversal_description=get_message("reversal_description", description=description),
        )
        raise

    return RedemptionResult(
        new_balance=new_balance,
        transaction_id=transaction["id"],
        reward_code=code_row["code"],
    )


# ============================================
# Public operations
# ============================================

def _replay(user_id: str, idempotency_key: str, amount: int, description: str) -> RedemptionResult | None:
    """Return the outcome of an earlier redemption sent with the same key.

    The key must be reused for the same redemption: a different amount or
    description is rejected instead of silently returning the old result.
    """
    transaction = PointTransactionRepository.get_by_idempotency_key(user_id, idempotency_key)
    if not transaction:
        return None
    if transaction["type"] != REDEEM:
        raise InvalidInput("idempotency key reused", reason="idempotency key already used")
    if -transaction["amount"] != amount or transaction["description"] != description:
        raise InvalidInput(
            f"idempotency key {idempotency_key} reused with different parameters",
            reason="idempotency key already used for a different redemption",
        )

    code = RewardCodeRepository.get_by_transaction(transaction["id"])
    if not code:
        # Sequenced path: still in flight, or failed and was reversed
        raise Conflict(f"redemption {transaction['id']} has no reward code")

    logger.info(f"Replayed redemption {transaction['id']} for user {user_id}")
    return RedemptionResult(
        new_balance=transaction["balance_after"],
        transaction_id=transaction["id"],
        reward_code=code["code"],
        replayed=True,
    )


def add_points(user_id: str, amount: int, description: str) -> CreditResult:
    """Credit points and append the matching ``earn`` entry."""
    amount = validate_amount(amount)
    description = validate_description(description)

    with store_errors("add_points", resource="Profile"):
        try:
            row = PointTransactionRepository.credit_points(user_id, amount, description)
        except APIError as e:
            if e.code != FUNCTION_NOT_FOUND:
                _raise_for_function_error(e, user_id, amount)
                raise
            logger.warning("credit_points function missing, crediting without a transaction")
            result = _credit_sequenced(user_id, amount, description)
        else:
            if not row:
                raise TransientStoreError("credit_points returned no row")
            result = CreditResult(new_balance=row["new_balance"], transaction_id=row["ledger_transaction_id"])

    logger.info(f"Credited {amount} points to user {user_id} (transaction {result.transaction_id})")
    return result


def add_points_by_email(email: str, amount: int, description: str) -> tuple[dict, CreditResult]:
    """Resolve a profile by email and credit it. Returns (profile, result)."""
    amount = validate_amount(amount)
    if not email or not email.strip():
        raise InvalidInput("empty email", reason="email is required")

    with store_errors("add_points_by_email"):
        profile = ProfileRepository.get_by_email(email)
    if not profile:
        raise NotFound(f"profile for {email}", resource="User")

    return profile, add_points(profile["id"], amount, description)


def redeem(
    user_id: str,
    amount: int,
    description: str,
    *,
    reward_id: str | None = None,
    idempotency_key: str | None = None,
) -> RedemptionResult:
    """Exchange points for a pending reward code.

    Debits the balance, appends a ``redeem`` entry (negative amount) and
    issues a unique code, all or nothing.
    """
    amount = validate_amount(amount)
    description = validate_description(description)
    idempotency_key = (idempotency_key or "").strip() or None

    with store_errors("redeem", resource="Profile"):
        if idempotency_key:
            previous = _replay(user_id, idempotency_key, amount, description)
            if previous:
                return previous

        codes = [
            generate_reward_code(settings.reward_code_length)
            for _ in range(settings.code_generation_attempts)
        ]
        try:
            row = PointTransactionRepository.redeem_points(
                user_id, amount, description, codes, reward_id, idempotency_key
            )
        except APIError as e:
            if e.code == FUNCTION_NOT_FOUND:
                logger.warning("redeem_points function missing, redeeming without a transaction")
                result = _redeem_sequenced(user_id, amount, description, reward_id, idempotency_key)
            elif idempotency_key and e.code == UNIQUE_VIOLATION:
                # A concurrent request with the same key committed first
                previous = _replay(user_id, idempotency_key, amount, description)
                if not previous:
                    raise
                return previous
            else:
                _raise_for_function_error(e, user_id, amount)
                raise
        else:
            if not row:
                raise TransientStoreError("redeem_points returned no row")
            result = RedemptionResult(
                new_balance=row["new_balance"],
                transaction_id=row["ledger_transaction_id"],
                reward_code=row["reward_code"],
            )

    logger.info(
        f"User {user_id} redeemed {amount} points (transaction {result.transaction_id}, "
        f"new balance {result.new_balance})"
    )
    return result


def ledger_balance(user_id: str) -> int:
    """Sum of the user's ledger entries (signed amounts)."""
    with store_errors("ledger_balance"):
        entries = PointTransactionRepository.list_by_user(user_id)
    return sum(entry["amount"] for entry in entries)
