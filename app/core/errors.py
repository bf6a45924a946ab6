"""Domain errors raised by the loyalty services.

Each error carries a stable ``kind`` (returned to clients as the ``error``
field of an action result) and a ``message_key`` looked up in
``app.services.localization``. Keyword arguments are kept for message
formatting.
"""


class LoyaltyError(Exception):
    kind = "error"
    message_key = "unexpected_error"
    status_code = 500

    def __init__(self, detail: str | None = None, message_key: str | None = None, **params):
        super().__init__(detail or self.kind)
        self.detail = detail
        self.params = params
        if message_key:
            self.message_key = message_key


class InvalidInput(LoyaltyError):
    kind = "invalid_input"
    message_key = "invalid_input"
    status_code = 422


class Unauthenticated(LoyaltyError):
    kind = "unauthenticated"
    message_key = "unauthenticated"
    status_code = 401


class Unauthorized(LoyaltyError):
    kind = "unauthorized"
    message_key = "unauthorized"
    status_code = 403


class NotFound(LoyaltyError):
    kind = "not_found"
    message_key = "not_found"
    status_code = 404


class InsufficientPoints(LoyaltyError):
    kind = "insufficient_points"
    message_key = "insufficient_points"
    status_code = 409


class AlreadyFulfilled(LoyaltyError):
    kind = "already_fulfilled"
    message_key = "already_fulfilled"
    status_code = 409


class Conflict(LoyaltyError):
    kind = "conflict"
    message_key = "request_conflict"
    status_code = 409


class DuplicateCodeCollision(Conflict):
    """A generated reward code already exists. Retryable with a fresh code."""

    message_key = "code_generation_failed"


class TransientStoreError(LoyaltyError):
    kind = "transient_store_error"
    message_key = "store_unavailable"
    status_code = 503


class IdentityError(LoyaltyError):
    """The identity provider rejected a sign-up, sign-in or sign-out."""

    kind = "identity_error"
    message_key = "identity_error"
    status_code = 400


class DeliveryError(LoyaltyError):
    """The email provider did not accept a message."""

    kind = "delivery_failed"
    message_key = "verification_send_failed"
    status_code = 502
