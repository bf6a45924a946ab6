from fastapi import Response, status

from app.core.errors import LoyaltyError
from app.domain.schemas import ActionResult


def _status_by_kind() -> dict[str, int]:
    statuses: dict[str, int] = {}
    pending = [LoyaltyError]
    while pending:
        cls = pending.pop()
        statuses.setdefault(cls.kind, cls.status_code)
        pending.extend(cls.__subclasses__())
    return statuses


STATUS_BY_KIND = _status_by_kind()
STATUS_BY_KIND["invalid_code"] = status.HTTP_400_BAD_REQUEST


def respond(response: Response, result: ActionResult) -> ActionResult:
    """Set the HTTP status from a structured result and return it as the body."""
    if not result.success:
        response.status_code = STATUS_BY_KIND.get(
            result.error, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return result
