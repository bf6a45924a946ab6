#!/usr/bin/env python3
"""
Compare every profile balance with the sum of its ledger entries.

Any drift means a compensation step failed (look for "Manual reconciliation
required" in the API logs). Exits with status 1 when drift is found.

Run inside the backend container:
    docker exec -it loyalty-backend-1 python -m scripts.reconcile_ledger
"""

import sys
from pathlib import Path

# Add the app to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.repositories.profile import ProfileRepository
from app.services.ledger import ledger_balance


def find_drift() -> list[tuple[dict, int]]:
    """Return (profile, ledger_sum) for every profile whose balance disagrees."""
    drifted = []
    for profile in ProfileRepository.get_all():
        total = ledger_balance(profile["id"])
        if total != profile["points"]:
            drifted.append((profile, total))
    return drifted


def main() -> int:
    drifted = find_drift()
    if not drifted:
        print("All balances match the ledger")
        return 0

    print(f"{len(drifted)} profile(s) out of balance:")
    for profile, total in drifted:
        print(
            f"  {profile['id']} {profile['email']}: balance={profile['points']} "
            f"ledger={total} diff={profile['points'] - total:+d}"
        )
    return 1


if __name__ == "__main__":
    sys.exit(main())
