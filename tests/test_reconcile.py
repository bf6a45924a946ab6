from app.services import ledger
from scripts import reconcile_ledger


def test_no_drift_after_normal_activity(db, make_user):
    user = make_user(points=300)
    ledger.redeem(user.id, 120, "Coffee")

    assert reconcile_ledger.find_drift() == []
    assert reconcile_ledger.main() == 0


def test_drift_is_reported(db, make_user, capsys):
    user = make_user(points=300)
    with db.lock:
        next(p for p in db.tables["profiles"] if p["id"] == user.id)["points"] = 350

    drifted = reconcile_ledger.find_drift()

    assert len(drifted) == 1
    profile, total = drifted[0]
    assert profile["id"] == user.id
    assert total == 300
    assert reconcile_ledger.main() == 1
    assert "diff=+50" in capsys.readouterr().out
