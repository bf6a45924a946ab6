import pytest

from app.services import actions
from tests.helpers import balance_of, ledger_entries, ledger_sum


def snapshot(db):
    return {name: db.rows(name) for name in ("profiles", "point_transactions", "reward_codes", "rewards")}


# ============================================
# Identity
# ============================================

def test_sign_up_creates_profile_with_zero_points(db, identity):
    result = actions.sign_up("Ada", "ada@example.com", "s3cret-pass")

    assert result.success is True
    profiles = db.rows("profiles")
    assert len(profiles) == 1
    assert profiles[0]["email"] == "ada@example.com"
    assert profiles[0]["points"] == 0
    assert profiles[0]["is_admin"] is False


def test_sign_up_duplicate_email_is_reported(db, identity):
    actions.sign_up("Ada", "ada@example.com", "s3cret-pass")

    result = actions.sign_up("Ada again", "ada@example.com", "another-pass")

    assert result.success is False
    assert result.error == "identity_error"
    assert "already registered" in result.message
    assert len(db.rows("profiles")) == 1


def test_sign_up_removes_auth_user_when_profile_insert_fails(db, identity):
    db.fail_next("profiles", "insert")

    result = actions.sign_up("Ada", "ada@example.com", "s3cret-pass")

    assert result.success is False
    assert result.error == "transient_store_error"
    assert len(identity.deleted) == 1
    assert identity.users == {}
    assert db.rows("profiles") == []


def test_sign_in_returns_session(db, identity):
    actions.sign_up("Ada", "ada@example.com", "s3cret-pass")

    result = actions.sign_in("ada@example.com", "s3cret-pass")

    assert result.success is True
    assert result.access_token
    assert result.user_id == db.rows("profiles")[0]["id"]


def test_sign_in_wrong_password(db, identity):
    actions.sign_up("Ada", "ada@example.com", "s3cret-pass")

    result = actions.sign_in("ada@example.com", "nope-nope")

    assert result.success is False
    assert result.error == "identity_error"
    assert result.access_token is None


def test_sign_out_revokes_token(db, identity):
    result = actions.sign_out("token-123")

    assert result.success is True
    assert identity.signed_out == ["token-123"]


# ============================================
# Profile and points
# ============================================

def test_profile_is_created_lazily(db):
    from app.services.identity import Principal

    principal = Principal(id="new-user", email="new@example.com")

    result = actions.get_user_profile(principal)

    assert result.success is True
    assert result.profile.points == 0
    assert result.profile.name == "new"
    assert result.recent_activity == []
    assert len(db.rows("profiles")) == 1


def test_profile_includes_recent_activity_newest_first(db, make_user):
    user = make_user(points=300)
    actions.redeem_points(user, 100, "Coffee")

    result = actions.get_user_profile(user)

    assert result.profile.points == 200
    assert [t.type for t in result.recent_activity] == ["redeem", "earn"]
    assert result.recent_activity[0].amount == -100


def test_unauthenticated_calls_fail_without_side_effects(db, make_user):
    make_user(points=100)
    before = snapshot(db)

    outcomes = [
        actions.get_user_profile(None),
        actions.redeem_points(None, 10, "Coffee"),
        actions.add_points(None, 10, "Purchase"),
        actions.get_rewards(None),
        actions.redeem_reward(None, "reward-1"),
        actions.get_my_redemptions(None),
        actions.add_points_to_user_by_email(None, "user1@example.com", 10),
    ]

    for result in outcomes:
        assert result.success is False
        assert result.error == "unauthenticated"
    assert snapshot(db) == before


def test_redeem_round_trip(db, make_user):
    admin = make_user(is_admin=True)
    user = make_user(points=300)

    redeemed = actions.redeem_points(user, 100, "Coffee")

    assert redeemed.success is True
    assert redeemed.new_points == 200
    assert redeemed.reward_code in redeemed.message

    listing = actions.get_admin_redeemed_rewards(admin)
    assert listing.success is True
    assert len(listing.redemptions) == 1
    assert listing.redemptions[0].status == "pending"
    assert listing.redemptions[0].transaction.profile.email == user.email

    fulfilled = actions.fulfill_reward(admin, redeemed.transaction_id)
    assert fulfilled.success is True

    again = actions.fulfill_reward(admin, redeemed.transaction_id)
    assert again.success is False
    assert again.error == "already_fulfilled"

    listing = actions.get_admin_redeemed_rewards(admin)
    assert listing.redemptions[0].status == "fulfilled"
    assert listing.redemptions[0].fulfilled_at is not None


def test_redeem_with_no_points(db, make_user):
    user = make_user()

    result = actions.redeem_points(user, 50, "coffee")

    assert result.success is False
    assert result.error == "insufficient_points"
    assert result.new_points is None
    assert "50" in result.message
    assert ledger_entries(db, user.id) == []


def test_invalid_amount_is_rejected(db, make_user):
    user = make_user(points=100)

    result = actions.redeem_points(user, -10, "Coffee")

    assert result.success is False
    assert result.error == "invalid_input"
    assert balance_of(db, user.id) == 100


def test_user_cannot_act_on_another_users_balance(db, make_user):
    victim = make_user(points=100)
    attacker = make_user()

    redeemed = actions.redeem_points(attacker, 50, "Steal", user_id=victim.id)
    credited = actions.add_points(attacker, 50, "Gift", user_id=attacker.id)

    assert redeemed.success is False
    assert redeemed.error == "unauthorized"
    assert balance_of(db, victim.id) == 100
    assert credited.success is True


def test_admin_can_act_on_another_users_balance(db, make_user):
    admin = make_user(is_admin=True)
    user = make_user(points=100)

    result = actions.add_points(admin, 25, "Birthday", user_id=user.id)

    assert result.success is True
    assert balance_of(db, user.id) == 125


# ============================================
# Admin
# ============================================

def test_admin_adds_points_by_email(db, make_user):
    admin = make_user(is_admin=True)
    user = make_user(email="customer@example.com")

    result = actions.add_points_to_user_by_email(admin, "customer@example.com", 200)

    assert result.success is True
    assert result.new_points == 200
    assert "customer@example.com" in result.message
    assert balance_of(db, user.id) == 200
    entry = ledger_entries(db, user.id)[-1]
    assert entry["type"] == "earn"
    assert entry["amount"] == 200
    assert entry["description"]


def test_admin_add_points_unknown_email(db, make_user):
    admin = make_user(is_admin=True)

    result = actions.add_points_to_user_by_email(admin, "ghost@example.com", 200)

    assert result.success is False
    assert result.error == "not_found"


def test_non_admin_is_rejected_from_every_admin_operation(db, make_user):
    user = make_user(points=300, email="plain@example.com")
    redeemed = actions.redeem_points(user, 100, "Coffee")
    before = snapshot(db)

    outcomes = [
        actions.add_points_to_user_by_email(user, "plain@example.com", 500),
        actions.get_users_for_admin_view(user),
        actions.get_admin_redeemed_rewards(user),
        actions.fulfill_reward(user, redeemed.transaction_id),
        actions.create_reward(user, "Free coffee", 100),
    ]

    for result in outcomes:
        assert result.success is False
        assert result.error == "unauthorized"
    assert snapshot(db) == before


def test_revoked_admin_is_rejected_on_next_call(db, make_user):
    admin = make_user(is_admin=True)
    assert actions.get_users_for_admin_view(admin).success is True

    with db.lock:
        next(p for p in db.tables["profiles"] if p["id"] == admin.id)["is_admin"] = False

    result = actions.get_users_for_admin_view(admin)
    assert result.success is False
    assert result.error == "unauthorized"


def test_admin_user_list(db, make_user):
    admin = make_user(is_admin=True)
    make_user(points=40)

    result = actions.get_users_for_admin_view(admin)

    assert result.success is True
    assert len(result.users) == 2
    assert {u.points for u in result.users} == {0, 40}


# ============================================
# Catalog
# ============================================

def test_catalog_redemption_charges_reward_cost(db, make_user):
    admin = make_user(is_admin=True)
    user = make_user(points=500)
    created = actions.create_reward(admin, "Free coffee", 150)
    assert created.success is True

    rewards = actions.get_rewards(user)
    assert [r.name for r in rewards.rewards] == ["Free coffee"]

    result = actions.redeem_reward(user, created.reward.id)

    assert result.success is True
    assert result.new_points == 350
    mine = actions.get_my_redemptions(user)
    assert mine.redemptions[0].reward.name == "Free coffee"
    assert mine.redemptions[0].code == result.reward_code


def test_redeem_unknown_reward(db, make_user):
    user = make_user(points=500)

    result = actions.redeem_reward(user, "missing-reward")

    assert result.success is False
    assert result.error == "not_found"
    assert balance_of(db, user.id) == 500


@pytest.mark.parametrize("name,cost", [("", 100), ("Coffee", 0), ("Coffee", -1)])
def test_create_reward_validates_input(db, make_user, name, cost):
    admin = make_user(is_admin=True)

    result = actions.create_reward(admin, name, cost)

    assert result.success is False
    assert result.error == "invalid_input"
    assert db.rows("rewards") == []


# ============================================
# Failures
# ============================================

def test_store_failure_returns_generic_message(db, make_user):
    user = make_user(points=100)
    db.fail_next("redeem_points", "rpc")

    result = actions.redeem_points(user, 10, "Coffee")

    assert result.success is False
    assert result.error == "transient_store_error"
    assert "XX000" not in result.message
    assert "fake datastore error" not in result.message
    assert balance_of(db, user.id) == 100


def test_unexpected_error_is_reported_generically(db, make_user, monkeypatch):
    user = make_user(points=100)

    def boom(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(actions.ledger, "redeem", boom)

    result = actions.redeem_points(user, 10, "Coffee")

    assert result.success is False
    assert result.error == "error"
    assert "secret internals" not in result.message


def test_failed_code_issue_keeps_ledger_consistent(db, make_user):
    user = make_user(points=100)
    db.fail_next("reward_codes", "insert")

    result = actions.redeem_points(user, 60, "Coffee")

    assert result.success is False
    assert result.error == "transient_store_error"
    assert balance_of(db, user.id) == 100
    assert ledger_sum(db, user.id) == 100


@pytest.mark.parametrize("table,operation,call", [
    ("reward_codes", "update", lambda admin: actions.fulfill_reward(admin, "not-a-uuid")),
    ("rewards", "select", lambda admin: actions.redeem_reward(admin, "not-a-uuid")),
    ("redeem_points", "rpc", lambda admin: actions.redeem_points(admin, 10, "Coffee", user_id="not-a-uuid")),
])
def test_unparseable_identifier_is_not_found(db, make_user, table, operation, call):
    admin = make_user(is_admin=True, points=100)
    db.fail_next(table, operation, code="22P02")

    result = call(admin)

    assert result.success is False
    assert result.error == "not_found"
