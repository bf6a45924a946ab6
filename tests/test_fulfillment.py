import pytest

from app.core.errors import AlreadyFulfilled, InvalidInput, NotFound
from app.services import catalog, fulfillment, ledger


def test_fulfill_marks_code_once(db, make_user):
    user = make_user(points=200)
    redemption = ledger.redeem(user.id, 100, "Coffee")

    row = fulfillment.fulfill_reward(redemption.transaction_id)

    assert row["fulfilled_at"] is not None
    assert fulfillment.fulfillment_status(row) == fulfillment.FULFILLED


def test_second_fulfill_is_rejected_and_keeps_timestamp(db, make_user):
    user = make_user(points=200)
    redemption = ledger.redeem(user.id, 100, "Coffee")
    first = fulfillment.fulfill_reward(redemption.transaction_id)

    with pytest.raises(AlreadyFulfilled):
        fulfillment.fulfill_reward(redemption.transaction_id)

    stored = db.rows("reward_codes")[0]
    assert stored["fulfilled_at"] == first["fulfilled_at"]


def test_fulfill_unknown_transaction(db):
    with pytest.raises(NotFound):
        fulfillment.fulfill_reward("no-such-transaction")


def test_fulfill_requires_transaction_id(db):
    with pytest.raises(InvalidInput):
        fulfillment.fulfill_reward("  ")


def test_list_redemptions_embeds_transaction_and_profile(db, make_user):
    alice = make_user(points=300, email="alice@example.com")
    bob = make_user(points=300, email="bob@example.com")
    first = ledger.redeem(alice.id, 100, "Coffee")
    second = ledger.redeem(bob.id, 50, "Cookie")
    fulfillment.fulfill_reward(first.transaction_id)

    rows = fulfillment.list_redemptions()

    assert [r["transaction_id"] for r in rows] == [second.transaction_id, first.transaction_id]
    latest, earliest = rows
    assert latest["status"] == fulfillment.PENDING
    assert latest["transaction"]["description"] == "Cookie"
    assert latest["transaction"]["amount"] == -50
    assert latest["transaction"]["profile"]["email"] == "bob@example.com"
    assert earliest["status"] == fulfillment.FULFILLED
    assert earliest["transaction"]["profile"]["email"] == "alice@example.com"


def test_list_user_redemptions_attaches_catalog_entry(db, make_user):
    user = make_user(points=500)
    other = make_user(points=500)
    reward = catalog.create_reward("Free coffee", 150)
    catalog.redeem_reward(user.id, reward["id"])
    ledger.redeem(other.id, 10, "Sticker")

    rows = fulfillment.list_user_redemptions(user.id)

    assert len(rows) == 1
    assert rows[0]["reward"]["name"] == "Free coffee"
    assert rows[0]["status"] == fulfillment.PENDING
