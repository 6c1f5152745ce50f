from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from extensions import db
from models import User, Investment, Commission, LedgerEntry
from earnings.purchases import purchase_product
from errors import InsufficientBalanceError, NotFoundError, ValidationError, PermissionDeniedError

NOW = datetime(2026, 3, 1, 8, 30)


def test_purchase_debits_and_opens_investment(app_ctx, make_user, make_product):
    user = make_user(balance="5000")
    product = make_product(price="2000", daily_return="150", duration_days=10)

    result = purchase_product(user.id, product.id, now=NOW)

    assert result["balance"] == 3000.0
    investment = db.session.get(Investment, result["investment"]["id"])
    assert investment.amount == Decimal("2000.00")
    assert investment.daily_return == Decimal("150.00")
    assert investment.purchased_at == NOW
    assert investment.next_payout_at == NOW + timedelta(hours=24)
    assert investment.expires_at == NOW + timedelta(days=10)
    assert investment.status == "active"

    entry = LedgerEntry.query.filter_by(user_id=user.id, type="purchase").one()
    assert entry.amount == Decimal("-2000.00")
    assert entry.balance_after == Decimal("3000.00")


def test_purchase_pays_upline(app_ctx, make_user, make_chain, make_product):
    root, inviter = make_chain(2)
    buyer = make_user(balance="1000", inviter=inviter)
    product = make_product(price="1000")

    result = purchase_product(buyer.id, product.id, now=NOW)

    assert [(c["level"], c["beneficiary_id"], c["amount"]) for c in result["commissions"]] == [
        (1, inviter.id, 200.0),
        (2, root.id, 80.0),
    ]
    assert result["balance"] == 0.0
    assert db.session.get(User, inviter.id).balance == Decimal("200.00")
    assert db.session.get(User, root.id).balance == Decimal("80.00")


def test_insufficient_balance_rolls_back(app_ctx, make_chain, make_product):
    inviter, buyer = make_chain(2)
    product = make_product(price="1000")

    with pytest.raises(InsufficientBalanceError):
        purchase_product(buyer.id, product.id, now=NOW)

    assert Investment.query.count() == 0
    assert Commission.query.count() == 0
    assert db.session.get(User, inviter.id).balance == Decimal("0.00")
    assert LedgerEntry.query.count() == 0


def test_purchase_limit(app_ctx, make_user, make_product):
    user = make_user(balance="10000")
    product = make_product(price="1000", purchase_limit=2)

    purchase_product(user.id, product.id, now=NOW)
    purchase_product(user.id, product.id, now=NOW)
    with pytest.raises(ValidationError):
        purchase_product(user.id, product.id, now=NOW)

    assert db.session.get(User, user.id).balance == Decimal("8000.00")


def test_unknown_or_inactive_product(app_ctx, make_user, make_product):
    user = make_user(balance="10000")
    hidden = make_product(is_active=False)

    with pytest.raises(NotFoundError):
        purchase_product(user.id, 9999, now=NOW)
    with pytest.raises(NotFoundError):
        purchase_product(user.id, hidden.id, now=NOW)


def test_inactive_user_cannot_purchase(app_ctx, make_user, make_product):
    user = make_user(balance="10000", is_active=False)
    with pytest.raises(PermissionDeniedError):
        purchase_product(user.id, make_product().id, now=NOW)
