from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import User, Investment, Commission, LedgerEntry
from earnings.commissions import calculate_commission, distribute_commissions
from earnings.plan import get_commission_plan


def _investment(user, product, amount=None):
    now = datetime(2026, 1, 1, 12, 0)
    investment = Investment(
        user_id=user.id,
        product_id=product.id,
        amount=Decimal(str(amount)) if amount is not None else product.price,
        daily_return=product.daily_return,
        purchased_at=now,
        next_payout_at=now + timedelta(days=1),
        expires_at=now + timedelta(days=product.duration_days),
    )
    db.session.add(investment)
    db.session.flush()
    return investment


def _balance(user_id):
    return db.session.get(User, user_id).balance


@pytest.mark.parametrize("amount, rate, expected", [
    ("1000", "0.20", "200.00"),
    ("1000", "0.08", "80.00"),
    ("1000", "0.02", "20.00"),
    ("333.33", "0.20", "66.66"),
    ("0.04", "0.20", "0.00"),
])
def test_calculate_commission_rounds_down(amount, rate, expected):
    assert calculate_commission(Decimal(amount), Decimal(rate)) == Decimal(expected)


def test_three_levels_paid(app_ctx, make_chain, make_product):
    root, l2, l1, buyer = make_chain(4)
    product = make_product(price="1000")

    investment = _investment(buyer, product)
    created = distribute_commissions(investment, get_commission_plan())
    db.session.commit()

    assert [(c.level, c.beneficiary_id, c.amount) for c in created] == [
        (1, l1.id, Decimal("200.00")),
        (2, l2.id, Decimal("80.00")),
        (3, root.id, Decimal("20.00")),
    ]
    assert _balance(l1.id) == Decimal("200.00")
    assert _balance(l2.id) == Decimal("80.00")
    assert _balance(root.id) == Decimal("20.00")
    assert _balance(buyer.id) == Decimal("0.00")


def test_fourth_level_gets_nothing(app_ctx, make_chain, make_product):
    chain = make_chain(5)
    investment = _investment(chain[-1], make_product(price="1000"))

    distribute_commissions(investment, get_commission_plan())
    db.session.commit()

    assert _balance(chain[0].id) == Decimal("0.00")
    assert Commission.query.filter_by(beneficiary_id=chain[0].id).count() == 0


def test_partial_chain(app_ctx, make_chain, make_product):
    inviter, buyer = make_chain(2)
    created = distribute_commissions(_investment(buyer, make_product(price="500")), get_commission_plan())
    db.session.commit()

    assert len(created) == 1
    assert _balance(inviter.id) == Decimal("100.00")


def test_no_upline_no_commissions(app_ctx, make_user, make_product):
    buyer = make_user()
    assert distribute_commissions(_investment(buyer, make_product()), get_commission_plan()) == []


def test_distribution_is_idempotent(app_ctx, make_chain, make_product):
    inviter, buyer = make_chain(2)
    investment = _investment(buyer, make_product(price="1000"))
    plan = get_commission_plan()

    distribute_commissions(investment, plan)
    db.session.commit()
    second = distribute_commissions(investment, plan)
    db.session.commit()

    assert second == []
    assert _balance(inviter.id) == Decimal("200.00")
    assert Commission.query.filter_by(investment_id=investment.id).count() == 1


def test_unique_constraint_backs_idempotency(app_ctx, make_chain, make_product):
    inviter, buyer = make_chain(2)
    investment = _investment(buyer, make_product())
    distribute_commissions(investment, get_commission_plan())
    db.session.commit()

    db.session.add(Commission(
        beneficiary_id=inviter.id,
        source_user_id=buyer.id,
        investment_id=investment.id,
        level=1,
        rate=Decimal("0.20"),
        base_amount=Decimal("1000"),
        amount=Decimal("200"),
    ))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_inactive_beneficiary_skipped(app_ctx, make_chain, make_product):
    root, middle, buyer = make_chain(3)
    middle.is_active = False
    db.session.commit()

    created = distribute_commissions(_investment(buyer, make_product(price="1000")), get_commission_plan())
    db.session.commit()

    assert [c.level for c in created] == [2]
    assert _balance(middle.id) == Decimal("0.00")
    assert _balance(root.id) == Decimal("80.00")


def test_tiny_amount_skips_zero_commissions(app_ctx, make_chain, make_product):
    root, middle, buyer = make_chain(3)
    product = make_product(price="1000")
    created = distribute_commissions(_investment(buyer, product, amount="0.10"), get_commission_plan())
    db.session.commit()

    # 0.10 * 0.20 = 0.02 is paid, 0.10 * 0.08 rounds down to 0.00
    assert [(c.level, c.amount) for c in created] == [(1, Decimal("0.02"))]


def test_commission_writes_ledger(app_ctx, make_chain, make_product):
    inviter, buyer = make_chain(2)
    investment = _investment(buyer, make_product(price="1000"))
    distribute_commissions(investment, get_commission_plan())
    db.session.commit()

    entry = LedgerEntry.query.filter_by(user_id=inviter.id).one()
    assert entry.type == "commission"
    assert entry.amount == Decimal("200.00")
    assert entry.balance_after == Decimal("200.00")
    assert entry.reference == f"INV-{investment.id}-L1"
