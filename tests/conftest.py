"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
import tempfile
from pathlib import Path

# Environment must be in place before config is imported
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("FLASK_ENV", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="rendimento-logs-"))
os.environ.setdefault("PAYOUT_SCHEDULER_ENABLED", "False")

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import itertools
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import User, Product
from earnings.referral_tree import ReferralTreeHelper

DEFAULT_PASSWORD = "secret123"
DEFAULT_PAY_PASSWORD = "1234"

_mobile_counter = itertools.count(900000001)


def next_mobile():
    return f"244{next(_mobile_counter)}"


@pytest.fixture
def app():
    """Fresh application with an empty in-memory database."""
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Application context for calling services directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    """Create a committed user; with inviter the upline rows are recorded too."""
    def _make_user(mobile=None, balance="0", inviter=None, is_active=True,
                   password=DEFAULT_PASSWORD, pay_password=DEFAULT_PAY_PASSWORD):
        user = User(
            mobile=mobile or next_mobile(),
            balance=Decimal(str(balance)),
            invitation_code=ReferralTreeHelper.generate_invitation_code(),
            inviter_id=inviter.id if inviter else None,
            is_active=is_active,
        )
        user.set_password(password)
        user.set_pay_password(pay_password)
        db.session.add(user)
        db.session.flush()
        if inviter:
            levels = ReferralTreeHelper.find_referral_levels(inviter.id)
            ReferralTreeHelper.record_referral_levels(user.id, levels)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def make_chain(make_user):
    """Users [root, level-1 child, level-2 child, ...] each invited by the previous one."""
    def _make_chain(length, balance="0"):
        chain = []
        for _ in range(length):
            chain.append(make_user(balance=balance, inviter=chain[-1] if chain else None))
        return chain
    return _make_chain


@pytest.fixture
def make_product():
    def _make_product(name=None, price="1000", daily_return="100", duration_days=30,
                      purchase_limit=None, is_active=True):
        product = Product(
            name=name or f"Produto {next(_mobile_counter)}",
            price=Decimal(str(price)),
            daily_return=Decimal(str(daily_return)),
            duration_days=duration_days,
            purchase_limit=purchase_limit,
            is_active=is_active,
        )
        db.session.add(product)
        db.session.commit()
        return product
    return _make_product


@pytest.fixture
def login(client):
    """Log the test client in as the given mobile."""
    def _login(mobile, password=DEFAULT_PASSWORD):
        response = client.post("/api/login", json={"mobile": mobile, "password": password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login


@pytest.fixture
def operator_headers():
    return {"Authorization": f"Bearer {TestConfig.OPERATOR_TOKEN}"}
