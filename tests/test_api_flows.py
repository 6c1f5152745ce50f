"""End-to-end flows through the HTTP API."""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from extensions import db, referral_cache
from models import User, Investment
from earnings import wallet

PASSWORD = "secret123"
PAY_PASSWORD = "1234"
IBAN = "AO06004000001234567890123"


def register(client, mobile, invitation_code=None):
    payload = {"mobile": mobile, "password": PASSWORD, "pay_password": PAY_PASSWORD}
    if invitation_code:
        payload["invitation_code"] = invitation_code
    return client.post("/api/register", json=payload)


def register_chain(client, mobiles):
    users = []
    code = None
    for mobile in mobiles:
        response = register(client, mobile, code)
        assert response.status_code == 201, response.get_json()
        user = response.get_json()["data"]["user"]
        users.append(user)
        code = user["invitation_code"]
    return users


def balance_of(app, user_id):
    with app.app_context():
        return db.session.get(User, user_id).balance


def test_health(client):
    response = client.get("/health")
    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert "timestamp" in body


def test_register_records_levels(client):
    users = register_chain(client, ["244900000001", "244900000002", "244900000003", "244900000004"])

    response = register(client, "244900000005", users[-1]["invitation_code"])
    levels = response.get_json()["data"]["referral_levels"]

    assert [(entry["level"], entry["user_id"]) for entry in levels] == [
        (1, users[3]["id"]),
        (2, users[2]["id"]),
        (3, users[1]["id"]),
    ]


def test_register_validation(client):
    assert register(client, "244900000010").status_code == 201
    assert register(client, "244900000010").status_code == 409

    bad_code = register(client, "244900000011", "ZZZZZZ")
    assert bad_code.status_code == 400
    assert bad_code.get_json() == {"success": False, "error": "Invalid invitation code"}

    missing = client.post("/api/register", json={"mobile": "244900000012"})
    assert missing.status_code == 400
    assert client.post("/api/register", data="nope").status_code == 400


def test_login_logout_session(client):
    register(client, "244900000020")
    client.post("/api/logout")
    assert client.get("/api/session").get_json()["data"]["authenticated"] is False

    wrong = client.post("/api/login", json={"mobile": "244900000020", "password": "wrong-one"})
    assert wrong.status_code == 401

    ok = client.post("/api/login", json={"mobile": "244900000020", "password": PASSWORD})
    assert ok.status_code == 200
    session = client.get("/api/session").get_json()["data"]
    assert session["authenticated"] is True
    assert session["user"]["mobile"] == "244900000020"


def test_protected_routes_require_login(client):
    response = client.get("/api/user/profile")
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_register_invalidates_upline_networks(client, monkeypatch):
    redis_client = MagicMock()
    monkeypatch.setattr(referral_cache, "redis", redis_client)
    level3, level2, level1 = register_chain(client, ["244900000101", "244900000102", "244900000103"])
    redis_client.reset_mock()

    register(client, "244900000104", level1["invitation_code"])

    redis_client.delete.assert_called_once_with(
        f"referral-network:{level1['id']}",
        f"referral-network:{level2['id']}",
        f"referral-network:{level3['id']}",
    )


def test_verify_invitation(client):
    user = register_chain(client, ["244900000030"])[0]

    valid = client.get(f"/api/invitation/{user['invitation_code']}/verify").get_json()["data"]
    invalid = client.get("/api/invitation/AAAAAA/verify").get_json()["data"]

    assert valid == {"valid": True, "owner": {"id": user["id"], "mobile": "244900000030"}}
    assert invalid == {"valid": False}


def test_network_is_self_only(client):
    root, child = register_chain(client, ["244900000040", "244900000041"])
    client.post("/api/login", json={"mobile": "244900000040", "password": PASSWORD})

    own = client.get(f"/api/user/{root['id']}/referral-network")
    assert own.status_code == 200
    assert [m["id"] for m in own.get_json()["data"]["level1"]] == [child["id"]]

    all_refs = client.get(f"/api/user/{root['id']}/all-referrals").get_json()["data"]
    assert all_refs["total"] == 1

    assert client.get(f"/api/user/{child['id']}/referral-network").status_code == 403


def test_operator_auth(client, operator_headers):
    assert client.post("/ops/payouts/run").status_code == 401
    assert client.post("/ops/payouts/run", headers={"Authorization": "Bearer wrong"}).status_code == 403
    response = client.post("/ops/payouts/run", headers=operator_headers)
    assert response.status_code == 200
    assert response.get_json()["data"]["lock_acquired"] is True


def test_purchase_pays_three_uplines(app, client, operator_headers):
    users = register_chain(client, ["244900000051", "244900000052", "244900000053", "244900000054"])
    level3, level2, level1, buyer = users

    product = client.post("/ops/products", headers=operator_headers, json={
        "name": "Produto Teste", "price": "10000", "daily_return": "1500", "duration_days": 30,
    })
    assert product.status_code == 201
    product_id = product.get_json()["data"]["id"]

    with app.app_context():
        account_id = wallet.add_deposit_account("Rendimento Lda", "BAI", IBAN).id

    # buyer is the logged-in client after the last registration
    deposit = client.post("/api/deposits", json={"amount": 10000, "deposit_account_id": account_id})
    assert deposit.status_code == 201
    deposit_id = deposit.get_json()["data"]["id"]

    approved = client.post(f"/ops/deposits/{deposit_id}/approve", headers=operator_headers)
    assert approved.get_json()["data"]["status"] == "completed"

    purchase = client.post(f"/api/products/{product_id}/purchase")
    assert purchase.status_code == 201, purchase.get_json()
    data = purchase.get_json()["data"]
    assert data["balance"] == 0.0
    assert [(c["level"], c["amount"]) for c in data["commissions"]] == [(1, 2000.0), (2, 800.0), (3, 200.0)]

    assert balance_of(app, level1["id"]) == Decimal("2000.00")
    assert balance_of(app, level2["id"]) == Decimal("800.00")
    assert balance_of(app, level3["id"]) == Decimal("200.00")
    assert balance_of(app, buyer["id"]) == Decimal("0.00")

    client.post("/api/login", json={"mobile": "244900000053", "password": PASSWORD})
    commissions = client.get("/api/user/commissions").get_json()["data"]
    assert commissions["totals_by_level"]["level1"] == 2000.0
    assert commissions["commissions"][0]["source_user_id"] == buyer["id"]

    earnings = client.get("/api/user/earnings").get_json()["data"]
    assert earnings["commissions"] == 2000.0


def test_purchase_without_funds(app, client, operator_headers):
    register(client, "244900000060")
    product_id = client.post("/ops/products", headers=operator_headers, json={
        "name": "Produto Caro", "price": "5000", "daily_return": "500",
    }).get_json()["data"]["id"]

    response = client.post(f"/api/products/{product_id}/purchase")

    assert response.status_code == 400
    assert response.get_json()["error"] == "Insufficient balance"
    with app.app_context():
        assert Investment.query.count() == 0


def test_products_listing(client, operator_headers):
    client.post("/ops/products", headers=operator_headers, json={
        "name": "Produto 1", "price": "6000", "daily_return": "1000",
    })
    duplicate = client.post("/ops/products", headers=operator_headers, json={
        "name": "Produto 1", "price": "6000", "daily_return": "1000",
    })
    assert duplicate.status_code == 409

    products = client.get("/api/products").get_json()["data"]
    assert [p["name"] for p in products] == ["Produto 1"]
    assert products[0]["total_return"] == 30000.0


def test_withdrawal_flow(app, client, operator_headers):
    user = register_chain(client, ["244900000070"])[0]
    with app.app_context():
        db.session.get(User, user["id"]).balance = Decimal("5000")
        db.session.commit()

    account = client.post("/api/bank-accounts", json={"holder_name": "Ana", "bank": "BFA", "iban": IBAN})
    assert account.status_code == 201
    account_id = account.get_json()["data"]["id"]

    bad = client.post("/api/withdrawals", json={"amount": 2000, "pay_password": "9999", "bank_account_id": account_id})
    assert bad.status_code == 403

    created = client.post("/api/withdrawals", json={"amount": 2000, "pay_password": PAY_PASSWORD, "bank_account_id": account_id})
    assert created.status_code == 201
    withdrawal_id = created.get_json()["data"]["withdrawal"]["id"]
    assert balance_of(app, user["id"]) == Decimal("3000.00")

    failed = client.post(f"/ops/withdrawals/{withdrawal_id}/fail", headers=operator_headers, json={"note": "IBAN closed"})
    assert failed.get_json()["data"]["status"] == "failed"
    assert balance_of(app, user["id"]) == Decimal("5000.00")

    history = client.get("/api/user/ledger").get_json()["data"]
    assert [e["type"] for e in history["entries"]] == ["refund", "withdrawal"]


def test_checkin_once_per_day(client):
    register(client, "244900000080")

    first = client.post("/api/checkin")
    second = client.post("/api/checkin")

    assert first.status_code == 201
    assert first.get_json()["data"]["balance"] == 50.0
    assert second.status_code == 409
    assert client.get("/api/checkin").get_json()["data"]["checked_in"] is True


@pytest.mark.parametrize("path", ["/api/user/ledger?page=x", "/api/user/commissions?limit=abc"])
def test_bad_pagination(client, path):
    register(client, "244900000090")
    assert client.get(path).status_code == 400
