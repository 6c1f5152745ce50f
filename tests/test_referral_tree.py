import pytest

from extensions import db
from models import User, ReferralLevel
from earnings.referral_tree import ReferralTreeHelper, INVITATION_CODE_LENGTH
from errors import ConflictError


def test_invitation_code_format(app_ctx):
    code = ReferralTreeHelper.generate_invitation_code()
    assert len(code) == INVITATION_CODE_LENGTH
    assert code == code.upper()
    assert code.isalnum()


def test_invitation_code_gives_up_after_collisions(app_ctx, make_user, monkeypatch):
    user = make_user()
    # Force every candidate to collide with the existing code
    monkeypatch.setattr("earnings.referral_tree.secrets.choice", lambda alphabet: "X")
    user.invitation_code = "XXXXXX"
    db.session.commit()

    with pytest.raises(ConflictError):
        ReferralTreeHelper.generate_invitation_code()


def test_find_referral_levels_stops_at_three(app_ctx, make_chain):
    chain = make_chain(5)
    newest = chain[-1]

    levels = ReferralTreeHelper.find_referral_levels(newest.id)

    assert [entry["level"] for entry in levels] == [1, 2, 3]
    assert [entry["user_id"] for entry in levels] == [chain[4].id, chain[3].id, chain[2].id]
    assert levels[0]["invitation_code"] == chain[4].invitation_code


def test_find_referral_levels_short_chain(app_ctx, make_chain):
    root, child = make_chain(2)
    levels = ReferralTreeHelper.find_referral_levels(child.id)
    assert [entry["user_id"] for entry in levels] == [child.id, root.id]


def test_find_referral_levels_cycle_guard(app_ctx, make_user):
    a = make_user()
    b = make_user(inviter=a)
    a.inviter_id = b.id
    db.session.commit()

    levels = ReferralTreeHelper.find_referral_levels(b.id)

    assert [entry["user_id"] for entry in levels] == [b.id, a.id]


def test_registration_records_upline(app_ctx, make_chain):
    chain = make_chain(4)
    newest = chain[-1]

    rows = ReferralLevel.query.filter_by(user_id=newest.id).order_by(ReferralLevel.level).all()

    assert [(row.level, row.referrer_id) for row in rows] == [
        (1, chain[2].id),
        (2, chain[1].id),
        (3, chain[0].id),
    ]


def test_get_upline_backfills_legacy_users(app_ctx, make_chain):
    root, middle, leaf = make_chain(3)
    ReferralLevel.query.filter_by(user_id=leaf.id).delete()
    db.session.commit()

    upline = ReferralTreeHelper.get_upline(leaf.id)
    db.session.commit()

    assert upline == [{"level": 1, "user_id": middle.id}, {"level": 2, "user_id": root.id}]
    assert ReferralLevel.query.filter_by(user_id=leaf.id).count() == 2


def test_get_upline_without_inviter(app_ctx, make_user):
    assert ReferralTreeHelper.get_upline(make_user().id) == []


def test_referral_network_by_level(app_ctx, make_user):
    root = make_user()
    a = make_user(inviter=root)
    b = make_user(inviter=root)
    a1 = make_user(inviter=a)
    a11 = make_user(inviter=a1)
    make_user(inviter=a11)  # level 4, out of range

    network = ReferralTreeHelper.get_referral_network(root.id)

    assert {m["id"] for m in network["level1"]} == {a.id, b.id}
    assert [m["id"] for m in network["level2"]] == [a1.id]
    assert [m["id"] for m in network["level3"]] == [a11.id]
    assert network["total"] == 4
    assert set(network["level1"][0]) == {"id", "mobile", "invitation_code", "created_at"}


def test_all_referrals_matches_network(app_ctx, make_user):
    root = make_user()
    a = make_user(inviter=root)
    a1 = make_user(inviter=a)
    a11 = make_user(inviter=a1)

    referrals = ReferralTreeHelper.get_all_referrals(root.id)

    assert [m["id"] for m in referrals["level1"]] == [a.id]
    assert [m["id"] for m in referrals["level2"]] == [a1.id]
    assert [m["id"] for m in referrals["level3"]] == [a11.id]
    assert referrals["total"] == 3


def test_verify_invitation_code(app_ctx, make_user):
    owner = make_user()

    assert ReferralTreeHelper.verify_invitation_code(owner.invitation_code.lower()) == {
        "id": owner.id, "mobile": owner.mobile,
    }
    assert ReferralTreeHelper.verify_invitation_code("NOPE00") is None


def test_verify_invitation_code_inactive_owner(app_ctx, make_user):
    owner = make_user(is_active=False)
    assert ReferralTreeHelper.verify_invitation_code(owner.invitation_code) is None
    assert db.session.get(User, owner.id) is not None
