import asyncio

from sqlalchemy import func, select

import seed_admin
from app.models.user import User


def _seed_users(client, run_db, *users):
    async def _seed(db):
        db.add_all(users)
        await db.commit()

    run_db(client, _seed)


def _save(client, **body):
    return client.post("/api/auth/profile", json=body)


def test_get_profile_by_wallet_then_email(client, run_db):
    _seed_users(
        client,
        run_db,
        User(email="a@example.com", username="alice", wallet_address="0xa", github="alice-gh"),
        User(email="b@example.com", username="bob", wallet_address="0xb"),
    )

    by_wallet = client.get("/api/auth/profile", params={"walletAddress": "0xa", "email": "b@example.com"})
    assert by_wallet.status_code == 200
    profile = by_wallet.json()["profile"]
    assert profile["email"] == "a@example.com"
    assert profile["githubUsername"] == "alice-gh"
    assert profile["xpPoints"] == 0

    by_email = client.get("/api/auth/profile", params={"email": "B@Example.com"})
    assert by_email.json()["profile"]["username"] == "bob"


def test_get_profile_falls_back_to_session(client, outbox):
    r = client.post("/api/auth/request-otp", json={"email": "dev@example.com"})
    client.post(
        "/api/auth/verify-otp",
        json={"email": "dev@example.com", "otp": outbox.last["otp"], "tokenId": r.json()["tokenId"]},
    )

    response = client.get("/api/auth/profile")

    assert response.status_code == 200
    assert response.json()["profile"]["email"] == "dev@example.com"


def test_get_profile_without_lookup_key(client):
    response = client.get("/api/auth/profile")

    assert response.status_code == 400
    assert response.json()["error"] == "Missing walletAddress or email"


def test_get_profile_unknown_user(client):
    response = client.get("/api/auth/profile", params={"walletAddress": "0xnothing"})

    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "User not found", "code": "not_found"}


def test_list_all_profiles(client, run_db):
    _seed_users(
        client,
        run_db,
        User(email="a@example.com", username="alice"),
        User(email="b@example.com"),
    )

    response = client.get("/api/auth/profile", params={"all": "true"})

    assert response.status_code == 200
    profiles = response.json()["profiles"]
    assert {p["email"] for p in profiles} == {"a@example.com", "b@example.com"}
    assert {p["username"] for p in profiles} == {"alice", ""}


def test_upsert_creates_then_updates(client, run_db):
    created = _save(client, email="New@Example.com", walletAddress=" 0xnew ", username="newbie")
    assert created.status_code == 200, created.text
    assert created.json()["profile"]["walletAddress"] == "0xnew"
    assert created.json()["profile"]["email"] == "new@example.com"

    updated = _save(client, email="new@example.com", walletAddress="0xnew2", username="newbie", xpPoints=7)
    assert updated.status_code == 200
    profile = updated.json()["profile"]
    assert profile["walletAddress"] == "0xnew2"
    assert profile["xpPoints"] == 7

    async def _count(db):
        return (await db.execute(select(func.count()).select_from(User))).scalar_one()

    assert run_db(client, _count) == 1


def test_upsert_rejects_taken_username(client, run_db):
    _seed_users(client, run_db, User(email="a@example.com", username="alice"))

    response = _save(client, email="b@example.com", walletAddress="0xb", username="alice")

    assert response.status_code == 400
    assert response.json()["error"] == {"username": ["Username is already taken"]}


def test_upsert_rejects_wallet_of_another_user(client, run_db):
    _seed_users(client, run_db, User(email="a@example.com", username="alice", wallet_address="0xa"))

    response = _save(client, email="b@example.com", walletAddress="0xa", username="bobby")

    assert response.status_code == 400
    assert "walletAddress" in response.json()["error"]


def test_upsert_validates_payload(client):
    response = _save(client, email="a@example.com", walletAddress="", username="a b")

    assert response.status_code == 400
    errors = response.json()["error"]
    assert "walletAddress" in errors
    assert "username" in errors


def test_seed_admin_creates_then_promotes(client, run_db, monkeypatch):
    monkeypatch.setattr(seed_admin, "ADMIN_EMAIL", "root@example.com")
    _seed_users(client, run_db, User(email="root@example.com", username="root", role="partner"))

    asyncio.run(seed_admin.seed())

    async def _load(db):
        return (await db.execute(select(User).where(User.email == "root@example.com"))).scalar_one()

    user = run_db(client, _load)
    assert user.role == "admin"
    assert user.username == "root"

    # second run is a no-op
    asyncio.run(seed_admin.seed())
    assert run_db(client, _load).role == "admin"
