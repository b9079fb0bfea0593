from sqlalchemy import create_engine, func, select, update

from app.controllers import identity_controller, otp_controller
from app.controllers.identity_controller import GithubIdentity
from app.core.database import AsyncSessionLocal
from app.models.otp_token import OtpStatus, OtpToken
from app.models.user import User


def test_second_verifier_loses_the_used_flip(client, outbox, run_db, monkeypatch, app_settings):
    r = client.post("/api/auth/request-otp", json={"email": "dev@example.com"})
    token_id = r.json()["tokenId"]
    code = outbox.last["otp"]

    # another request consumes the token between our read and our update
    rival = create_engine(app_settings.DATABASE_URL.replace("+aiosqlite", ""))
    real_check = otp_controller.verify_otp_hash

    def _check_after_rival_wins(candidate, hashed):
        with rival.begin() as conn:
            conn.execute(
                update(OtpToken).where(OtpToken.id == token_id).values(status=OtpStatus.USED)
            )
        return real_check(candidate, hashed)

    monkeypatch.setattr(otp_controller, "verify_otp_hash", _check_after_rival_wins)

    try:
        response = client.post(
            "/api/auth/verify-otp",
            json={"email": "dev@example.com", "otp": code, "tokenId": token_id},
        )
    finally:
        rival.dispose()

    assert response.status_code == 400
    assert response.json()["code"] == "token_not_pending"
    assert "set-cookie" not in response.headers

    async def _status(db):
        return (await db.execute(select(OtpToken.status).where(OtpToken.id == token_id))).scalar_one()

    assert run_db(client, _status) == OtpStatus.USED


def test_duplicate_first_login_merges_into_existing_row(client, run_db, monkeypatch):
    real_lookup = identity_controller.get_user_by_email
    lookups = []

    async def _lookup_while_rival_inserts(db, email):
        lookups.append(email)
        if len(lookups) == 1:
            async with AsyncSessionLocal() as rival:
                rival.add(User(email=email, username="first-in", role="user", xp_points=0))
                await rival.commit()
            return None
        return await real_lookup(db, email)

    monkeypatch.setattr(identity_controller, "get_user_by_email", _lookup_while_rival_inserts)

    async def _login(db):
        user = await identity_controller.reconcile(db, GithubIdentity(email="Dev@Example.com", login="octodev"))
        await db.commit()
        return user.id, user.username, user.github

    user_id, username, github = run_db(client, _login)

    assert len(lookups) == 2
    assert username == "first-in"
    assert github == "octodev"

    async def _rows(db):
        q = await db.execute(select(func.count(), func.min(User.id)).where(User.email == "dev@example.com"))
        return q.one()

    count, stored_id = run_db(client, _rows)
    assert count == 1
    assert stored_id == user_id
