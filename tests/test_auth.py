import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from firebase_admin import auth as firebase_auth

from lapply import auth
from lapply.models import User


@pytest.fixture
def firebase(monkeypatch):
    monkeypatch.setattr(auth, "FIREBASE_PROJECT_ID", "lapply-test")
    monkeypatch.setattr(auth, "ensure_firebase_initialized", lambda: None)
    tokens = {"good": {"uid": "uid-9", "email": "staff@example.com", "name": "Staff"}}

    def verify(token):
        if token == "expired":
            raise firebase_auth.ExpiredIdTokenError("Token expired", None)
        if token not in tokens:
            raise ValueError("bad token")
        return tokens[token]

    monkeypatch.setattr(auth.firebase_auth, "verify_id_token", verify)
    return tokens


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_get_current_user_creates_account(db, firebase):
    user = await auth.get_current_user(bearer("good"), db)

    assert user.firebase_uid == "uid-9"
    assert db.query(User).count() == 1
    assert (await auth.get_current_user(bearer("good"), db)).id == user.id
    assert db.query(User).count() == 1


@pytest.mark.asyncio
async def test_expired_and_invalid_tokens(db, firebase):
    with pytest.raises(HTTPException) as expired:
        await auth.get_current_user(bearer("expired"), db)
    assert expired.value.status_code == 401
    assert expired.value.headers == {"X-Token-Expired": "true"}

    with pytest.raises(HTTPException) as invalid:
        await auth.get_current_user(bearer("forged"), db)
    assert invalid.value.status_code == 401


@pytest.mark.asyncio
async def test_organization_and_admin_guards(monkeypatch):
    monkeypatch.setattr(auth, "ADMIN_EMAILS", ["admin@example.com"])
    staff = User(email="Staff@example.com", organization_id=None)
    admin = User(email="ADMIN@example.com", organization_id="org-1")

    with pytest.raises(HTTPException) as no_org:
        await auth.get_current_organization_user(staff)
    assert no_org.value.status_code == 403
    assert await auth.get_current_organization_user(admin) is admin

    with pytest.raises(HTTPException) as not_admin:
        await auth.require_admin(staff)
    assert not_admin.value.status_code == 403
    assert await auth.require_admin(admin) is admin
