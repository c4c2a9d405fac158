# tests/test_auth.py - Registration, login and token tests
import re
import secrets

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from taskboard.auth import AuthService, personal_org_identity
from taskboard.errors import Conflict
from taskboard.models import Membership, MemberRole, User
from taskboard.services.organizations import OrganizationService
from tests.conftest import TEST_PASSWORD, get_auth_headers, register


def test_password_hash_roundtrip():
    hashed = AuthService.hash_password("Secret123")
    assert hashed != "Secret123"
    assert AuthService.verify_password("Secret123", hashed)
    assert not AuthService.verify_password("Secret124", hashed)


def test_personal_org_identity():
    name, slug = personal_org_identity("Alice Smith")
    assert name == "Alice Smith's Organization"
    assert re.fullmatch(r"alice-smith's-organization-[0-9a-f]{4}", slug)


@pytest.mark.asyncio
class TestRegistration:
    async def test_register_success(self, client: AsyncClient):
        res = await client.post("/api/v1/auth/register", json={
            "email": "newuser@example.com",
            "password": "SecurePass123",
            "display_name": "New User",
        })
        assert res.status_code == 201
        data = res.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["display_name"] == "New User"

    async def test_register_creates_personal_org(self, client: AsyncClient):
        res = await client.post("/api/v1/auth/register", json={
            "email": "carol@example.com",
            "password": "SecurePass123",
        })
        headers = {"Authorization": f"Bearer {res.json()['access_token']}"}

        orgs = (await client.get("/api/v1/organizations", headers=headers)).json()
        assert len(orgs) == 1
        assert orgs[0]["name"] == "carol's Organization"
        assert orgs[0]["slug"].startswith("carol's-organization-")
        assert orgs[0]["role"] == "owner"

    async def test_register_weak_password(self, client: AsyncClient):
        for password in ("short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"):
            res = await client.post("/api/v1/auth/register", json={
                "email": "weak@example.com",
                "password": password,
            })
            assert res.status_code == 422

    async def test_register_duplicate_email(self, client: AsyncClient):
        await client.post("/api/v1/auth/register", json={
            "email": "dupe@example.com",
            "password": "SecurePass123",
        })
        res = await client.post("/api/v1/auth/register", json={
            "email": "dupe@example.com",
            "password": "SecurePass123",
        })
        assert res.status_code == 409
        assert res.json()["code"] == "conflict"

    async def test_register_invalid_email(self, client: AsyncClient):
        res = await client.post("/api/v1/auth/register", json={
            "email": "not-an-email",
            "password": "SecurePass123",
        })
        assert res.status_code == 422


@pytest.mark.asyncio
class TestLogin:
    async def test_login_success(self, client: AsyncClient, alice):
        res = await client.post("/api/v1/auth/login", json={
            "email": "alice@example.com",
            "password": TEST_PASSWORD,
        })
        assert res.status_code == 200
        assert res.json()["user"]["id"] == alice.id

    async def test_login_wrong_password(self, client: AsyncClient, alice):
        res = await client.post("/api/v1/auth/login", json={
            "email": "alice@example.com",
            "password": "WrongPassword1",
        })
        assert res.status_code == 401

    async def test_login_unknown_user(self, client: AsyncClient):
        res = await client.post("/api/v1/auth/login", json={
            "email": "ghost@example.com",
            "password": TEST_PASSWORD,
        })
        assert res.status_code == 401


@pytest.mark.asyncio
class TestTokens:
    async def test_me(self, client: AsyncClient, alice):
        res = await client.get("/api/v1/auth/me", headers=get_auth_headers(alice))
        assert res.status_code == 200
        assert res.json()["email"] == "alice@example.com"
        assert res.json()["display_name"] == "Alice"

    async def test_missing_token_rejected(self, client: AsyncClient):
        res = await client.get("/api/v1/auth/me")
        assert res.status_code in (401, 403)

    async def test_garbage_token_rejected(self, client: AsyncClient):
        res = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert res.status_code == 401

    async def test_refresh_token_not_accepted_as_access(self, client: AsyncClient, alice):
        token = AuthService.create_refresh_token({"sub": alice.id})
        res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    async def test_refresh(self, client: AsyncClient, alice):
        token = AuthService.create_refresh_token({"sub": alice.id})
        res = await client.post("/api/v1/auth/refresh", json={"refresh_token": token})
        assert res.status_code == 200
        assert res.json()["user"]["id"] == alice.id


@pytest.mark.asyncio
async def test_register_user_service_creates_owner_membership(db_session, alice):
    orgs = await OrganizationService.list_for_user(db_session, alice.id)
    assert len(orgs) == 1
    assert orgs[0].role == MemberRole.OWNER.value
    assert orgs[0].name == "Alice's Organization"
    assert orgs[0].created_by == alice.id


@pytest.mark.asyncio
async def test_register_same_name_with_repeating_slug_suffix(db_session, monkeypatch):
    monkeypatch.setattr(secrets, "token_hex", lambda n=None: "abcd")

    first = await register(db_session, "alice@x.com", "alice")
    second = await register(db_session, "alice@y.com", "alice")
    assert first.id != second.id

    users = await db_session.execute(select(func.count(User.id)))
    assert users.scalar() == 2
    memberships = await db_session.execute(select(func.count()).select_from(Membership))
    assert memberships.scalar() == 2

    slugs = [
        (await OrganizationService.list_for_user(db_session, user.id))[0].slug
        for user in (first, second)
    ]
    assert slugs[0] == "alice's-organization-abcd"
    assert slugs[1] != slugs[0]
    assert slugs[1].startswith("alice's-organization-")


@pytest.mark.asyncio
async def test_register_duplicate_email_service(db_session, alice):
    with pytest.raises(Conflict, match="User already exists"):
        await register(db_session, "ALICE@example.com", "Someone")
