# auth.py - Authentication for the task board
# Features:
# - bcrypt password hashing (cost from BCRYPT_ROUNDS)
# - JWT access and refresh tokens (HS256)
# - Password policy enforcement (min 8 chars, mixed case, digit)
# - Registration creates the user's personal organization in the same transaction

import os
import re
import uuid
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import get_db_session, transaction
from taskboard.errors import Conflict
from taskboard.models import User, new_uuid
from taskboard.services.organizations import OrganizationService

logger = logging.getLogger("taskboard.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(64)
    logger.warning(
        "JWT_SECRET_KEY not set. Generated ephemeral key. "
        "Set JWT_SECRET_KEY in production!"
    )

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
MIN_PASSWORD_LENGTH = 8
SLUG_ATTEMPTS = 5

security = HTTPBearer()


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class UserRegister(BaseModel):
    email: EmailStr
    password: str
    display_name: str = ""

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not any(c.islower() for c in v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: Dict[str, Any]


class CurrentUser(BaseModel):
    id: str
    email: str
    display_name: str
    avatar_url: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


def personal_org_identity(name: str, suffix: Optional[str] = None) -> tuple:
    """Name and slug of the organization created at registration"""
    org_name = f"{name}'s Organization"
    base = re.sub(r"\s+", "-", f"{name}'s organization".lower())
    return org_name, f"{base}-{suffix or secrets.token_hex(2)}"


async def free_personal_org_identity(db: AsyncSession, name: str) -> tuple:
    """Personal organization identity whose slug is not in use yet.

    Short random suffixes are retried a few times before falling back to a
    uuid-derived one.
    """
    for _ in range(SLUG_ATTEMPTS):
        org_name, slug = personal_org_identity(name)
        if not await OrganizationService.slug_taken(db, slug):
            return org_name, slug
    return personal_org_identity(name, uuid.uuid4().hex[:12])


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

    @staticmethod
    def _create_token(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        to_encode.update({
            "exp": now + expires_delta,
            "iat": now,
            "type": token_type,
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        delta = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        return AuthService._create_token(data, "access", delta)

    @staticmethod
    def create_refresh_token(data: Dict[str, Any]) -> str:
        return AuthService._create_token(data, "refresh", timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise HTTPException(status_code=401, detail="Token expired")
        except JWTError:
            raise HTTPException(status_code=401, detail="Invalid token")

    @staticmethod
    async def register_user(user_data: UserRegister, db: AsyncSession) -> User:
        """Create the user, their personal organization and the owner membership.

        All three rows are committed together; a duplicate email raises Conflict.
        The organization slug is chosen so that it does not collide with an
        existing one.
        """
        email = user_data.email.lower()
        result = await db.execute(select(User.id).where(User.email == email))
        if result.scalar_one_or_none():
            raise Conflict("User already exists")

        display_name = user_data.display_name or email.split("@")[0]
        org_name, slug = await free_personal_org_identity(db, display_name)

        new_user = User(
            id=new_uuid(),
            email=email,
            display_name=display_name,
            password_hash=AuthService.hash_password(user_data.password),
        )
        try:
            async with transaction(db):
                db.add(new_user)
                await db.flush()
                await OrganizationService.add_with_owner(db, org_name, slug, new_user.id)
        except IntegrityError:
            # Lost a race on either unique column; report the one that collided
            taken = await db.execute(select(User.id).where(User.email == email))
            if taken.scalar_one_or_none():
                raise Conflict("User already exists")
            raise Conflict(f"Organization slug '{slug}' already exists, please retry")

        logger.info(f"User registered: {new_user.id} with organization '{slug}'")
        return new_user

    @staticmethod
    async def authenticate_user(email: str, password: str, db: AsyncSession) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or not AuthService.verify_password(password, user.password_hash):
            logger.info(f"Failed login for {email}")
            return None
        return user


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    payload = AuthService.verify_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return CurrentUser(
        id=user.id,
        email=user.email,
        display_name=user.display_name or "",
        avatar_url=user.avatar_url,
    )
