# schemas.py - Read models returned by the core services
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserPublic(BaseModel):
    """Public identity attached to cards and comments"""
    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None


class OrganizationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    role: Optional[str] = None  # Requesting user's role


class MemberOut(BaseModel):
    user: UserPublic
    role: str
    invited_by: Optional[str] = None
    joined_at: datetime


class BoardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    created_by: str
    archived_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ListOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    board_id: str
    name: str
    position: float
    created_at: datetime
    updated_at: datetime


class CardOut(BaseModel):
    id: str
    list_id: str
    title: str
    description: Optional[str] = None
    position: float
    due_date: Optional[datetime] = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    creator: Optional[UserPublic] = None


class CommentOut(BaseModel):
    id: str
    card_id: str
    author_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    author: Optional[UserPublic] = None
