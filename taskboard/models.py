# models.py - Database models for the task board
# - UUID (text) primary keys everywhere
# - Organization-scoped tenancy through memberships (owner, admin, member, viewer)
# - Soft archive for boards, float positions for lists and cards

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Float, Enum as SQLEnum, ForeignKey, Text, Index,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class MemberRole(str, PyEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=False, default="")
    avatar_url = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ============================================================
# ORGANIZATIONS & MEMBERSHIPS
# ============================================================

class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    created_by = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Membership(Base):
    """Grants a user a role inside one organization (one row per pair)"""
    __tablename__ = "memberships"

    user_id = Column(String, ForeignKey("users.id"), primary_key=True)
    organization_id = Column(String, ForeignKey("organizations.id"), primary_key=True)
    role = Column(SQLEnum(MemberRole), nullable=False, default=MemberRole.MEMBER)
    invited_by = Column(String, ForeignKey("users.id"), nullable=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_membership_org", "organization_id"),
    )


# ============================================================
# KANBAN BOARD
# ============================================================

class Board(Base):
    """Kanban board owned by an organization"""
    __tablename__ = "boards"

    id = Column(String, primary_key=True, default=new_uuid)
    organization_id = Column(String, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(String, ForeignKey("users.id"), nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)  # Soft archive marker
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_board_org_archived", "organization_id", "archived_at"),
    )


class BoardList(Base):
    """Ordered column within a board"""
    __tablename__ = "lists"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    position = Column(Float, nullable=False)  # Not unique; ties ordered by created_at
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_list_board_pos", "board_id", "position"),
    )


class Card(Base):
    """Task card inside a list"""
    __tablename__ = "cards"

    id = Column(String, primary_key=True, default=new_uuid)
    list_id = Column(String, ForeignKey("lists.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    position = Column(Float, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_card_list_pos", "list_id", "position"),
    )


class CardComment(Base):
    """Comment on a card; only its author may edit or delete it"""
    __tablename__ = "card_comments"

    id = Column(String, primary_key=True, default=new_uuid)
    card_id = Column(String, ForeignKey("cards.id"), nullable=False, index=True)
    author_id = Column(String, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_comment_card_time", "card_id", "created_at"),
    )
