# access.py - Access guard shared by every board, list, card and comment operation
#
# authorize() walks the ownership chain (comment -> card -> list -> board ->
# organization) and checks the actor's membership on that organization. It reads
# the database on every call; membership changes take effect immediately.

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.errors import AccessDenied, InsufficientRole, NotFound
from taskboard.models import Board, BoardList, Card, CardComment, Membership, MemberRole

logger = logging.getLogger("taskboard.access")

ROLE_RANK = {
    MemberRole.OWNER: 3,
    MemberRole.ADMIN: 2,
    MemberRole.MEMBER: 1,
    MemberRole.VIEWER: 0,
}


class ResourceKind(str, Enum):
    ORGANIZATION = "organization"
    BOARD = "board"
    LIST = "list"
    CARD = "card"
    COMMENT = "comment"


@dataclass(frozen=True)
class Grant:
    granted: bool
    role: MemberRole
    organization_id: str


def role_rank(role) -> int:
    try:
        return ROLE_RANK[MemberRole(role)]
    except (ValueError, KeyError):
        return -1


def _owner_query(resource_id: str, kind: ResourceKind):
    """SELECT of the owning organization id for a board/list/card/comment"""
    stmt = select(Board.organization_id)
    if kind == ResourceKind.BOARD:
        return stmt.where(Board.id == resource_id)

    stmt = stmt.join(BoardList, BoardList.board_id == Board.id)
    if kind == ResourceKind.LIST:
        return stmt.where(BoardList.id == resource_id)

    stmt = stmt.join(Card, Card.list_id == BoardList.id)
    if kind == ResourceKind.CARD:
        return stmt.where(Card.id == resource_id)

    stmt = stmt.join(CardComment, CardComment.card_id == Card.id)
    return stmt.where(CardComment.id == resource_id)


async def resolve_organization_id(db: AsyncSession, resource_id: str, kind: ResourceKind) -> Optional[str]:
    if kind == ResourceKind.ORGANIZATION:
        return resource_id
    result = await db.execute(_owner_query(resource_id, kind).limit(1))
    return result.scalar_one_or_none()


async def get_member_role(db: AsyncSession, actor_id: str, organization_id: str) -> Optional[MemberRole]:
    stmt = select(Membership.role).where(
        Membership.user_id == actor_id,
        Membership.organization_id == organization_id,
    )
    result = await db.execute(stmt)
    role = result.scalar_one_or_none()
    return MemberRole(role) if role is not None else None


async def authorize(
    db: AsyncSession,
    actor_id: str,
    resource_id: str,
    kind: ResourceKind,
    min_role: Optional[MemberRole] = None,
) -> Grant:
    """Confirm actor_id may act on the resource, or raise.

    Raises NotFound if a board/list/card/comment id does not resolve,
    AccessDenied without a membership on the owning organization, and
    InsufficientRole when min_role is given and the actor ranks below it.
    """
    kind = ResourceKind(kind)
    organization_id = await resolve_organization_id(db, resource_id, kind)
    if organization_id is None:
        raise NotFound(f"{kind.value.capitalize()} not found")

    role = await get_member_role(db, actor_id, organization_id)
    if role is None:
        logger.info(f"Denied {kind.value} {resource_id} to user {actor_id}")
        raise AccessDenied(f"Access denied to this {kind.value}")

    if min_role is not None and role_rank(role) < role_rank(min_role):
        raise InsufficientRole(f"Requires {MemberRole(min_role).value} role or higher")

    return Grant(granted=True, role=role, organization_id=organization_id)
