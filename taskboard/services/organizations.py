# services/organizations.py - Organizations and their memberships
import logging
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.access import ResourceKind, authorize, role_rank
from taskboard.database import transaction
from taskboard.errors import Conflict, InsufficientRole, NotFound
from taskboard.models import Board, Membership, MemberRole, Organization, User, new_uuid, utcnow
from taskboard.schemas import MemberOut, OrganizationOut, UserPublic

logger = logging.getLogger("taskboard.organizations")


def _org_out(org: Organization, role=None) -> OrganizationOut:
    out = OrganizationOut.model_validate(org)
    if role is not None:
        out.role = MemberRole(role).value
    return out


class OrganizationService:
    """Tenant boundary: creation, lookup, rename and membership management"""

    @staticmethod
    async def add_with_owner(db: AsyncSession, name: str, slug: str, owner_id: str) -> Organization:
        """Stage an organization and its owner membership on the session.

        The caller commits; use inside ``transaction()`` so both rows land together.
        """
        org = Organization(id=new_uuid(), name=name, slug=slug, created_by=owner_id)
        db.add(org)
        await db.flush()
        db.add(Membership(user_id=owner_id, organization_id=org.id, role=MemberRole.OWNER))
        return org

    @staticmethod
    async def slug_taken(db: AsyncSession, slug: str) -> bool:
        result = await db.execute(select(Organization.id).where(Organization.slug == slug))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def create(db: AsyncSession, actor_id: str, name: str, slug: str) -> OrganizationOut:
        if await OrganizationService.slug_taken(db, slug):
            raise Conflict(f"Organization slug '{slug}' already exists")

        try:
            async with transaction(db):
                org = await OrganizationService.add_with_owner(db, name, slug, actor_id)
        except IntegrityError:
            raise Conflict(f"Organization slug '{slug}' already exists")

        logger.info(f"Organization created: {org.id} ({slug})")
        return _org_out(org, MemberRole.OWNER)

    @staticmethod
    async def list_for_user(db: AsyncSession, actor_id: str) -> List[OrganizationOut]:
        stmt = (
            select(Organization, Membership.role)
            .join(Membership, Membership.organization_id == Organization.id)
            .where(Membership.user_id == actor_id)
            .order_by(Organization.created_at.asc())
        )
        result = await db.execute(stmt)
        return [_org_out(org, role) for org, role in result.all()]

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str, actor_id: str) -> Optional[OrganizationOut]:
        """Organization by slug, or None when missing or the actor is not a member"""
        stmt = (
            select(Organization, Membership.role)
            .join(Membership, Membership.organization_id == Organization.id)
            .where(Organization.slug == slug, Membership.user_id == actor_id)
            .limit(1)
        )
        row = (await db.execute(stmt)).first()
        if row is None:
            return None
        org, role = row
        return _org_out(org, role)

    @staticmethod
    async def update(db: AsyncSession, organization_id: str, actor_id: str, name: str) -> OrganizationOut:
        grant = await authorize(
            db, actor_id, organization_id, ResourceKind.ORGANIZATION, min_role=MemberRole.ADMIN,
        )
        org = await db.get(Organization, organization_id)
        if org is None:
            raise NotFound("Organization not found")

        async with transaction(db):
            org.name = name
            org.updated_at = utcnow()

        logger.info(f"Organization renamed: {organization_id}")
        return _org_out(org, grant.role)

    @staticmethod
    async def add_member(
        db: AsyncSession,
        organization_id: str,
        actor_id: str,
        email: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> MemberOut:
        grant = await authorize(
            db, actor_id, organization_id, ResourceKind.ORGANIZATION, min_role=MemberRole.ADMIN,
        )
        role = MemberRole(role)
        if role_rank(role) > role_rank(grant.role):
            raise InsufficientRole(f"Cannot grant {role.value} as {grant.role.value}")

        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")

        existing = await db.execute(
            select(Membership.user_id).where(
                Membership.user_id == user.id,
                Membership.organization_id == organization_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict("User is already a member of this organization")

        membership = Membership(
            user_id=user.id,
            organization_id=organization_id,
            role=role,
            invited_by=actor_id,
            joined_at=utcnow(),
        )
        try:
            async with transaction(db):
                db.add(membership)
        except IntegrityError:
            raise Conflict("User is already a member of this organization")

        logger.info(f"User {user.id} joined organization {organization_id} as {role.value}")
        return MemberOut(
            user=UserPublic(id=user.id, name=user.display_name, email=user.email, avatar_url=user.avatar_url),
            role=role.value,
            invited_by=actor_id,
            joined_at=membership.joined_at,
        )

    @staticmethod
    async def list_members(db: AsyncSession, organization_id: str, actor_id: str) -> List[MemberOut]:
        await authorize(db, actor_id, organization_id, ResourceKind.ORGANIZATION)

        stmt = (
            select(Membership, User)
            .join(User, User.id == Membership.user_id)
            .where(Membership.organization_id == organization_id)
            .order_by(Membership.joined_at.asc())
        )
        result = await db.execute(stmt)
        return [
            MemberOut(
                user=UserPublic(id=u.id, name=u.display_name, email=u.email, avatar_url=u.avatar_url),
                role=MemberRole(m.role).value,
                invited_by=m.invited_by,
                joined_at=m.joined_at,
            )
            for m, u in result.all()
        ]

    @staticmethod
    async def delete(db: AsyncSession, organization_id: str, actor_id: str) -> None:
        """Delete an organization and its memberships; owners only.

        Refused while the organization still holds boards, archived ones included.
        """
        await authorize(
            db, actor_id, organization_id, ResourceKind.ORGANIZATION, min_role=MemberRole.OWNER,
        )
        boards = await db.execute(
            select(func.count(Board.id)).where(Board.organization_id == organization_id)
        )
        if boards.scalar():
            raise Conflict("Cannot delete organization with existing boards")

        async with transaction(db):
            await db.execute(
                delete(Membership)
                .where(Membership.organization_id == organization_id)
                .execution_options(synchronize_session="fetch")
            )
            await db.execute(
                delete(Organization)
                .where(Organization.id == organization_id)
                .execution_options(synchronize_session="fetch")
            )

        logger.info(f"Organization deleted: {organization_id} by {actor_id}")
