# routers/organizations.py - Organizations and membership management
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth import CurrentUser, get_current_user
from taskboard.database import get_db_session
from taskboard.models import MemberRole
from taskboard.schemas import BoardOut, MemberOut, OrganizationOut
from taskboard.services.boards import BoardRegistry
from taskboard.services.organizations import OrganizationService

router = APIRouter(prefix="/api/v1/organizations", tags=["Organizations"])


# ============================================================
# SCHEMAS
# ============================================================

class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-z0-9][a-z0-9'-]*$")


class OrganizationUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class MemberAdd(BaseModel):
    email: EmailStr
    role: MemberRole = MemberRole.MEMBER


# ============================================================
# ENDPOINTS
# ============================================================

@router.get("", response_model=List[OrganizationOut])
async def list_organizations(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Organizations the current user belongs to, with their role"""
    return await OrganizationService.list_for_user(db, user.id)


@router.post("", response_model=OrganizationOut, status_code=201)
async def create_organization(
    data: OrganizationCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await OrganizationService.create(db, user.id, data.name, data.slug)


@router.get("/by-slug/{slug}", response_model=OrganizationOut)
async def get_organization_by_slug(
    slug: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    org = await OrganizationService.get_by_slug(db, slug, user.id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.patch("/{organization_id}", response_model=OrganizationOut)
async def update_organization(
    organization_id: str,
    data: OrganizationUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await OrganizationService.update(db, organization_id, user.id, data.name)


@router.delete("/{organization_id}")
async def delete_organization(
    organization_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Owner only; refused with 409 while the organization has boards"""
    await OrganizationService.delete(db, organization_id, user.id)
    return {"status": "deleted", "organization_id": organization_id}


@router.get("/{organization_id}/members", response_model=List[MemberOut])
async def list_members(
    organization_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await OrganizationService.list_members(db, organization_id, user.id)


@router.post("/{organization_id}/members", response_model=MemberOut, status_code=201)
async def add_member(
    organization_id: str,
    data: MemberAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Add an existing user by email; requires admin or owner"""
    return await OrganizationService.add_member(db, organization_id, user.id, data.email, data.role)


@router.get("/{organization_id}/boards", response_model=List[BoardOut])
async def list_boards(
    organization_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Active boards of the organization; empty for non-members"""
    return await BoardRegistry.list_by_organization(db, organization_id, user.id)
