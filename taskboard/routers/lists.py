# routers/lists.py - List rename, reorder and delete; cards within a list
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth import CurrentUser, get_current_user
from taskboard.database import get_db_session
from taskboard.schemas import CardOut, ListOut
from taskboard.services.cards import CardLedger
from taskboard.services.lists import ListLedger

router = APIRouter(prefix="/api/v1/lists", tags=["Lists"])


class ListUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ListPosition(BaseModel):
    position: float


class CardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    position: Optional[float] = None
    due_date: Optional[datetime] = None


@router.patch("/{list_id}", response_model=ListOut)
async def update_list(
    list_id: str,
    data: ListUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await ListLedger.update(db, list_id, user.id, data.name)


@router.put("/{list_id}/position", response_model=ListOut)
async def update_list_position(
    list_id: str,
    data: ListPosition,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await ListLedger.update_position(db, list_id, user.id, data.position)


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete the list along with its cards and their comments"""
    await ListLedger.delete(db, list_id, user.id)
    return {"status": "deleted", "list_id": list_id}


@router.get("/{list_id}/cards", response_model=List[CardOut])
async def list_cards(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await CardLedger.get_by_list(db, list_id, user.id)


@router.post("/{list_id}/cards", response_model=CardOut, status_code=201)
async def create_card(
    list_id: str,
    data: CardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await CardLedger.create(
        db, list_id, user.id, data.title,
        description=data.description,
        position=data.position,
        due_date=data.due_date,
    )
