# routers/cards.py - Card read, edit, move and delete; comments on a card
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth import CurrentUser, get_current_user
from taskboard.database import get_db_session
from taskboard.patch import FieldPatch
from taskboard.schemas import CardOut, CommentOut
from taskboard.services.cards import CardLedger
from taskboard.services.comments import CommentLog

router = APIRouter(prefix="/api/v1/cards", tags=["Cards"])


class CardUpdate(BaseModel):
    # Omitted fields are left alone; null clears description or due_date
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class CardMove(BaseModel):
    list_id: str
    position: Optional[float] = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


@router.get("/{card_id}", response_model=CardOut)
async def get_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await CardLedger.get_by_id(db, card_id, user.id)


@router.patch("/{card_id}", response_model=CardOut)
async def update_card(
    card_id: str,
    data: CardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    fields = data.model_dump(exclude_unset=True)
    return await CardLedger.update(
        db, card_id, user.id,
        title=FieldPatch.from_fields(fields, "title"),
        description=FieldPatch.from_fields(fields, "description"),
        due_date=FieldPatch.from_fields(fields, "due_date"),
    )


@router.post("/{card_id}/move", response_model=CardOut)
async def move_card(
    card_id: str,
    data: CardMove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Move to another list; without a position the card goes to the end"""
    return await CardLedger.move(db, card_id, user.id, data.list_id, data.position)


@router.delete("/{card_id}")
async def delete_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await CardLedger.delete(db, card_id, user.id)
    return {"status": "deleted", "card_id": card_id}


# ============================================================
# COMMENTS
# ============================================================

@router.get("/{card_id}/comments", response_model=List[CommentOut])
async def list_comments(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Comments on the card, newest first"""
    return await CommentLog.get_by_card(db, card_id, user.id)


@router.post("/{card_id}/comments", response_model=CommentOut, status_code=201)
async def add_comment(
    card_id: str,
    data: CommentCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await CommentLog.create(db, card_id, user.id, data.content)
