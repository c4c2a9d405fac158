# routers/boards.py - Boards and the lists/cards they contain
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth import CurrentUser, get_current_user
from taskboard.database import get_db_session
from taskboard.patch import FieldPatch
from taskboard.schemas import BoardOut, CardOut, ListOut
from taskboard.services.boards import BoardRegistry
from taskboard.services.cards import CardLedger
from taskboard.services.lists import ListLedger

router = APIRouter(prefix="/api/v1/boards", tags=["Boards"])


# ============================================================
# SCHEMAS
# ============================================================

class BoardCreate(BaseModel):
    organization_id: str
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class BoardUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None  # Omit to keep, null to clear


class ListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    position: Optional[float] = None


# ============================================================
# BOARD ENDPOINTS
# ============================================================

@router.post("", response_model=BoardOut, status_code=201)
async def create_board(
    data: BoardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a board with the default To Do / In Progress / Done lists"""
    return await BoardRegistry.create(db, user.id, data.organization_id, data.name, data.description)


@router.get("/{board_id}", response_model=BoardOut)
async def get_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await BoardRegistry.get_by_id(db, board_id, user.id)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    return board


@router.patch("/{board_id}", response_model=BoardOut)
async def update_board(
    board_id: str,
    data: BoardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    fields = data.model_dump(exclude_unset=True)
    return await BoardRegistry.update(
        db, board_id, user.id, data.name,
        description=FieldPatch.from_fields(fields, "description"),
    )


@router.post("/{board_id}/archive")
async def archive_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await BoardRegistry.archive(db, board_id, user.id)
    return {"status": "archived", "board_id": board_id}


# ============================================================
# LISTS & CARDS OF A BOARD
# ============================================================

@router.get("/{board_id}/lists", response_model=List[ListOut])
async def list_lists(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await ListLedger.list_by_board(db, board_id, user.id)


@router.post("/{board_id}/lists", response_model=ListOut, status_code=201)
async def create_list(
    board_id: str,
    data: ListCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await ListLedger.create(db, board_id, user.id, data.name, data.position)


@router.get("/{board_id}/cards", response_model=Dict[str, List[CardOut]])
async def list_cards_by_list(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Cards grouped by list id, every list present"""
    return await CardLedger.get_by_board(db, board_id, user.id)
