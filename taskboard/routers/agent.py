# routers/agent.py - Automation endpoints backed by AgentTools
#
# Authenticated with the X-Agent-API-Key header. Operations run as the agent
# actor resolved at startup (app.state.agent_actor_id).

import os
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import get_db_session
from taskboard.services.agent_tools import AgentTools

AGENT_API_KEY = os.getenv("AGENT_API_KEY", "")


def require_agent_key(x_agent_api_key: Optional[str] = Header(None)) -> None:
    if not AGENT_API_KEY or not x_agent_api_key or not secrets.compare_digest(
        x_agent_api_key, AGENT_API_KEY
    ):
        raise HTTPException(status_code=401, detail="Invalid agent API key")


async def get_agent_tools(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AgentTools:
    actor_id = getattr(request.app.state, "agent_actor_id", None)
    if not actor_id:
        raise HTTPException(status_code=503, detail="No agent actor configured")
    return AgentTools(db, actor_id)


router = APIRouter(
    prefix="/api/v1/agent",
    tags=["Agent"],
    dependencies=[Depends(require_agent_key)],
)


# ============================================================
# SCHEMAS
# ============================================================

class AgentCardCreate(BaseModel):
    list_id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[str] = None  # ISO 8601


class AgentCardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[str] = None  # ISO 8601, null clears


class AgentCardMove(BaseModel):
    list_id: str
    position: Optional[float] = None


class AgentListCreate(BaseModel):
    board_id: str
    name: str = Field(..., min_length=1)


class AgentListUpdate(BaseModel):
    name: str = Field(..., min_length=1)


# ============================================================
# CARD OPERATIONS
# ============================================================

@router.post("/cards")
async def create_card(data: AgentCardCreate, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.create_card(data.list_id, data.title, data.description, data.due_date)


@router.get("/cards/{card_id}")
async def get_card(card_id: str, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.get_card(card_id)


@router.put("/cards/{card_id}")
async def update_card(card_id: str, data: AgentCardUpdate, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.update_card(card_id, data.model_dump(exclude_unset=True))


@router.put("/cards/{card_id}/move")
async def move_card(card_id: str, data: AgentCardMove, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.move_card(card_id, data.list_id, data.position)


@router.delete("/cards/{card_id}")
async def delete_card(card_id: str, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.delete_card(card_id)


@router.get("/lists/{list_id}/cards")
async def get_cards_by_list(list_id: str, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.get_cards_by_list(list_id)


# ============================================================
# LIST OPERATIONS
# ============================================================

@router.post("/lists")
async def create_list(data: AgentListCreate, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.create_list(data.board_id, data.name)


@router.put("/lists/{list_id}")
async def update_list(list_id: str, data: AgentListUpdate, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.update_list(list_id, data.name)


@router.delete("/lists/{list_id}")
async def delete_list(list_id: str, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.delete_list(list_id)


@router.get("/boards/{board_id}/lists")
async def get_lists_by_board(board_id: str, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.get_lists_by_board(board_id)


@router.get("/boards/{board_id}/overview")
async def get_board_overview(board_id: str, tools: AgentTools = Depends(get_agent_tools)):
    return await tools.get_board_overview(board_id)
