# services/agent_tools.py - Board operations exposed to automation clients
#
# Every tool returns {"success": True, ...} or {"success": False, "error": msg}.
# Only domain failures (TaskBoardError) become error results; anything else
# propagates to the caller.

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.errors import NotFound, TaskBoardError, ValidationFailed
from taskboard.models import User
from taskboard.patch import FieldPatch
from taskboard.services.boards import BoardRegistry
from taskboard.services.cards import CardLedger
from taskboard.services.lists import ListLedger

logger = logging.getLogger("taskboard.agent")


async def resolve_agent_actor(db: AsyncSession, configured_id: Optional[str] = None) -> Optional[str]:
    """User id the agent acts as: the configured one, else the earliest registered user"""
    if configured_id:
        user = await db.get(User, configured_id)
        if user is None:
            logger.warning(f"AGENT_ACTOR_ID {configured_id} does not match any user")
            return None
        return user.id

    stmt = select(User.id).order_by(User.created_at.asc(), User.id).limit(1)
    actor_id = (await db.execute(stmt)).scalar_one_or_none()
    if actor_id is None:
        logger.warning("No users found; agent tools disabled until a user exists")
    else:
        logger.info(f"Agent operations will run as user {actor_id}")
    return actor_id


def parse_due_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        raise ValidationFailed(f"Invalid due date: {value!r}")


def _ts(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def _card(card, *fields) -> Dict[str, Any]:
    out = {
        "id": card.id,
        "title": card.title,
        "description": card.description,
        "list_id": card.list_id,
        "due_date": _ts(card.due_date),
        "position": card.position,
    }
    for name in fields:
        out[name] = _ts(getattr(card, name))
    return out


def _failure(exc: TaskBoardError) -> Dict[str, Any]:
    return {"success": False, "error": exc.message}


class AgentTools:
    """Kanban operations performed on behalf of a single, injected actor"""

    def __init__(self, db: AsyncSession, actor_id: str):
        self.db = db
        self.actor_id = actor_id

    # === CARD OPERATIONS ===

    async def create_card(
        self,
        list_id: str,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            card = await CardLedger.create(
                self.db, list_id, self.actor_id, title,
                description=description,
                due_date=parse_due_date(due_date) if due_date else None,
            )
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "card": _card(card, "created_at")}

    async def get_card(self, card_id: str) -> Dict[str, Any]:
        try:
            card = await CardLedger.get_by_id(self.db, card_id, self.actor_id)
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "card": _card(card, "created_at", "updated_at")}

    async def update_card(self, card_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """fields holds only the keys the client sent; a None value clears that field"""
        try:
            card = await CardLedger.update(
                self.db, card_id, self.actor_id,
                title=FieldPatch.from_fields(fields, "title"),
                description=FieldPatch.from_fields(fields, "description"),
                due_date=FieldPatch.from_fields(fields, "due_date", parse=parse_due_date),
            )
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "card": _card(card, "updated_at")}

    async def move_card(self, card_id: str, list_id: str, position: Optional[float] = None) -> Dict[str, Any]:
        try:
            card = await CardLedger.move(self.db, card_id, self.actor_id, list_id, position)
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "message": "Card moved successfully", "card": _card(card)}

    async def delete_card(self, card_id: str) -> Dict[str, Any]:
        try:
            await CardLedger.delete(self.db, card_id, self.actor_id)
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "message": "Card deleted successfully"}

    async def get_cards_by_list(self, list_id: str) -> Dict[str, Any]:
        try:
            cards = await CardLedger.get_by_list(self.db, list_id, self.actor_id)
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "cards": [_card(c) for c in cards]}

    # === LIST OPERATIONS ===

    async def create_list(self, board_id: str, name: str) -> Dict[str, Any]:
        try:
            lst = await ListLedger.create(self.db, board_id, self.actor_id, name)
        except TaskBoardError as e:
            return _failure(e)
        return {
            "success": True,
            "list": {
                "id": lst.id,
                "name": lst.name,
                "board_id": lst.board_id,
                "position": lst.position,
                "created_at": _ts(lst.created_at),
            },
        }

    async def update_list(self, list_id: str, name: str) -> Dict[str, Any]:
        try:
            lst = await ListLedger.update(self.db, list_id, self.actor_id, name)
        except TaskBoardError as e:
            return _failure(e)
        return {
            "success": True,
            "list": {
                "id": lst.id,
                "name": lst.name,
                "board_id": lst.board_id,
                "updated_at": _ts(lst.updated_at),
            },
        }

    async def delete_list(self, list_id: str) -> Dict[str, Any]:
        """Delete a list together with its cards"""
        try:
            await ListLedger.delete(self.db, list_id, self.actor_id)
        except TaskBoardError as e:
            return _failure(e)
        return {"success": True, "message": "List deleted successfully"}

    async def get_lists_by_board(self, board_id: str) -> Dict[str, Any]:
        try:
            lists = await ListLedger.list_by_board(self.db, board_id, self.actor_id)
        except TaskBoardError as e:
            return _failure(e)
        return {
            "success": True,
            "lists": [
                {"id": l.id, "name": l.name, "board_id": l.board_id, "position": l.position}
                for l in lists
            ],
        }

    # === BOARD OPERATIONS ===

    async def get_board_overview(self, board_id: str) -> Dict[str, Any]:
        """Board with its lists in order, each carrying its ordered cards"""
        try:
            board = await BoardRegistry.get_by_id(self.db, board_id, self.actor_id)
            if board is None:
                raise NotFound("Board not found")
            lists = await ListLedger.list_by_board(self.db, board_id, self.actor_id)
            cards_by_list = await CardLedger.get_by_board(self.db, board_id, self.actor_id)
        except TaskBoardError as e:
            return _failure(e)

        return {
            "success": True,
            "board": {
                "id": board.id,
                "name": board.name,
                "description": board.description,
                "lists": [
                    {
                        "id": l.id,
                        "name": l.name,
                        "position": l.position,
                        "cards": [_card(c) for c in cards_by_list.get(l.id, [])],
                    }
                    for l in lists
                ],
            },
        }
