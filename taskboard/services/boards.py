# services/boards.py - Board registry: creation, lookup, rename and soft archive
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.access import ResourceKind, authorize, get_member_role
from taskboard.database import transaction
from taskboard.errors import NotFound
from taskboard.models import Board, BoardList, Membership, new_uuid, utcnow
from taskboard.patch import FieldPatch
from taskboard.schemas import BoardOut

logger = logging.getLogger("taskboard.boards")

# Lists every new board starts with
DEFAULT_LISTS = [
    {"name": "To Do", "position": 1},
    {"name": "In Progress", "position": 2},
    {"name": "Done", "position": 3},
]


class BoardRegistry:

    @staticmethod
    async def create(
        db: AsyncSession,
        actor_id: str,
        organization_id: str,
        name: str,
        description: Optional[str] = None,
    ) -> BoardOut:
        """Create a board with its default lists; any member of the organization may do this"""
        await authorize(db, actor_id, organization_id, ResourceKind.ORGANIZATION)

        board = Board(
            id=new_uuid(),
            organization_id=organization_id,
            name=name,
            description=description or None,
            created_by=actor_id,
        )
        async with transaction(db):
            db.add(board)
            await db.flush()
            for list_def in DEFAULT_LISTS:
                db.add(BoardList(board_id=board.id, name=list_def["name"], position=list_def["position"]))

        logger.info(f"Board created: {board.id} in organization {organization_id}")
        return BoardOut.model_validate(board)

    @staticmethod
    async def list_by_organization(db: AsyncSession, organization_id: str, actor_id: str) -> List[BoardOut]:
        """Non-archived boards, newest first. Non-members get an empty list."""
        if await get_member_role(db, actor_id, organization_id) is None:
            return []

        stmt = (
            select(Board)
            .where(Board.organization_id == organization_id, Board.archived_at.is_(None))
            .order_by(Board.created_at.desc(), Board.id)
        )
        result = await db.execute(stmt)
        return [BoardOut.model_validate(b) for b in result.scalars().all()]

    @staticmethod
    async def get_by_id(db: AsyncSession, board_id: str, actor_id: str) -> Optional[BoardOut]:
        """The board, or None when it is missing, archived or not visible to the actor"""
        stmt = (
            select(Board)
            .join(Membership, Membership.organization_id == Board.organization_id)
            .where(
                Board.id == board_id,
                Membership.user_id == actor_id,
                Board.archived_at.is_(None),
            )
            .limit(1)
        )
        result = await db.execute(stmt)
        board = result.scalar_one_or_none()
        return BoardOut.model_validate(board) if board else None

    @staticmethod
    async def update(
        db: AsyncSession,
        board_id: str,
        actor_id: str,
        name: str,
        description: FieldPatch = FieldPatch.absent(),
    ) -> BoardOut:
        if await BoardRegistry.get_by_id(db, board_id, actor_id) is None:
            raise NotFound("Board not found or access denied")
        # Empty text is stored as NULL, as on create
        if description.value == "":
            description = FieldPatch.clear()

        board = await db.get(Board, board_id)
        async with transaction(db):
            board.name = name
            board.description = description.apply(board.description)
            board.updated_at = utcnow()

        logger.info(f"Board updated: {board_id}")
        return BoardOut.model_validate(board)

    @staticmethod
    async def archive(db: AsyncSession, board_id: str, actor_id: str) -> None:
        """Hide the board from listings; its lists and cards are left as they are"""
        if await BoardRegistry.get_by_id(db, board_id, actor_id) is None:
            raise NotFound("Board not found or access denied")

        board = await db.get(Board, board_id)
        async with transaction(db):
            now = utcnow()
            board.archived_at = now
            board.updated_at = now

        logger.info(f"Board archived: {board_id}")
