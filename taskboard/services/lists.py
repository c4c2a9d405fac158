# services/lists.py - Ordered lists (columns) within a board
import logging
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.access import ResourceKind, authorize
from taskboard.database import transaction
from taskboard.models import BoardList, Card, CardComment, utcnow
from taskboard.schemas import ListOut

logger = logging.getLogger("taskboard.lists")


async def next_list_position(db: AsyncSession, board_id: str) -> float:
    stmt = select(func.max(BoardList.position)).where(BoardList.board_id == board_id)
    result = await db.execute(stmt)
    return (result.scalar() or 0) + 1


async def delete_lists_cascade(db: AsyncSession, list_ids) -> None:
    """Delete lists with their cards and those cards' comments (caller owns the transaction)"""
    card_ids = select(Card.id).where(Card.list_id.in_(list_ids))
    await db.execute(
        delete(CardComment).where(CardComment.card_id.in_(card_ids))
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        delete(Card).where(Card.list_id.in_(list_ids))
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        delete(BoardList).where(BoardList.id.in_(list_ids))
        .execution_options(synchronize_session="fetch")
    )


class ListLedger:
    """Lists ordered by position, then creation time, then id"""

    @staticmethod
    async def list_by_board(db: AsyncSession, board_id: str, actor_id: str) -> List[ListOut]:
        await authorize(db, actor_id, board_id, ResourceKind.BOARD)

        stmt = (
            select(BoardList)
            .where(BoardList.board_id == board_id)
            .order_by(BoardList.position.asc(), BoardList.created_at.asc(), BoardList.id)
        )
        result = await db.execute(stmt)
        return [ListOut.model_validate(lst) for lst in result.scalars().all()]

    @staticmethod
    async def create(
        db: AsyncSession,
        board_id: str,
        actor_id: str,
        name: str,
        position: Optional[float] = None,
    ) -> ListOut:
        """Append a list to the board, or place it at an explicit position (0 included)"""
        await authorize(db, actor_id, board_id, ResourceKind.BOARD)

        if position is None:
            position = await next_list_position(db, board_id)

        lst = BoardList(board_id=board_id, name=name, position=position)
        async with transaction(db):
            db.add(lst)

        logger.info(f"List created: {lst.id} on board {board_id} at {position}")
        return ListOut.model_validate(lst)

    @staticmethod
    async def update(db: AsyncSession, list_id: str, actor_id: str, name: str) -> ListOut:
        await authorize(db, actor_id, list_id, ResourceKind.LIST)

        lst = await db.get(BoardList, list_id)
        async with transaction(db):
            lst.name = name
            lst.updated_at = utcnow()

        return ListOut.model_validate(lst)

    @staticmethod
    async def update_position(db: AsyncSession, list_id: str, actor_id: str, position: float) -> ListOut:
        # Collisions with sibling positions are allowed
        await authorize(db, actor_id, list_id, ResourceKind.LIST)

        lst = await db.get(BoardList, list_id)
        async with transaction(db):
            lst.position = position
            lst.updated_at = utcnow()

        logger.info(f"List {list_id} moved to {position}")
        return ListOut.model_validate(lst)

    @staticmethod
    async def delete(db: AsyncSession, list_id: str, actor_id: str) -> None:
        await authorize(db, actor_id, list_id, ResourceKind.LIST)

        async with transaction(db):
            await delete_lists_cascade(db, [list_id])

        logger.info(f"List deleted: {list_id}")
