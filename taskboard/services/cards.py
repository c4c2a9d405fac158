# services/cards.py - Cards within lists: ordering, hydration, edits and moves
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.access import ResourceKind, authorize
from taskboard.database import transaction
from taskboard.errors import ValidationFailed
from taskboard.models import BoardList, Card, CardComment, User, utcnow
from taskboard.patch import FieldPatch
from taskboard.schemas import CardOut, UserPublic

logger = logging.getLogger("taskboard.cards")

CARD_ORDER = (Card.position.asc(), Card.created_at.asc(), Card.id)


def _hydrated():
    """Cards joined with their creator's public identity"""
    return select(Card, User).outerjoin(User, User.id == Card.created_by)


def _card_out(card: Card, creator: Optional[User]) -> CardOut:
    return CardOut(
        id=card.id,
        list_id=card.list_id,
        title=card.title,
        description=card.description,
        position=card.position,
        due_date=card.due_date,
        created_by=card.created_by,
        created_at=card.created_at,
        updated_at=card.updated_at,
        creator=UserPublic(
            id=creator.id, name=creator.display_name, email=creator.email,
        ) if creator else None,
    )


async def next_card_position(db: AsyncSession, list_id: str) -> float:
    stmt = select(func.max(Card.position)).where(Card.list_id == list_id)
    result = await db.execute(stmt)
    return (result.scalar() or 0) + 1


class CardLedger:

    @staticmethod
    async def get_by_list(db: AsyncSession, list_id: str, actor_id: str) -> List[CardOut]:
        await authorize(db, actor_id, list_id, ResourceKind.LIST)

        stmt = _hydrated().where(Card.list_id == list_id).order_by(*CARD_ORDER)
        result = await db.execute(stmt)
        return [_card_out(card, creator) for card, creator in result.all()]

    @staticmethod
    async def get_by_board(db: AsyncSession, board_id: str, actor_id: str) -> Dict[str, List[CardOut]]:
        """Cards grouped by list id; every list of the board is a key, in list order"""
        await authorize(db, actor_id, board_id, ResourceKind.BOARD)

        lists_stmt = (
            select(BoardList.id)
            .where(BoardList.board_id == board_id)
            .order_by(BoardList.position.asc(), BoardList.created_at.asc(), BoardList.id)
        )
        grouped: Dict[str, List[CardOut]] = {
            list_id: [] for list_id in (await db.execute(lists_stmt)).scalars().all()
        }

        cards_stmt = (
            _hydrated()
            .join(BoardList, BoardList.id == Card.list_id)
            .where(BoardList.board_id == board_id)
            .order_by(*CARD_ORDER)
        )
        for card, creator in (await db.execute(cards_stmt)).all():
            grouped.setdefault(card.list_id, []).append(_card_out(card, creator))
        return grouped

    @staticmethod
    async def get_by_id(db: AsyncSession, card_id: str, actor_id: str) -> CardOut:
        """Hydrated card; NotFound for an unknown id, AccessDenied for non-members"""
        await authorize(db, actor_id, card_id, ResourceKind.CARD)

        row = (await db.execute(_hydrated().where(Card.id == card_id))).first()
        card, creator = row
        return _card_out(card, creator)

    @staticmethod
    async def create(
        db: AsyncSession,
        list_id: str,
        actor_id: str,
        title: str,
        description: Optional[str] = None,
        position: Optional[float] = None,
        due_date: Optional[datetime] = None,
    ) -> CardOut:
        await authorize(db, actor_id, list_id, ResourceKind.LIST)
        if not title or not title.strip():
            raise ValidationFailed("Card title is required")

        if position is None:
            position = await next_card_position(db, list_id)

        card = Card(
            list_id=list_id,
            title=title,
            description=description or None,
            position=position,
            due_date=due_date,
            created_by=actor_id,
        )
        async with transaction(db):
            db.add(card)

        logger.info(f"Card created: {card.id} in list {list_id} at {position}")
        return await CardLedger.get_by_id(db, card.id, actor_id)

    @staticmethod
    async def update(
        db: AsyncSession,
        card_id: str,
        actor_id: str,
        title: FieldPatch = FieldPatch.absent(),
        description: FieldPatch = FieldPatch.absent(),
        due_date: FieldPatch = FieldPatch.absent(),
    ) -> CardOut:
        """Apply tri-state patches; a missing field keeps its value, a cleared one becomes NULL"""
        await authorize(db, actor_id, card_id, ResourceKind.CARD)
        if title.is_clear or (not title.is_absent and not (title.value or "").strip()):
            raise ValidationFailed("Card title cannot be empty")

        card = await db.get(Card, card_id)
        async with transaction(db):
            card.title = title.apply(card.title)
            card.description = description.apply(card.description)
            card.due_date = due_date.apply(card.due_date)
            card.updated_at = utcnow()

        logger.info(f"Card updated: {card_id}")
        return await CardLedger.get_by_id(db, card_id, actor_id)

    @staticmethod
    async def move(
        db: AsyncSession,
        card_id: str,
        actor_id: str,
        target_list_id: str,
        position: Optional[float] = None,
    ) -> CardOut:
        """Move a card to target_list_id; without a position it goes to the end.

        The actor needs access to both the card and the destination list. On any
        failure the card is left where it was.
        """
        await authorize(db, actor_id, card_id, ResourceKind.CARD)

        target = await db.get(BoardList, target_list_id)
        if target is None:
            raise ValidationFailed("Target list does not exist")
        await authorize(db, actor_id, target_list_id, ResourceKind.LIST)

        if position is None:
            position = await next_card_position(db, target_list_id)

        async with transaction(db):
            await db.execute(
                update(Card)
                .where(Card.id == card_id)
                .values(list_id=target_list_id, position=position, updated_at=utcnow())
            )

        logger.info(f"Card {card_id} moved to list {target_list_id} at {position}")
        return await CardLedger.get_by_id(db, card_id, actor_id)

    @staticmethod
    async def delete(db: AsyncSession, card_id: str, actor_id: str) -> None:
        """Delete the card together with its comments"""
        await authorize(db, actor_id, card_id, ResourceKind.CARD)

        async with transaction(db):
            await db.execute(
                delete(CardComment).where(CardComment.card_id == card_id)
                .execution_options(synchronize_session="fetch")
            )
            await db.execute(
                delete(Card).where(Card.id == card_id)
                .execution_options(synchronize_session="fetch")
            )

        logger.info(f"Card deleted: {card_id}")
