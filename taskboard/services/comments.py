# services/comments.py - Comments on cards
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.access import ResourceKind, authorize
from taskboard.database import transaction
from taskboard.errors import NotAuthor, ValidationFailed
from taskboard.models import CardComment, User, utcnow
from taskboard.schemas import CommentOut, UserPublic

logger = logging.getLogger("taskboard.comments")


def _comment_out(comment: CardComment, author: Optional[User]) -> CommentOut:
    return CommentOut(
        id=comment.id,
        card_id=comment.card_id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        author=UserPublic(
            id=author.id,
            name=author.display_name,
            email=author.email,
            avatar_url=author.avatar_url,
        ) if author else None,
    )


class CommentLog:
    """Comments are readable by every member; only the author may edit or delete one"""

    @staticmethod
    async def get_by_card(db: AsyncSession, card_id: str, actor_id: str) -> List[CommentOut]:
        await authorize(db, actor_id, card_id, ResourceKind.CARD)

        stmt = (
            select(CardComment, User)
            .outerjoin(User, User.id == CardComment.author_id)
            .where(CardComment.card_id == card_id)
            .order_by(CardComment.created_at.desc(), CardComment.id.desc())
        )
        result = await db.execute(stmt)
        return [_comment_out(c, author) for c, author in result.all()]

    @staticmethod
    async def create(db: AsyncSession, card_id: str, actor_id: str, content: str) -> CommentOut:
        await authorize(db, actor_id, card_id, ResourceKind.CARD)
        if not content or not content.strip():
            raise ValidationFailed("Comment content is required")

        comment = CardComment(card_id=card_id, author_id=actor_id, content=content)
        async with transaction(db):
            db.add(comment)

        logger.info(f"Comment created: {comment.id} on card {card_id}")
        return _comment_out(comment, await db.get(User, actor_id))

    @staticmethod
    async def _authored(db: AsyncSession, comment_id: str, actor_id: str) -> CardComment:
        await authorize(db, actor_id, comment_id, ResourceKind.COMMENT)
        comment = await db.get(CardComment, comment_id)
        if comment.author_id != actor_id:
            raise NotAuthor()
        return comment

    @staticmethod
    async def update(db: AsyncSession, comment_id: str, actor_id: str, content: str) -> CommentOut:
        comment = await CommentLog._authored(db, comment_id, actor_id)
        if not content or not content.strip():
            raise ValidationFailed("Comment content is required")

        async with transaction(db):
            comment.content = content
            comment.updated_at = utcnow()

        return _comment_out(comment, await db.get(User, actor_id))

    @staticmethod
    async def delete(db: AsyncSession, comment_id: str, actor_id: str) -> None:
        comment = await CommentLog._authored(db, comment_id, actor_id)

        async with transaction(db):
            await db.delete(comment)

        logger.info(f"Comment deleted: {comment_id}")
