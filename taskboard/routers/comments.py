# routers/comments.py - Author-only comment edits
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth import CurrentUser, get_current_user
from taskboard.database import get_db_session
from taskboard.schemas import CommentOut
from taskboard.services.comments import CommentLog

router = APIRouter(prefix="/api/v1/comments", tags=["Comments"])


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


@router.patch("/{comment_id}", response_model=CommentOut)
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await CommentLog.update(db, comment_id, user.id, data.content)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await CommentLog.delete(db, comment_id, user.id)
    return {"status": "deleted", "comment_id": comment_id}
