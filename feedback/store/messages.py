# store/messages.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import and_, case, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.models import MessageReadStatus, SubmissionMessage, User, utcnow
from feedback.schemas import MessageWithAuthor

logger = logging.getLogger(__name__)

# the one ordering used everywhere a thread's messages are sequenced
MESSAGE_ORDER = (SubmissionMessage.created_at.asc(), SubmissionMessage.id.asc())

author_role = case((User.is_superuser.is_(True), literal("admin")), else_=literal("student"))


async def append_message(
    db: AsyncSession,
    submission_id: int,
    author_id: int,
    content: str,
    youtube_url: Optional[str] = None,
) -> SubmissionMessage:
    msg = SubmissionMessage(
        submission_id=submission_id,
        user_id=author_id,
        content=content,
        youtube_url=youtube_url,
        created_at=utcnow(),
    )
    db.add(msg)
    await db.flush()
    logger.debug("message %s appended to submission %s by user %s", msg.id, submission_id, author_id)
    return msg


async def list_messages(db: AsyncSession, submission_id: int, reader_id: int) -> list[MessageWithAuthor]:
    """Messages of one thread, oldest first, with author info and the reader's read flag.

    A reader's own messages always come back as read.
    """
    is_read = or_(
        MessageReadStatus.user_id.is_not(None),
        SubmissionMessage.user_id == reader_id,
    )
    q = (
        select(
            SubmissionMessage.id,
            SubmissionMessage.submission_id,
            SubmissionMessage.user_id,
            SubmissionMessage.content,
            SubmissionMessage.youtube_url,
            SubmissionMessage.created_at,
            User.full_name.label("author_name"),
            User.email.label("author_email"),
            author_role.label("author_role"),
            case((is_read, True), else_=False).label("is_read"),
        )
        .join(User, User.id == SubmissionMessage.user_id)
        .outerjoin(
            MessageReadStatus,
            and_(
                MessageReadStatus.message_id == SubmissionMessage.id,
                MessageReadStatus.user_id == reader_id,
            ),
        )
        .where(SubmissionMessage.submission_id == submission_id)
        .order_by(*MESSAGE_ORDER)
    )
    rows = (await db.execute(q)).mappings().all()
    return [MessageWithAuthor(**dict(r)) for r in rows]


async def list_messages_including_deleted(db: AsyncSession, submission_id: int) -> list[SubmissionMessage]:
    # no soft-delete or visibility filtering: audit/history use only
    rows = (
        await db.execute(
            select(SubmissionMessage)
            .where(SubmissionMessage.submission_id == submission_id)
            .order_by(*MESSAGE_ORDER)
        )
    ).scalars().all()
    return list(rows)


async def message_exists(db: AsyncSession, message_id: int) -> bool:
    q = select(SubmissionMessage.id).where(SubmissionMessage.id == message_id).limit(1)
    return (await db.execute(q)).scalar_one_or_none() is not None


__all__ = [
    "MESSAGE_ORDER",
    "append_message",
    "list_messages",
    "list_messages_including_deleted",
    "message_exists",
]
