# store/receipts.py
from __future__ import annotations

import logging

from sqlalchemy import DateTime, Integer, and_, exists, insert, literal, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.models import MessageReadStatus, SubmissionMessage, utcnow
from feedback.store.exceptions import MessageNotFound
from feedback.store.messages import message_exists

logger = logging.getLogger(__name__)

_CONFLICT_KEYS = ["user_id", "message_id"]


def _dialect_insert(db: AsyncSession):
    """INSERT construct that understands ON CONFLICT, or None if the dialect has none."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(MessageReadStatus)
    if name == "sqlite":
        return sqlite.insert(MessageReadStatus)
    return None


async def mark_read(db: AsyncSession, reader_id: int, message_id: int) -> bool:
    """Record that ``reader_id`` has read ``message_id``.

    Idempotent: an existing receipt is left untouched (read_at never moves).
    Returns True when a new receipt was written.
    """
    if not await message_exists(db, message_id):
        raise MessageNotFound(message_id)

    values = {"user_id": reader_id, "message_id": message_id, "read_at": utcnow()}
    stmt = _dialect_insert(db)
    if stmt is not None:
        result = await db.execute(
            stmt.values(**values).on_conflict_do_nothing(index_elements=_CONFLICT_KEYS)
        )
        created = bool(result.rowcount)
    else:
        try:
            async with db.begin_nested():
                await db.execute(insert(MessageReadStatus).values(**values))
            created = True
        except IntegrityError:
            created = False

    logger.debug("mark_read user=%s message=%s created=%s", reader_id, message_id, created)
    return created


async def mark_thread_read(db: AsyncSession, reader_id: int, submission_id: int) -> int:
    """Mark every message in a thread not written by the reader as read. Returns new receipts."""
    already = exists().where(
        and_(
            MessageReadStatus.message_id == SubmissionMessage.id,
            MessageReadStatus.user_id == reader_id,
        )
    )
    unread = select(
        literal(reader_id, Integer),
        SubmissionMessage.id,
        literal(utcnow(), DateTime(timezone=True)),
    ).where(
        SubmissionMessage.submission_id == submission_id,
        SubmissionMessage.user_id != reader_id,
        ~already,
    )
    cols = ["user_id", "message_id", "read_at"]
    stmt = _dialect_insert(db)
    if stmt is not None:
        stmt = stmt.from_select(cols, unread).on_conflict_do_nothing(index_elements=_CONFLICT_KEYS)
    else:
        stmt = insert(MessageReadStatus).from_select(cols, unread)
    result = await db.execute(stmt)
    count = max(result.rowcount or 0, 0)
    logger.debug("mark_thread_read user=%s submission=%s marked=%s", reader_id, submission_id, count)
    return count


__all__ = ["mark_read", "mark_thread_read"]
