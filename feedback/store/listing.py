# store/listing.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import DateTime, and_, case, func, select, type_coerce
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from feedback.models import MessageReadStatus, Program, Submission, SubmissionMessage, User
from feedback.schemas import SubmissionListItem
from feedback.services.visibility import Viewer


def _message_stats(reader_id: int):
    # per thread: how many messages, newest timestamp, how many unread for the reader
    unread = case(
        (
            and_(MessageReadStatus.user_id.is_(None), SubmissionMessage.user_id != reader_id),
            1,
        ),
        else_=0,
    )
    return (
        select(
            SubmissionMessage.submission_id.label("submission_id"),
            func.count(SubmissionMessage.id).label("message_count"),
            func.max(SubmissionMessage.created_at).label("last_message_at"),
            func.sum(unread).label("unread_count"),
        )
        .outerjoin(
            MessageReadStatus,
            and_(
                MessageReadStatus.message_id == SubmissionMessage.id,
                MessageReadStatus.user_id == reader_id,
            ),
        )
        .group_by(SubmissionMessage.submission_id)
        .subquery("message_stats")
    )


def _last_messages():
    ranked = select(
        SubmissionMessage.submission_id.label("submission_id"),
        SubmissionMessage.content.label("content"),
        SubmissionMessage.user_id.label("author_id"),
        func.row_number()
        .over(
            partition_by=SubmissionMessage.submission_id,
            order_by=(SubmissionMessage.created_at.desc(), SubmissionMessage.id.desc()),
        )
        .label("rn"),
    ).subquery("ranked_messages")
    return select(ranked).where(ranked.c.rn == 1).subquery("last_message")


def list_threads_query(
    viewer: Viewer,
    program_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
):
    stats = _message_stats(viewer.user_id)
    last = _last_messages()
    student = aliased(User, name="student")
    last_author = aliased(User, name="last_author")

    last_message_at = func.coalesce(stats.c.last_message_at, Submission.created_at)
    # activity = max(updated_at, newest message); created_at while the thread is empty
    last_activity_at = type_coerce(
        case(
            (stats.c.last_message_at.is_(None), Submission.created_at),
            (stats.c.last_message_at > Submission.updated_at, stats.c.last_message_at),
            else_=Submission.updated_at,
        ),
        DateTime(timezone=True),
    )

    q = (
        select(
            Submission.id,
            Submission.program_id,
            Submission.user_id,
            Submission.title,
            Submission.created_at,
            Submission.updated_at,
            Submission.deleted_at,
            Program.name.label("program_name"),
            student.full_name.label("student_name"),
            student.email.label("student_email"),
            func.coalesce(stats.c.message_count, 0).label("message_count"),
            func.coalesce(stats.c.unread_count, 0).label("unread_count"),
            type_coerce(last_message_at, DateTime(timezone=True)).label("last_message_at"),
            func.coalesce(last.c.content, "").label("last_message_text"),
            func.coalesce(last_author.full_name, student.full_name).label("last_message_from"),
            last.c.author_id.label("last_message_author_id"),
            last_activity_at.label("last_activity_at"),
        )
        .join(Program, Program.id == Submission.program_id)
        .join(student, student.id == Submission.user_id)
        .outerjoin(stats, stats.c.submission_id == Submission.id)
        .outerjoin(last, last.c.submission_id == Submission.id)
        .outerjoin(last_author, last_author.id == last.c.author_id)
        .where(Submission.deleted_at.is_(None), viewer.submission_clause())
        .order_by(last_activity_at.desc(), Submission.id.desc())
        .limit(limit)
        .offset(offset)
    )
    if program_id is not None:
        q = q.where(Submission.program_id == program_id)
    return q


async def list_threads(
    db: AsyncSession,
    viewer: Viewer,
    program_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[SubmissionListItem]:
    rows = (await db.execute(list_threads_query(viewer, program_id, limit, offset))).mappings().all()
    return [SubmissionListItem(**dict(r)) for r in rows]


__all__ = ["list_threads", "list_threads_query"]
