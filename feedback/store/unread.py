# store/unread.py
"""Unread counts, derived from messages and receipts at query time.

No counter column is stored; each call recomputes from
``submission_messages`` and ``message_read_status``.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.models import MessageReadStatus, Submission, SubmissionMessage
from feedback.schemas import UnreadCounts
from feedback.services.visibility import Viewer


def unread_rows_query(viewer: Viewer, program_id: Optional[int] = None):
    """(program_id, submission_id, unread) for every visible live thread with unread messages."""
    q = (
        select(
            Submission.program_id,
            Submission.id.label("submission_id"),
            func.count(SubmissionMessage.id).label("unread_count"),
        )
        .join(SubmissionMessage, SubmissionMessage.submission_id == Submission.id)
        .outerjoin(
            MessageReadStatus,
            and_(
                MessageReadStatus.message_id == SubmissionMessage.id,
                MessageReadStatus.user_id == viewer.user_id,
            ),
        )
        .where(
            Submission.deleted_at.is_(None),
            SubmissionMessage.user_id != viewer.user_id,
            MessageReadStatus.user_id.is_(None),
            viewer.submission_clause(),
        )
        .group_by(Submission.program_id, Submission.id)
    )
    if program_id is not None:
        q = q.where(Submission.program_id == program_id)
    return q


async def get_unread_counts(
    db: AsyncSession, viewer: Viewer, program_id: Optional[int] = None
) -> UnreadCounts:
    counts = UnreadCounts()
    for prog_id, sub_id, unread in (await db.execute(unread_rows_query(viewer, program_id))).all():
        counts.total += unread
        counts.by_program[prog_id] = counts.by_program.get(prog_id, 0) + unread
        counts.by_submission[sub_id] = unread
    return counts


__all__ = ["get_unread_counts", "unread_rows_query"]
