# store/threads.py
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.models import Program, Submission, utcnow
from feedback.services.visibility import Viewer
from feedback.store.exceptions import AccessDenied, AlreadyDeleted, ProgramNotFound, SubmissionNotFound

logger = logging.getLogger(__name__)


async def program_exists(db: AsyncSession, program_id: int) -> bool:
    q = select(Program.id).where(Program.id == program_id, Program.deleted_at.is_(None)).limit(1)
    return (await db.execute(q)).scalar_one_or_none() is not None


async def create_thread(db: AsyncSession, program_id: int, student_id: int, title: str) -> Submission:
    if not await program_exists(db, program_id):
        raise ProgramNotFound(program_id)
    now = utcnow()
    sub = Submission(
        program_id=program_id,
        user_id=student_id,
        title=title,
        created_at=now,
        updated_at=now,
    )
    db.add(sub)
    await db.flush()
    return sub


async def get_thread_including_deleted(db: AsyncSession, submission_id: int) -> Submission | None:
    return (
        await db.execute(
            select(Submission)
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        )
    ).scalars().first()


async def get_thread(db: AsyncSession, submission_id: int, viewer: Viewer) -> Submission:
    sub = (
        await db.execute(
            select(Submission)
            .where(Submission.id == submission_id, Submission.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
    ).scalars().first()
    if not sub:
        raise SubmissionNotFound(submission_id)
    if not viewer.can_access(sub):
        raise AccessDenied(submission_id)
    return sub


async def touch_thread(db: AsyncSession, submission_id: int) -> None:
    await db.execute(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


async def soft_delete_thread(db: AsyncSession, submission_id: int) -> None:
    existing = await get_thread_including_deleted(db, submission_id)
    if existing is None:
        raise SubmissionNotFound(submission_id)
    if existing.deleted_at is not None:
        raise AlreadyDeleted(submission_id)

    result = await db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.deleted_at.is_(None))
        .values(deleted_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    # someone else got there between the read and the update
    if result.rowcount == 0:
        raise AlreadyDeleted(submission_id)


__all__ = [
    "program_exists",
    "create_thread",
    "get_thread",
    "get_thread_including_deleted",
    "touch_thread",
    "soft_delete_thread",
]
