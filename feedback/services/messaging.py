"""Messaging service: the only entry point the HTTP layer talks to.

Validates input before touching the database, applies the caller's
:class:`~feedback.services.visibility.Viewer`, commits once per operation and
turns store sentinels into :mod:`feedback.errors`.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.errors import (
    AccessDeniedError,
    AlreadyDeletedError,
    AuthorizationError,
    InternalError,
    MessagingError,
    NotFoundError,
    ValidationError,
)
from feedback.schemas import MessageRead, MessageWithAuthor, SubmissionListItem, SubmissionRead, UnreadCounts
from feedback.services.video import VideoURLError, extract_video_id
from feedback.services.visibility import Viewer
from feedback.settings.config import settings
from feedback.store import listing, messages, receipts, threads, unread
from feedback.store.exceptions import (
    AccessDenied,
    AlreadyDeleted,
    MessageNotFound,
    ProgramNotFound,
    SubmissionNotFound,
)

logger = logging.getLogger(__name__)

ACCESS_DENIED_MSG = "You don't have access to this submission"


def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title cannot be empty")
    if len(title) > settings.SUBMISSION_TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title cannot exceed {settings.SUBMISSION_TITLE_MAX_LENGTH} characters"
        )
    return title


def _clean_message(content: Optional[str], youtube_url: Optional[str]) -> tuple[str, Optional[str]]:
    content = (content or "").strip()
    youtube_url = (youtube_url or "").strip() or None
    if not content and not youtube_url:
        raise ValidationError("Message content cannot be empty")
    if len(content) > settings.MESSAGE_CONTENT_MAX_LENGTH:
        raise ValidationError(
            f"Message content cannot exceed {settings.MESSAGE_CONTENT_MAX_LENGTH} characters"
        )
    if youtube_url:
        try:
            extract_video_id(youtube_url)
        except VideoURLError as exc:
            raise ValidationError(f"Invalid YouTube URL: {exc}") from exc
    return content, youtube_url


def _page(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    if limit is None:
        limit = settings.SUBMISSIONS_PAGE_DEFAULT
    offset = offset or 0
    if limit < 1 or limit > settings.SUBMISSIONS_PAGE_MAX:
        raise ValidationError(f"limit must be between 1 and {settings.SUBMISSIONS_PAGE_MAX}")
    if offset < 0:
        raise ValidationError("offset cannot be negative")
    return limit, offset


class MessagingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str):
        """Roll back on failure and translate store conditions into MessagingErrors."""
        try:
            yield
        except MessagingError:
            await self.db.rollback()
            raise
        except SubmissionNotFound as exc:
            await self.db.rollback()
            raise NotFoundError("Submission") from exc
        except MessageNotFound as exc:
            await self.db.rollback()
            raise NotFoundError("Message") from exc
        except ProgramNotFound as exc:
            await self.db.rollback()
            raise NotFoundError("Program") from exc
        except AccessDenied as exc:
            await self.db.rollback()
            raise AccessDeniedError(ACCESS_DENIED_MSG) from exc
        except AlreadyDeleted as exc:
            await self.db.rollback()
            raise AlreadyDeletedError("Submission already deleted") from exc
        except SQLAlchemyError as exc:
            logger.exception("%s failed", operation)
            await self.db.rollback()
            raise InternalError(f"Failed to {operation}") from exc

    # ---------------------------
    # threads
    # ---------------------------
    async def create_thread(self, program_id: int, viewer: Viewer, title: Optional[str]) -> SubmissionRead:
        title = _clean_title(title)
        async with self._guard("create submission"):
            sub = await threads.create_thread(self.db, program_id, viewer.user_id, title)
            await self.db.commit()
        logger.info("submission %s created on program %s by user %s", sub.id, program_id, viewer.user_id)
        return SubmissionRead.model_validate(sub)

    async def get_thread(self, submission_id: int, viewer: Viewer) -> SubmissionRead:
        async with self._guard("fetch submission"):
            sub = await threads.get_thread(self.db, submission_id, viewer)
        return SubmissionRead.model_validate(sub)

    async def list_threads(
        self,
        viewer: Viewer,
        program_id: Optional[int] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = 0,
    ) -> list[SubmissionListItem]:
        limit, offset = _page(limit, offset)
        async with self._guard("list submissions"):
            return await listing.list_threads(self.db, viewer, program_id, limit, offset)

    async def soft_delete_thread(self, submission_id: int, viewer: Viewer) -> None:
        if not viewer.is_admin:
            raise AuthorizationError("Only admins can delete submissions")
        async with self._guard("delete submission"):
            await threads.soft_delete_thread(self.db, submission_id)
            await self.db.commit()
        logger.info("submission %s soft-deleted by user %s", submission_id, viewer.user_id)

    # ---------------------------
    # messages
    # ---------------------------
    async def list_messages(self, submission_id: int, viewer: Viewer) -> list[MessageWithAuthor]:
        async with self._guard("fetch messages"):
            await threads.get_thread(self.db, submission_id, viewer)
            return await messages.list_messages(self.db, submission_id, viewer.user_id)

    async def append_message(
        self,
        submission_id: int,
        viewer: Viewer,
        content: Optional[str],
        youtube_url: Optional[str] = None,
    ) -> MessageRead:
        content, youtube_url = _clean_message(content, youtube_url)
        async with self._guard("create message"):
            await threads.get_thread(self.db, submission_id, viewer)
            msg = await messages.append_message(
                self.db, submission_id, viewer.user_id, content, youtube_url
            )
            await self.db.commit()
            created = MessageRead.model_validate(msg)
        await self._refresh_thread_activity(submission_id)
        return created

    async def _refresh_thread_activity(self, submission_id: int) -> None:
        # own transaction; a failure is logged and the post still succeeds
        try:
            await threads.touch_thread(self.db, submission_id)
            await self.db.commit()
        except SQLAlchemyError:
            logger.warning("could not refresh updated_at for submission %s", submission_id, exc_info=True)
            await self.db.rollback()

    # ---------------------------
    # read receipts / counts
    # ---------------------------
    async def mark_read(self, message_id: int, viewer: Viewer) -> bool:
        async with self._guard("mark message as read"):
            created = await receipts.mark_read(self.db, viewer.user_id, message_id)
            await self.db.commit()
        return created

    async def mark_thread_read(self, submission_id: int, viewer: Viewer) -> int:
        async with self._guard("mark submission as read"):
            await threads.get_thread(self.db, submission_id, viewer)
            marked = await receipts.mark_thread_read(self.db, viewer.user_id, submission_id)
            await self.db.commit()
        return marked

    async def get_unread_counts(self, viewer: Viewer, program_id: Optional[int] = None) -> UnreadCounts:
        async with self._guard("get unread counts"):
            return await unread.get_unread_counts(self.db, viewer, program_id)


__all__ = ["MessagingService"]
