from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.database import get_db
from feedback.schemas import (
    MessageCreate,
    MessageListResponse,
    SubmissionCreate,
    SubmissionListResponse,
    UnreadCounts,
)
from feedback.services.messaging import MessagingService
from feedback.services.visibility import Viewer
from feedback.settings.config import settings
from feedback.users import current_viewer

router = APIRouter()


def get_messaging(db: AsyncSession = Depends(get_db)) -> MessagingService:
    return MessagingService(db)


@router.post("/programs/{program_id}/submissions", status_code=201)
async def create_submission(
    program_id: int,
    payload: SubmissionCreate,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    sub = await svc.create_thread(program_id, viewer, payload.title)
    return {"submission": sub}


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    program_id: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    items = await svc.list_threads(viewer, program_id=program_id, limit=limit, offset=offset)
    return SubmissionListResponse(
        submissions=items,
        limit=limit if limit is not None else settings.SUBMISSIONS_PAGE_DEFAULT,
        offset=offset,
        count=len(items),
    )


# declared before /submissions/{submission_id} so the literal path wins
@router.get("/submissions/unread-count", response_model=UnreadCounts)
async def unread_count(
    program_id: Optional[int] = Query(None),
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    return await svc.get_unread_counts(viewer, program_id=program_id)


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: int,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    return {"submission": await svc.get_thread(submission_id, viewer)}


@router.get("/submissions/{submission_id}/messages", response_model=MessageListResponse)
async def get_messages(
    submission_id: int,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    msgs = await svc.list_messages(submission_id, viewer)
    return MessageListResponse(messages=msgs, count=len(msgs))


@router.post("/submissions/{submission_id}/messages", status_code=201)
async def create_message(
    submission_id: int,
    payload: MessageCreate,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    msg = await svc.append_message(submission_id, viewer, payload.content, payload.youtube_url)
    return {"message": msg}


@router.put("/submissions/{submission_id}/read")
async def mark_submission_read(
    submission_id: int,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    return {"marked": await svc.mark_thread_read(submission_id, viewer)}


@router.put("/messages/{message_id}/read")
async def mark_message_read(
    message_id: int,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    await svc.mark_read(message_id, viewer)
    return {"message": "Message marked as read"}


@router.delete("/submissions/{submission_id}")
async def delete_submission(
    submission_id: int,
    viewer: Viewer = Depends(current_viewer),
    svc: MessagingService = Depends(get_messaging),
):
    await svc.soft_delete_thread(submission_id, viewer)
    return {"message": "Submission deleted successfully"}


__all__ = ["router", "get_messaging"]
