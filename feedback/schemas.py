from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime

from fastapi_users import schemas as fu_schemas


# =========================
# USER SCHEMAS
# =========================
class UserRead(fu_schemas.BaseUser[int]):
    full_name: str = ""


class UserCreate(fu_schemas.BaseUserCreate):
    full_name: str = ""


class UserUpdate(fu_schemas.BaseUserUpdate):
    full_name: Optional[str] = None


# =========================
# SUBMISSION SCHEMAS
# =========================
class SubmissionCreate(BaseModel):
    title: str


class SubmissionRead(BaseModel):
    id: int
    program_id: int
    user_id: int
    title: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionListItem(SubmissionRead):
    program_name: str
    student_name: str
    student_email: str
    message_count: int = 0
    unread_count: int = 0
    last_message_at: datetime
    last_message_text: str = ""
    last_message_from: str = ""
    last_message_author_id: Optional[int] = None
    last_activity_at: datetime


# =========================
# MESSAGE SCHEMAS
# =========================
class MessageCreate(BaseModel):
    content: str = ""
    youtube_url: Optional[str] = None


class MessageRead(BaseModel):
    id: int
    submission_id: int
    user_id: int
    content: str
    youtube_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MessageWithAuthor(MessageRead):
    author_name: str
    author_email: str
    author_role: str
    is_read: bool = False


# =========================
# UNREAD COUNTS
# =========================
class UnreadCounts(BaseModel):
    total: int = 0
    by_program: Dict[int, int] = {}
    by_submission: Dict[int, int] = {}


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionListItem]
    limit: int
    offset: int
    count: int


class MessageListResponse(BaseModel):
    messages: List[MessageWithAuthor]
    count: int
