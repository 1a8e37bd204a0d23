from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, Text, DateTime, Index,
    PrimaryKeyConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------
# USER MODEL
# ---------------------------
class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False, default="")
    hashed_password = Column(String(1024), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_superuser = Column(Boolean, default=False, nullable=False)  # admin / instructor
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    submissions = relationship("Submission", back_populates="student")


# ---------------------------
# PROGRAMS (owned by the program catalogue; only referenced here)
# ---------------------------
class Program(Base):
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    submissions = relationship("Submission", back_populates="program")


# ---------------------------
# SUBMISSIONS (feedback threads)
# ---------------------------
class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    program_id = Column(Integer, ForeignKey("programs.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)  # student
    title = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    # soft delete marker; once set it is never cleared
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    program = relationship("Program", back_populates="submissions")
    student = relationship("User", back_populates="submissions")


class SubmissionMessage(Base):
    __tablename__ = "submission_messages"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)  # author
    content = Column(Text, nullable=False, default="")  # empty only when youtube_url is set
    youtube_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    submission = relationship("Submission")
    author = relationship("User")

    __table_args__ = (
        Index("ix_submission_messages_thread_order", "submission_id", "created_at", "id"),
    )


class MessageReadStatus(Base):
    __tablename__ = "message_read_status"

    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    message_id = Column(Integer, ForeignKey("submission_messages.id", ondelete="CASCADE"), nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # one receipt per (reader, message)
    __table_args__ = (PrimaryKeyConstraint("user_id", "message_id", name="pk_message_read_status"),)
