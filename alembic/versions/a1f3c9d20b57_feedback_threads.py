"""feedback threads: users, programs, submissions, messages, read status

Revision ID: a1f3c9d20b57
Revises:
Create Date: 2026-10-19 10:12:44.102311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a1f3c9d20b57"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("hashed_password", sa.String(length=1024), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index(op.f("ix_user_id"), "user", ["id"])
    op.create_index(op.f("ix_user_email"), "user", ["email"], unique=True)

    op.create_table(
        "programs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(op.f("ix_programs_id"), "programs", ["id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(op.f("ix_submissions_id"), "submissions", ["id"])
    op.create_index(op.f("ix_submissions_program_id"), "submissions", ["program_id"])
    op.create_index(op.f("ix_submissions_user_id"), "submissions", ["user_id"])
    op.create_index(op.f("ix_submissions_deleted_at"), "submissions", ["deleted_at"])

    op.create_table(
        "submission_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("submission_id", sa.Integer(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("youtube_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f("ix_submission_messages_id"), "submission_messages", ["id"])
    op.create_index(op.f("ix_submission_messages_submission_id"), "submission_messages", ["submission_id"])
    op.create_index(op.f("ix_submission_messages_user_id"), "submission_messages", ["user_id"])
    op.create_index(
        "ix_submission_messages_thread_order",
        "submission_messages",
        ["submission_id", "created_at", "id"],
    )

    op.create_table(
        "message_read_status",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "message_id",
            sa.Integer(),
            sa.ForeignKey("submission_messages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("read_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "message_id", name="pk_message_read_status"),
    )
    op.create_index(op.f("ix_message_read_status_user_id"), "message_read_status", ["user_id"])
    op.create_index(op.f("ix_message_read_status_message_id"), "message_read_status", ["message_id"])


def downgrade() -> None:
    op.drop_table("message_read_status")
    op.drop_index("ix_submission_messages_thread_order", table_name="submission_messages")
    op.drop_table("submission_messages")
    op.drop_table("submissions")
    op.drop_table("programs")
    op.drop_table("user")
