# services/visibility.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import true

from feedback.models import Submission


@dataclass(frozen=True, slots=True)
class Viewer:
    """Who is asking. Admins see every thread; students only their own."""

    user_id: int
    is_admin: bool = False

    @classmethod
    def from_user(cls, user) -> "Viewer":
        return cls(user_id=user.id, is_admin=bool(getattr(user, "is_superuser", False)))

    def can_access(self, submission: Submission) -> bool:
        return self.is_admin or submission.user_id == self.user_id

    def submission_clause(self):
        """SQL filter over ``submissions`` matching what this viewer may see."""
        if self.is_admin:
            return true()
        return Submission.user_id == self.user_id


__all__ = ["Viewer"]
