# backend/app/repositories/user_repository.py
"""User repository."""

from typing import Optional

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_therapist(self, therapist_id: str) -> Optional[User]:
        """Return the user if it exists; role is checked by the caller."""
        return self.get_by_id(therapist_id)
