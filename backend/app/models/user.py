# backend/app/models/user.py
"""
User model for the Kalm platform.

Clients and therapists share one table, differentiated by ``role``.
The provisioning pipeline only reads therapists' ``is_active`` flag.
"""

from enum import Enum
import logging

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    CLIENT = "client"
    THERAPIST = "therapist"
    ADMIN = "admin"


class User(Base):
    """Account record for clients and therapists."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String, unique=True, index=True, nullable=True)
    display_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_therapist(self) -> bool:
        return self.role == UserRole.THERAPIST.value

    def __repr__(self) -> str:
        return f"<User {self.id} role={self.role}>"
