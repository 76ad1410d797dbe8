# identity/models/session.py
import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from identity.models.user import utcnow


class AuthSession(SQLModel, table=True):
    """
    Server-side login session.

    The client only holds `id` (opaque, in an HTTP-only cookie). The row
    binds it to a user id and nothing else: authorization always re-reads
    the User.
    """

    __tablename__ = "sessions"

    id: str = Field(primary_key=True, max_length=64)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    expires_at: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
