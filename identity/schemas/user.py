# identity/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from identity.models.user import NICKNAME_MAX_LENGTH

# App-level roles. Anonymous visitors have no row.
Role = Literal["admin", "resident", "user"]


class CamelModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRead(CamelModel):
    """
    Response schema returned to clients.

    Password material and provider ids are never serialized.
    """

    id: uuid.UUID
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    nickname: str | None = None
    profile_image_url: str | None = None
    role: Role
    is_verified: bool
    real_name: str | None = None
    phone_number: str | None = None
    created_at: datetime
    updated_at: datetime


class UserProfileUpdate(CamelModel):
    """
    Partial profile update for authenticated users.
    Only `nickname` is editable; verification fields have their own action.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    nickname: str | None = Field(default=None, max_length=NICKNAME_MAX_LENGTH)

    @field_validator("nickname")
    @classmethod
    def normalize_nickname(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("nickname cannot be empty")
        return v


class RealNameVerification(CamelModel):
    """Payload for real-name verification. Emptiness is checked by the service."""

    real_name: str | None = None
    phone_number: str | None = None


class PasswordChange(CamelModel):
    current_password: str | None = None
    new_password: str | None = None


class UserRoleUpdate(CamelModel):
    """
    Admin-only role update.

    `role` is a plain string so unknown values come back as 400, not 422.
    """

    role: str | None = None
