# identity/models/user.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

# Supported federated providers and the column each one links through.
PROVIDER_ID_FIELDS: dict[str, str] = {
    "google": "google_id",
    "naver": "naver_id",
    "kakao": "kakao_id",
}

ROLES = ("admin", "resident", "user")

NICKNAME_MAX_LENGTH = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """
    Canonical identity record.

    Authentication factors:
      - password_hash: set once the user registers locally (`salt:key` hex)
      - google_id / naver_id / kakao_id: one linked external account per provider

    A row with no factor can exist (admin import) but can never log in.

    Role:
      - "admin" | "resident" | "user"
      - set at creation and changed only by an admin; login and linking
        never touch it.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    email: str | None = Field(default=None, unique=True, index=True)
    password_hash: str | None = Field(default=None)

    google_id: str | None = Field(default=None, unique=True, index=True)
    naver_id: str | None = Field(default=None, unique=True, index=True)
    kakao_id: str | None = Field(default=None, unique=True, index=True)

    role: str = Field(default="user", index=True)

    first_name: str | None = Field(default=None)
    last_name: str | None = Field(default=None)
    nickname: str | None = Field(default=None, max_length=NICKNAME_MAX_LENGTH)
    profile_image_url: str | None = Field(default=None)

    # Real-name verification; only the explicit verification action writes these.
    is_verified: bool = Field(default=False)
    real_name: str | None = Field(default=None)
    phone_number: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    def provider_id(self, provider: str) -> str | None:
        return getattr(self, PROVIDER_ID_FIELDS[provider])

    def set_provider_id(self, provider: str, provider_id: str) -> None:
        setattr(self, PROVIDER_ID_FIELDS[provider], provider_id)

