# identity/schemas/auth.py
from identity.schemas.user import CamelModel


class LoginRequest(CamelModel):
    """
    Local login body. `username` is the account email.

    Fields are optional so a missing value is reported as invalid
    credentials rather than a schema error.
    """

    username: str | None = None
    password: str | None = None


class RegisterRequest(CamelModel):
    """Local registration body. Emptiness is validated by AccountService."""

    username: str | None = None
    password: str | None = None
    real_name: str | None = None
    nickname: str | None = None
