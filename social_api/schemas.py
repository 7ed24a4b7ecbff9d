from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72

# Primary keys are 32-bit INTEGER columns on PostgreSQL.
MAX_ID = 2**31 - 1


def positive_int(raw: str | None) -> int | None:
    """Return *raw* as an int if it is ASCII digits with a value above zero, else None."""
    if raw is None or not raw.isascii() or not raw.isdigit():
        return None
    value = int(raw)
    return value if value > 0 else None


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


def _require_non_blank(value: str) -> str:
    # Passwords are checked for blankness but used exactly as typed.
    if not value.strip():
        raise ValueError("must not be empty")
    return value


def _check_password(value: str) -> str:
    _require_non_blank(value)
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


RequiredText = Annotated[str, AfterValidator(_strip_required)]
Password = Annotated[str, AfterValidator(_check_password)]
Name = Annotated[str, StringConstraints(max_length=150), AfterValidator(_strip_required)]
Username = Annotated[str, StringConstraints(max_length=100), AfterValidator(_strip_required)]


# --- User ---

class UserRegister(BaseModel):
    name: Name
    username: Username
    password: Password
    bio: str | None = None


class UserLogin(BaseModel):
    username: RequiredText
    password: Annotated[str, AfterValidator(_require_non_blank)]


class UserUpdate(BaseModel):
    name: Name | None = None
    username: Username | None = None
    password: Password | None = None
    bio: str | None = None


# --- Post ---

class PostWrite(BaseModel):
    body: RequiredText


# --- Comment ---

class CommentWrite(BaseModel):
    content: RequiredText


# --- Envelope ---

class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


def envelope(
    data: Any = None,
    *,
    message: str | None = None,
    meta: PageMeta | None = None,
) -> dict[str, Any]:
    """Wrap a successful result in ``{success, data|message, meta?}``."""
    payload: dict[str, Any] = {"success": True}
    if data is not None:
        payload["data"] = data
    if message is not None:
        payload["message"] = message
    if meta is not None:
        payload["meta"] = meta.model_dump(by_alias=True)
    return payload
