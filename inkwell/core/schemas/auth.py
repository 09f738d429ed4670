"""
Records persisted by the auth core and the payloads exchanged with clients.

Key-value records are serialized as camelCase JSON so the stored shape stays
stable regardless of the Python attribute names.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from inkwell.core.enums import ToastType, UserStatus, VerificationType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class TOTPConfig(CamelModel):
    """Secret material needed to re-derive and check a TOTP code."""

    secret: str
    algorithm: str
    digits: int
    period: int
    char_set: str


class VerificationRecord(CamelModel):
    type: VerificationType
    identifier: str
    verification_config: TOTPConfig
    verify_attempts: int = 0
    last_activity_at: int | None = None
    created_at: int


class SessionRecord(CamelModel):
    user_id: str
    session_id: str
    user_agent: str | None = None
    ip_address: str | None = None
    country: str | None = None
    created_at: int
    expires_at: int


class AuthUserSession(CamelModel):
    """Principal stored in the signed cookie: who is logged in, on which session."""

    user_id: str
    session_id: str


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class ValidSession(BaseModel):
    session: SessionRecord
    user: UserProfile


class Toast(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str
    description: str | None = None
    type: ToastType = ToastType.MESSAGE


class SessionView(BaseModel):
    id: str
    device: str | None = None
    is_mobile: bool = False
    ip_address: str | None = None
    country: str | None = None
    created_at: datetime
    expires_at: datetime
    is_current: bool = False


class AccountResponse(BaseModel):
    user: UserProfile
    sessions: list[SessionView]
    toast: Toast | None = None


class HomeResponse(BaseModel):
    user: UserProfile
    session_id: str
    toast: Toast | None = None


class LoginPageResponse(BaseModel):
    toast: Toast | None = None


class PendingVerificationResponse(BaseModel):
    email: str
    toast: Toast | None = None


__all__ = [
    "CamelModel",
    "TOTPConfig",
    "VerificationRecord",
    "SessionRecord",
    "AuthUserSession",
    "UserProfile",
    "ValidSession",
    "Toast",
    "SessionView",
    "AccountResponse",
    "HomeResponse",
    "LoginPageResponse",
    "PendingVerificationResponse",
]
