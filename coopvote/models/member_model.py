from enum import Enum

from pydantic import Field

from coopvote.models.base import CamelModel


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"


class UserRole(str, Enum):
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"
    COMMITTEE = "COMMITTEE"
    BRANCH_MANAGER = "BRANCH_MANAGER"
    BOARD = "BOARD"


class KioskLoginRequest(CamelModel):
    member_number: str = Field(..., min_length=1, examples=["M-0001"])


class TokenResponse(CamelModel):
    access_token: str = Field(..., alias="access_token")
    token_type: str = Field("bearer", alias="token_type")
