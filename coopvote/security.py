from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from coopvote.config import Settings
from coopvote.errors import Forbidden, Unauthorized
from coopvote.models.member_model import UserRole

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionUser:
    member_id: str
    role: str = UserRole.MEMBER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


# Create JWT access token
def create_access_token(data: dict, settings: Settings, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> SessionUser:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise Unauthorized()
    member_id = payload.get("sub")
    if not member_id:
        raise Unauthorized()
    return SessionUser(member_id=member_id, role=payload.get("role", UserRole.MEMBER.value))


def session_token_for(member: dict, settings: Settings) -> str:
    return create_access_token(
        {"sub": member["_id"], "role": member.get("role", UserRole.MEMBER.value)}, settings
    )


# --- FastAPI dependencies ---

def get_optional_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[SessionUser]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials, request.app.state.settings)


def get_lenient_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[SessionUser]:
    """Like ``get_optional_session``, but a bad or expired token reads as anonymous."""
    try:
        return get_optional_session(request, credentials)
    except Unauthorized:
        return None


def get_current_session(session: Optional[SessionUser] = Depends(get_optional_session)) -> SessionUser:
    if session is None:
        raise Unauthorized()
    return session


def require_admin(session: SessionUser = Depends(get_current_session)) -> SessionUser:
    if not session.is_admin:
        raise Forbidden("Only administrators can change election anonymity")
    return session
