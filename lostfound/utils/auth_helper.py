from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session
from typing import Optional

from lostfound.config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET
from lostfound.db.db import get_session
from lostfound.models.enums import Role
from lostfound.models.user import User


class AuthContext(BaseModel):
    """Who is making the request. Passed explicitly into every core operation."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    role: Role
    block: Optional[str] = None
    is_approved: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN and self.is_approved

    @property
    def is_privileged(self) -> bool:
        return self.role in (Role.STAFF, Role.ADMIN) and self.is_approved

    @classmethod
    def for_user(cls, user: User) -> "AuthContext":
        return cls(user_id=user.id, role=user.role, block=user.block, is_approved=user.is_approved)


def create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


bearer_scheme_required = HTTPBearer(auto_error=True)


def get_current_user_required(token: HTTPAuthorizationCredentials = Depends(bearer_scheme_required)):
    try:
        payload = jwt.decode(
            token.credentials,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
        )
        return payload
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def get_auth_context(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
) -> AuthContext:
    try:
        user_id = int(current_user["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    # role comes from the directory, not the token, so demotions apply immediately
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return AuthContext.for_user(user)


def require_moderator(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not ctx.is_privileged:
        raise HTTPException(status_code=403, detail="Staff or admin access required")
    return ctx
