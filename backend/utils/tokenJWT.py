# utils/tokenJWT.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User, Role

# Missing header is reported as 401 by get_current_user, not 403 by the scheme
bearer_scheme = HTTPBearer(auto_error=False)

# Role groups shared by the routers
MANAGEMENT = (Role.ADMIN, Role.MANAGER)
STAFF = (Role.ADMIN, Role.MANAGER, Role.WORKER)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Signs ``data`` (``sub`` = user email, ``role``) with an expiry claim."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_subject(token: str) -> str:
    """Returns the email stored in ``sub``; raises 401 for a bad, expired or subject-less token."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise _unauthorized()
    subject = claims.get("sub")
    if not subject:
        raise _unauthorized()
    return subject


# Authenticated principal; inactive accounts are treated as unknown
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise _unauthorized()
    email = decode_subject(credentials.credentials)
    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.active:
        raise _unauthorized()
    return user


# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles: Role):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if allowed_roles and current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current_user
    return _checker
