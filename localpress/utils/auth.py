# localpress/utils/auth.py
from typing import Optional, Dict
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request
from jose import jwt, JWTError
from sqlmodel import Session

from localpress.config import (
    SECRET_KEY,
    ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    TOKEN_COOKIE_NAME,
)
from localpress.db.session import get_session
from localpress.db.models import UserProfile


# ----------------------------------------------------
# CREATE JWT
# ----------------------------------------------------
def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create and return a signed JWT token carrying an expiry claim.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# ----------------------------------------------------
# VERIFY TOKEN
# ----------------------------------------------------
def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.
    Return decoded payload or None if invalid or expired.
    """
    if not token:
        return None

    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# ----------------------------------------------------
# GET CURRENT USER ID FROM COOKIE OR HEADER
# ----------------------------------------------------
def get_current_user_id(request: Request) -> Optional[int]:
    """
    Get user_id from the auth cookie.
    If not in cookies, fallback to Authorization: Bearer <token>
    """
    token = request.cookies.get(TOKEN_COOKIE_NAME)

    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1].strip()

    if not token:
        return None

    payload = verify_token(token)
    if not payload:
        return None

    return payload.get("user_id")


# ----------------------------------------------------
# ROUTE DEPENDENCIES
# ----------------------------------------------------
def get_optional_user(request: Request, session: Session = Depends(get_session)) -> Optional[UserProfile]:
    user_id = get_current_user_id(request)
    if not user_id:
        return None
    return session.get(UserProfile, user_id)


def get_current_user(user: Optional[UserProfile] = Depends(get_optional_user)) -> UserProfile:
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    if not (user.is_admin or user.is_super_admin):
        raise HTTPException(status_code=403, detail="Unauthorized - Admin access required")
    return user


def require_super_admin(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    if not user.is_super_admin:
        raise HTTPException(status_code=403, detail="Unauthorized - Super Admin access required")
    return user
