# localpress/routers/users.py

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from localpress.db.session import get_session
from localpress.db.models import UserProfile
from localpress.exceptions import EmailDeliveryError, UsernameTakenError, ValidationError
from localpress.routers.auth import user_payload
from localpress.schemas import UsernameBody
from localpress.services import users as user_service
from localpress.utils.auth import get_current_user
from localpress.utils.content import validate_username

logger = logging.getLogger("localpress.users")

router = APIRouter()


# ------------------------------
# Usernames
# ------------------------------
@router.get("/users/username-available")
def username_available(username: str = Query(...), session: Session = Depends(get_session)):
    error = validate_username(username)
    if error:
        return {"available": False, "error": error}
    return {"available": user_service.is_username_available(session, username)}


@router.post("/users/me/username")
def set_my_username(
    body: UsernameBody,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(get_current_user),
):
    try:
        user = user_service.set_username(session, user, body.username)
    except UsernameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "user": user_payload(user)}


# ------------------------------
# Newsletter
# ------------------------------
@router.post("/newsletter/subscribe")
def newsletter_subscribe(
    data: dict,
    session: Session = Depends(get_session),
    user: UserProfile = Depends(get_current_user),
):
    email = data.get("email")
    if not email or not isinstance(email, str):
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        user_service.subscribe_newsletter(session, user, email)
    except EmailDeliveryError:
        raise HTTPException(status_code=500, detail="Failed to send welcome email")
    return {"success": True}


@router.post("/newsletter/unsubscribe")
def newsletter_unsubscribe(
    session: Session = Depends(get_session),
    user: UserProfile = Depends(get_current_user),
):
    try:
        user_service.unsubscribe_newsletter(session, user)
    except Exception as e:
        session.rollback()
        logger.error("Newsletter unsubscribe error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update subscription")
    return {"success": True}
