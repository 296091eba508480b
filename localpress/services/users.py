# localpress/services/users.py
import os
import logging
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from localpress import config
from localpress.db.models import UserProfile, Article, utc_now
from localpress.exceptions import NotFoundError, UsernameTakenError, ValidationError
from localpress.services import mailer
from localpress.utils.content import validate_username

logger = logging.getLogger("localpress.users")


def upsert_oauth_user(
    session: Session,
    google_id: str,
    email: str,
    name: Optional[str],
    picture: Optional[str],
    newsletter: bool = False,
) -> UserProfile:
    """Find the profile for a Google account (by id, then email) or create it."""
    user = session.exec(
        select(UserProfile).where((UserProfile.google_id == google_id) | (UserProfile.email == email))
    ).first()

    if not user:
        user = UserProfile(google_id=google_id, email=email, full_name=name, avatar_url=picture)
    else:
        user.google_id = user.google_id or google_id
        user.full_name = user.full_name or name
        user.avatar_url = user.avatar_url or picture

    if newsletter and not user.newsletter_subscribed:
        user.newsletter_subscribed = True
        user.newsletter_subscribed_at = utc_now()

    user.updated_at = utc_now()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


# ------------------------------
# Usernames
# ------------------------------
def is_username_available(session: Session, username: str, exclude_id: Optional[int] = None) -> bool:
    existing = session.exec(select(UserProfile).where(UserProfile.username == username.strip())).first()
    return existing is None or existing.id == exclude_id


def set_username(session: Session, user: UserProfile, username: str) -> UserProfile:
    error = validate_username(username)
    if error:
        raise ValidationError(error)

    trimmed = username.strip()
    if not is_username_available(session, trimmed, exclude_id=user.id):
        raise UsernameTakenError("This username is already taken")

    user.username = trimmed
    user.updated_at = utc_now()
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # lost a race with another request claiming the same name
        session.rollback()
        raise UsernameTakenError("This username is already taken")
    session.refresh(user)
    return user


# ------------------------------
# Newsletter
# ------------------------------
def subscribe_newsletter(session: Session, user: UserProfile, email: Optional[str] = None) -> bool:
    """Flag the profile as subscribed and send the welcome email. Returns whether mail was sent."""
    user.newsletter_subscribed = True
    user.newsletter_subscribed_at = utc_now()
    user.updated_at = utc_now()
    session.add(user)
    session.commit()

    subject, text, html_body = mailer.welcome_email()
    return mailer.send_email(email or user.email, subject, text, html_body)


def unsubscribe_newsletter(session: Session, user: UserProfile) -> None:
    user.newsletter_subscribed = False
    user.newsletter_subscribed_at = None
    user.updated_at = utc_now()
    session.add(user)
    session.commit()

    subject, text, html_body = mailer.departure_email()
    try:
        mailer.send_email(user.email, subject, text, html_body)
    except Exception as e:
        logger.error("Departure email failed for user %s: %s", user.id, e)


# ------------------------------
# Admin
# ------------------------------
def remove_avatar(avatar_url: Optional[str]) -> None:
    if not avatar_url:
        return
    file_name = os.path.basename(urlparse(avatar_url).path)
    if not file_name:
        return
    path = os.path.join(config.AVATAR_DIR, file_name)
    if os.path.exists(path):
        os.remove(path)


def delete_user_as_admin(session: Session, user_id_to_delete: int) -> None:
    user = session.get(UserProfile, user_id_to_delete)
    if not user:
        raise NotFoundError("User not found")

    try:
        remove_avatar(user.avatar_url)
    except OSError as e:
        logger.error("Error deleting avatar for user %s: %s", user_id_to_delete, e)

    # articles outlive their author
    session.exec(update(Article).where(Article.author_id == user_id_to_delete).values(author_id=None))
    session.delete(user)
    session.commit()


def update_user_flags(
    session: Session,
    user_id: int,
    is_admin: Optional[bool] = None,
    is_super_admin: Optional[bool] = None,
    full_name: Optional[str] = None,
) -> UserProfile:
    user = session.get(UserProfile, user_id)
    if not user:
        raise NotFoundError("User not found")
    if is_admin is not None:
        user.is_admin = is_admin
    if is_super_admin is not None:
        user.is_super_admin = is_super_admin
    if full_name is not None:
        user.full_name = full_name
    user.updated_at = utc_now()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
