# localpress/routers/auth.py

import logging
from urllib.parse import quote

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import RedirectResponse, JSONResponse
from authlib.integrations.starlette_client import OAuth, OAuthError
from sqlmodel import Session

from localpress import config
from localpress.db.session import get_session
from localpress.db.models import UserProfile
from localpress.services import users as user_service
from localpress.utils.auth import create_access_token, get_optional_user

logger = logging.getLogger("localpress.auth")

router = APIRouter()

AUTH_ERROR_PATH = (
    "/auth/auth-code-error#error=access_denied&error_code=otp_expired"
    "&error_description=Email+link+is+invalid+or+expired"
)

# ===============================
# OAUTH SETUP
# ===============================
oauth = OAuth()
CONF_URL = "https://accounts.google.com/.well-known/openid-configuration"

if config.GOOGLE_CLIENT_ID and config.GOOGLE_CLIENT_SECRET:
    oauth.register(
        name="google",
        client_id=config.GOOGLE_CLIENT_ID,
        client_secret=config.GOOGLE_CLIENT_SECRET,
        server_metadata_url=CONF_URL,
        client_kwargs={"scope": "openid email profile"},
    )
else:
    logger.warning("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set; Google login disabled")


def _google():
    client = oauth.create_client("google")
    if client is None:
        raise HTTPException(status_code=503, detail="Google login is not configured")
    return client


def safe_next_path(next_path) -> str:
    """Only same-site relative paths are accepted as post-login targets."""
    if next_path and next_path.startswith("/") and not next_path.startswith("//"):
        return next_path
    return "/auth/confirm"


def user_payload(user: UserProfile) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "username": user.username,
        "avatar_url": user.avatar_url,
        "is_admin": user.is_admin,
        "is_super_admin": user.is_super_admin,
        "newsletter_subscribed": user.newsletter_subscribed,
    }


# ===============================
# GOOGLE LOGIN / CALLBACK
# ===============================
@router.get("/google/login")
async def google_login(request: Request, next: str = "/", newsletter: bool = False):
    client = _google()
    request.session["next"] = safe_next_path(next)
    request.session["newsletter"] = newsletter
    redirect_uri = f"{config.BASE_URL}/auth/google/callback"
    return await client.authorize_redirect(request, redirect_uri)


@router.get("/google/callback")
async def google_callback(request: Request, session: Session = Depends(get_session)):
    client = _google()
    try:
        token = await client.authorize_access_token(request)
    except OAuthError as e:
        logger.error("Auth exchange error: %s", e)
        return RedirectResponse(f"{config.FRONTEND_URL}{AUTH_ERROR_PATH}")

    # token may include id_token or userinfo
    userinfo = token.get("userinfo")
    if not userinfo:
        userinfo = await client.userinfo(token=token)

    google_id = userinfo.get("sub")
    email = userinfo.get("email")
    if not google_id or not email:
        return RedirectResponse(f"{config.FRONTEND_URL}{AUTH_ERROR_PATH}")

    user = user_service.upsert_oauth_user(
        session,
        google_id=google_id,
        email=email,
        name=userinfo.get("name"),
        picture=userinfo.get("picture"),
        newsletter=bool(request.session.pop("newsletter", False)),
    )
    next_path = safe_next_path(request.session.pop("next", None))

    # profiles without a username go pick one first
    if not user.username:
        target = f"{config.FRONTEND_URL}/auth/set-username?returnTo={quote(next_path, safe='')}"
    else:
        target = f"{config.FRONTEND_URL}{next_path}"

    access_token = create_access_token({"user_id": user.id, "email": user.email})
    response = RedirectResponse(url=target)
    response.set_cookie(
        key=config.TOKEN_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite="lax",
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return response


# ===============================
# AUTH CHECK
# ===============================
@router.get("/me")
def auth_me(request: Request, user=Depends(get_optional_user)):
    if not user:
        response = JSONResponse({"user": None})
        if request.cookies.get(config.TOKEN_COOKIE_NAME):
            response.delete_cookie(config.TOKEN_COOKIE_NAME)
        return response
    return {"user": user_payload(user)}


# ===============================
# LOGOUT
# ===============================
@router.post("/logout")
def logout():
    response = JSONResponse({"ok": True})
    response.delete_cookie(config.TOKEN_COOKIE_NAME)
    return response
