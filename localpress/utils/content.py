# localpress/utils/content.py
import re
from typing import Optional, List
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from sqlmodel import Session, select

from localpress.db.models import Article, utc_now

USERNAME_REGEX = re.compile(r"^[a-zA-Z0-9_]+$")
USERNAME_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 100

_TABLET_UA = re.compile(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE)
_MOBILE_UA = re.compile(
    r"Mobile|Android|iP(hone|od)|IEMobile|BlackBerry|Kindle|Silk-Accelerated|(hpw|web)OS|Opera M(obi|ini)"
)
_SEARCH_ENGINES = re.compile(r"google|bing|yahoo|duckduckgo|baidu|yandex")


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to the naive-UTC form stored in the db."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ------------------------------
# Slugs
# ------------------------------
def generate_slug(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())
    return slug.strip("-")[:SLUG_MAX_LENGTH]


def unique_slug(session: Session, title: str, exclude_id: Optional[int] = None) -> str:
    base = generate_slug(title) or "article"
    candidate = base
    n = 2
    while True:
        existing = session.exec(select(Article).where(Article.slug == candidate)).first()
        if not existing or existing.id == exclude_id:
            return candidate
        suffix = f"-{n}"
        candidate = base[: SLUG_MAX_LENGTH - len(suffix)] + suffix
        n += 1


# ------------------------------
# Content blocks
# ------------------------------
def blocks_to_legacy_content(blocks: List[dict]) -> str:
    parts = []
    for block in sorted(blocks, key=lambda b: b.get("order", 0)):
        if block.get("type") == "text":
            parts.append(block.get("content") or "")
        else:
            parts.append(f"[Image: {block.get('caption') or 'Article image'}]")
    return "\n\n".join(parts)


def has_text_content(blocks: List[dict]) -> bool:
    return any(b.get("type") == "text" and (b.get("content") or "").strip() for b in blocks)


def is_breaking_active(article: Article, now: Optional[datetime] = None) -> bool:
    if not article.is_breaking:
        return False
    # rows without a timestamp predate expiry tracking and stay visible
    if not article.breaking_news_set_at:
        return True
    now = now or utc_now()
    hours = article.breaking_news_duration or 24
    return now < article.breaking_news_set_at + timedelta(hours=hours)


# ------------------------------
# Usernames
# ------------------------------
def validate_username(value: str) -> Optional[str]:
    """Return an error message, or None when the username is well formed."""
    trimmed = (value or "").strip()
    if len(trimmed) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if not USERNAME_REGEX.match(trimmed):
        return "Username can only contain letters, numbers, and underscores"
    return None


# ------------------------------
# Request classification
# ------------------------------
def detect_device_type(user_agent: Optional[str]) -> str:
    ua = user_agent or ""
    if _TABLET_UA.search(ua):
        return "tablet"
    if _MOBILE_UA.search(ua):
        return "mobile"
    return "desktop"


def classify_traffic_source(referrer: Optional[str], current_host: Optional[str]) -> str:
    if not referrer:
        return "external"
    host = urlparse(referrer).hostname or ""
    if current_host and host == current_host:
        return "internal"
    if _SEARCH_ENGINES.search(host):
        return "search"
    return "external"
