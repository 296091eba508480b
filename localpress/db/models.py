# localpress/db/models.py
from typing import Optional, List
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field, Relationship


def utc_now() -> datetime:
    # columns are naive timestamps holding UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


ARTICLE_STATUSES = ("draft", "scheduled", "published", "archived")


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    google_id: Optional[str] = Field(default=None, unique=True, index=True)
    email: str = Field(index=True)
    full_name: Optional[str] = None
    username: Optional[str] = Field(default=None, unique=True, index=True)
    avatar_url: Optional[str] = None
    is_admin: bool = Field(default=False)
    is_super_admin: bool = Field(default=False)
    newsletter_subscribed: bool = Field(default=False)
    newsletter_subscribed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    articles: List["Article"] = Relationship(back_populates="author")


class Article(SQLModel, table=True):
    __tablename__ = "articles"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(unique=True, index=True)
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None

    # legacy flat text, generated from content_blocks on save
    content: str = ""
    content_blocks: List[dict] = Field(default_factory=list, sa_column=Column(JSON))

    image_url: Optional[str] = None
    image_caption: Optional[str] = None
    image_credit: Optional[str] = None
    use_featured_image: bool = Field(default=False)

    status: str = Field(default="draft", index=True)
    published_at: Optional[datetime] = Field(default=None, index=True)
    scheduled_for: Optional[datetime] = Field(default=None, index=True)

    section: str = Field(default="general")
    sections: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    category: Optional[str] = None
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    author_id: Optional[int] = Field(default=None, foreign_key="user_profiles.id")
    author_name: Optional[str] = None
    author: Optional[UserProfile] = Relationship(back_populates="articles")

    meta_title: Optional[str] = None
    meta_description: Optional[str] = None

    view_count: int = Field(default=0)
    share_count: int = Field(default=0)

    is_featured: bool = Field(default=False)
    is_breaking: bool = Field(default=False)
    breaking_news_duration: int = Field(default=24)  # hours
    breaking_news_set_at: Optional[datetime] = None
    allow_comments: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    updated_by: Optional[int] = None


# ------------------------------
# Ads
# ------------------------------
class Ad(SQLModel, table=True):
    __tablename__ = "ads"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: Optional[str] = None
    image_url: str
    link_url: str
    ad_slot: Optional[str] = Field(default=None, index=True)  # legacy single slot
    start_date: datetime
    end_date: datetime
    is_active: bool = Field(default=True)
    runtime_seconds: Optional[int] = None
    display_order: int = Field(default=0)
    fill_section: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    created_by: Optional[int] = None

    assignments: List["AdSlotAssignment"] = Relationship(
        back_populates="ad",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class AdSlotAssignment(SQLModel, table=True):
    __tablename__ = "ad_slot_assignments"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_id: int = Field(foreign_key="ads.id", index=True)
    ad_slot: str = Field(index=True)
    fill_section: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    ad: Optional[Ad] = Relationship(back_populates="assignments")


class AdSetting(SQLModel, table=True):
    __tablename__ = "ad_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_slot: str = Field(unique=True, index=True)
    use_fallback: bool = Field(default=False)
    fallback_ad_code: Optional[str] = None
    updated_at: datetime = Field(default_factory=utc_now)
    updated_by: Optional[int] = None


# ------------------------------
# Analytics (append-only)
# ------------------------------
class PageView(SQLModel, table=True):
    __tablename__ = "page_views"

    id: Optional[int] = Field(default=None, primary_key=True)
    article_id: Optional[int] = Field(default=None, index=True)
    user_id: Optional[int] = None
    session_id: str = Field(index=True)
    view_type: str = "other"
    referrer_url: Optional[str] = None
    traffic_source: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    device_type: str = "desktop"
    user_agent: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    time_spent_seconds: Optional[int] = None
    scroll_depth_percent: Optional[int] = None
    max_scroll_depth: Optional[int] = None
    completed_article: bool = Field(default=False)
    exit_page: bool = Field(default=False)
    viewed_at: datetime = Field(default_factory=utc_now)


class AdImpression(SQLModel, table=True):
    __tablename__ = "ad_impressions"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_id: int = Field(index=True)
    ad_slot: str
    user_id: Optional[int] = None
    session_id: str
    page_url: Optional[str] = None
    device_type: str = "desktop"
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    was_viewed: bool = Field(default=True)
    view_duration_seconds: int = Field(default=0)
    viewport_position: Optional[str] = None
    scroll_depth_when_viewed: Optional[int] = None
    created_at: datetime = Field(default_factory=utc_now)


class AdClick(SQLModel, table=True):
    __tablename__ = "ad_clicks"

    id: Optional[int] = Field(default=None, primary_key=True)
    ad_id: int = Field(index=True)
    ad_slot: str
    user_id: Optional[int] = None
    session_id: str
    page_url: Optional[str] = None
    device_type: str = "desktop"
    destination_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
