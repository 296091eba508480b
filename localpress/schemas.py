# localpress/schemas.py
from typing import Optional, List, Literal
from datetime import datetime

from pydantic import BaseModel, Field


# ---- Articles ----
class ContentBlock(BaseModel):
    id: str
    type: Literal["text", "image"]
    content: Optional[str] = None
    url: Optional[str] = None
    caption: Optional[str] = None
    credit: Optional[str] = None
    order: int = 0


class ArticleFields(BaseModel):
    title: str
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None
    content_blocks: List[ContentBlock] = Field(default_factory=list)
    image_url: Optional[str] = None
    image_caption: Optional[str] = None
    image_credit: Optional[str] = None
    use_featured_image: bool = False
    sections: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    author_name: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    is_featured: bool = False
    is_breaking: bool = False
    breaking_news_duration: int = Field(default=24, ge=1)
    allow_comments: bool = True
    scheduled_for: Optional[datetime] = None


class ArticleCreate(ArticleFields):
    action: Literal["draft", "publish", "schedule"] = "draft"


class ArticleUpdate(ArticleFields):
    status: Optional[Literal["draft", "scheduled", "published", "archived"]] = None


# ---- Ads ----
class SlotAssignmentIn(BaseModel):
    ad_slot: str
    fill_section: bool = True


class AdIn(BaseModel):
    title: Optional[str] = None
    image_url: str
    link_url: str
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    runtime_seconds: Optional[int] = Field(default=None, ge=1)
    display_order: int = 0
    fill_section: bool = True
    slots: List[SlotAssignmentIn] = Field(default_factory=list)


class AdSettingIn(BaseModel):
    use_fallback: bool = False
    fallback_ad_code: Optional[str] = None


# ---- Analytics ----
class PageViewIn(BaseModel):
    session_id: str
    view_type: Literal["article", "homepage", "section", "author", "tag", "other"] = "other"
    article_id: Optional[int] = None
    referrer_url: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    device_type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


class PageViewUpdate(BaseModel):
    session_id: str
    article_id: Optional[int] = None
    time_spent_seconds: int = 0
    scroll_depth_percent: int = 0
    max_scroll_depth: int = 0
    completed_article: bool = False


class AdImpressionIn(BaseModel):
    ad_id: int
    ad_slot: str
    session_id: str
    page_url: Optional[str] = None
    device_type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    was_viewed: bool = True
    view_duration_seconds: int = 0
    viewport_position: Optional[Literal["above-fold", "mid-page", "below-fold"]] = None
    scroll_depth_when_viewed: Optional[int] = None


class AdClickIn(BaseModel):
    ad_id: int
    ad_slot: str
    session_id: str
    page_url: Optional[str] = None
    device_type: Optional[str] = None
    destination_url: Optional[str] = None


# ---- Users ----
class UsernameBody(BaseModel):
    username: str


class UserFlagsUpdate(BaseModel):
    full_name: Optional[str] = None
    is_admin: Optional[bool] = None
    is_super_admin: Optional[bool] = None


class ContactBody(BaseModel):
    name: str
    email: str
    subject: str = ""
    message: str
