# localpress/routers/admin.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlmodel import Session, select

from localpress.db.session import get_session
from localpress.db.models import ARTICLE_STATUSES, Article, Ad, UserProfile, utc_now
from localpress.exceptions import NotFoundError, ValidationError
from localpress.schemas import ArticleCreate, ArticleUpdate, AdIn, AdSettingIn, UserFlagsUpdate
from localpress.services import ads as ad_service
from localpress.services import analytics as analytics_service
from localpress.services import users as user_service
from localpress.services.publisher import auto_publish_scheduled_articles
from localpress.utils.auth import require_admin, require_super_admin
from localpress.utils.content import (
    blocks_to_legacy_content,
    has_text_content,
    to_naive_utc,
    unique_slug,
)

logger = logging.getLogger("localpress.admin")

router = APIRouter()


def _validate_article(data, scheduling: bool) -> list:
    blocks = [b.model_dump() for b in data.content_blocks]
    if not data.title.strip():
        raise HTTPException(status_code=400, detail="Please enter a title")
    if not has_text_content(blocks):
        raise HTTPException(status_code=400, detail="Please add some content")
    if not data.sections:
        raise HTTPException(status_code=400, detail="Please select at least one section")
    if scheduling and not data.scheduled_for:
        raise HTTPException(status_code=400, detail="Please select a date and time for scheduling")
    return blocks


def _apply_fields(article: Article, data, blocks: list) -> None:
    article.title = data.title.strip()
    article.subtitle = data.subtitle or None
    article.excerpt = data.excerpt or None
    article.content_blocks = blocks
    article.content = blocks_to_legacy_content(blocks)
    article.use_featured_image = data.use_featured_image
    article.image_url = data.image_url if data.use_featured_image else None
    article.image_caption = data.image_caption if data.use_featured_image else None
    article.image_credit = data.image_credit if data.use_featured_image else None
    article.sections = list(data.sections)
    article.section = data.sections[0] if data.sections else "general"
    article.category = data.category or None
    article.tags = list(data.tags) if data.tags else None
    article.meta_title = data.meta_title or None
    article.meta_description = data.meta_description or None
    article.is_featured = data.is_featured
    article.breaking_news_duration = data.breaking_news_duration
    article.allow_comments = data.allow_comments
    if data.author_name:
        article.author_name = data.author_name

    if data.is_breaking and not (article.is_breaking and article.breaking_news_set_at):
        article.breaking_news_set_at = utc_now()
    elif not data.is_breaking:
        article.breaking_news_set_at = None
    article.is_breaking = data.is_breaking


# ------------------------------
# Articles
# ------------------------------
@router.get("/articles")
def list_admin_articles(
    status: Optional[str] = None,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    # publish anything overdue before showing the table
    try:
        report = auto_publish_scheduled_articles(session)
        if report.published_count:
            logger.info("Auto-published %s scheduled article(s)", report.published_count)
    except Exception as e:
        session.rollback()
        logger.error("Error auto-publishing: %s", e)

    query = select(Article).order_by(Article.created_at.desc())
    if status and status != "all":
        query = query.where(Article.status == status)
    return {"articles": session.exec(query).all()}


@router.post("/articles", status_code=201)
def create_article(
    data: ArticleCreate,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    blocks = _validate_article(data, scheduling=data.action == "schedule")

    now = utc_now()
    article = Article(
        title=data.title.strip(),
        slug=unique_slug(session, data.title),
        author_id=admin.id,
        author_name=admin.full_name or admin.username,
        created_at=now,
        updated_at=now,
    )
    _apply_fields(article, data, blocks)

    if data.action == "publish":
        article.status = "published"
        article.published_at = now
    elif data.action == "schedule":
        article.status = "scheduled"
        article.scheduled_for = to_naive_utc(data.scheduled_for)
    else:
        article.status = "draft"

    session.add(article)
    session.commit()
    session.refresh(article)
    return {"success": True, "article": article}


@router.put("/articles/{article_id}")
def update_article(
    article_id: int,
    data: ArticleUpdate,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    article = session.get(Article, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")

    status = data.status or article.status
    blocks = _validate_article(data, scheduling=status == "scheduled")

    if data.title.strip() != article.title:
        article.slug = unique_slug(session, data.title, exclude_id=article.id)
    _apply_fields(article, data, blocks)

    if status == "published" and article.status != "published":
        article.published_at = utc_now()
    if status == "scheduled":
        article.scheduled_for = to_naive_utc(data.scheduled_for)
        article.published_at = None
    article.status = status
    article.updated_at = utc_now()
    article.updated_by = admin.id

    session.add(article)
    session.commit()
    session.refresh(article)
    return {"success": True, "article": article}


@router.delete("/articles/{article_id}")
def delete_article(
    article_id: int,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    article = session.get(Article, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    session.delete(article)
    session.commit()
    return {"success": True}


@router.get("/stats")
def admin_stats(session: Session = Depends(get_session), admin: UserProfile = Depends(require_admin)):
    counts = dict(session.exec(select(Article.status, func.count(Article.id)).group_by(Article.status)).all())
    views, shares = session.exec(
        select(func.coalesce(func.sum(Article.view_count), 0), func.coalesce(func.sum(Article.share_count), 0))
    ).one()
    return {
        "total": sum(counts.values()),
        "by_status": {s: counts.get(s, 0) for s in ARTICLE_STATUSES},
        "total_views": int(views),
        "total_shares": int(shares),
    }


# ------------------------------
# Ads
# ------------------------------
def _ad_payload(ad: Ad) -> dict:
    data = ad.model_dump()
    data["slots"] = [{"ad_slot": a.ad_slot, "fill_section": a.fill_section} for a in ad.assignments]
    return data


@router.get("/ads")
def list_ads(session: Session = Depends(get_session), admin: UserProfile = Depends(require_admin)):
    ads = session.exec(select(Ad).order_by(Ad.display_order, Ad.created_at)).all()
    return {"ads": [_ad_payload(ad) for ad in ads]}


def _apply_ad(ad: Ad, data: AdIn) -> None:
    start, end = to_naive_utc(data.start_date), to_naive_utc(data.end_date)
    if end < start:
        raise HTTPException(status_code=400, detail="End date must be after start date")
    ad.title = data.title
    ad.image_url = data.image_url
    ad.link_url = data.link_url
    ad.start_date = start
    ad.end_date = end
    ad.is_active = data.is_active
    ad.runtime_seconds = data.runtime_seconds
    ad.display_order = data.display_order
    ad.fill_section = data.fill_section
    ad.ad_slot = data.slots[0].ad_slot if data.slots else None
    ad.updated_at = utc_now()


@router.post("/ads", status_code=201)
def create_ad(data: AdIn, session: Session = Depends(get_session), admin: UserProfile = Depends(require_admin)):
    ad = Ad(image_url=data.image_url, link_url=data.link_url, start_date=data.start_date, end_date=data.end_date)
    _apply_ad(ad, data)
    ad.created_by = admin.id
    ad_service.set_ad_slots(session, ad, [s.model_dump() for s in data.slots])
    session.commit()
    session.refresh(ad)
    return {"success": True, "ad": _ad_payload(ad)}


@router.put("/ads/{ad_id}")
def update_ad(
    ad_id: int,
    data: AdIn,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    ad = session.get(Ad, ad_id)
    if not ad:
        raise HTTPException(status_code=404, detail="Ad not found")
    _apply_ad(ad, data)
    ad_service.set_ad_slots(session, ad, [s.model_dump() for s in data.slots])
    session.commit()
    session.refresh(ad)
    return {"success": True, "ad": _ad_payload(ad)}


@router.delete("/ads/{ad_id}")
def delete_ad(ad_id: int, session: Session = Depends(get_session), admin: UserProfile = Depends(require_admin)):
    ad = session.get(Ad, ad_id)
    if not ad:
        raise HTTPException(status_code=404, detail="Ad not found")
    session.delete(ad)
    session.commit()
    return {"success": True}


@router.put("/ad-settings/{slot}")
def update_ad_setting(
    slot: str,
    data: AdSettingIn,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    setting = ad_service.upsert_ad_setting(session, slot, data.use_fallback, data.fallback_ad_code, admin.id)
    return {"success": True, "setting": setting}


@router.get("/analytics/ads")
def ad_analytics(session: Session = Depends(get_session), admin: UserProfile = Depends(require_admin)):
    return {"ads": ad_service.ad_performance(session)}


@router.get("/analytics/overview")
def analytics_overview(
    range_key: str = Query("30d", alias="range"),
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_admin),
):
    try:
        return analytics_service.site_overview(session, range_key)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ------------------------------
# Users
# ------------------------------
@router.get("/users")
def list_users(session: Session = Depends(get_session), admin: UserProfile = Depends(require_admin)):
    return {"users": session.exec(select(UserProfile).order_by(UserProfile.created_at.desc())).all()}


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    data: UserFlagsUpdate,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_super_admin),
):
    try:
        user = user_service.update_user_flags(
            session, user_id, is_admin=data.is_admin, is_super_admin=data.is_super_admin, full_name=data.full_name
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "user": user}


@router.post("/delete-user")
def delete_user(
    data: dict,
    session: Session = Depends(get_session),
    admin: UserProfile = Depends(require_super_admin),
):
    user_id = data.get("userId")
    if user_id is None or user_id == "":
        raise HTTPException(status_code=400, detail="User ID is required")
    # bool is an int subclass; float ids must be whole numbers
    if isinstance(user_id, bool) or (isinstance(user_id, float) and not user_id.is_integer()):
        raise HTTPException(status_code=400, detail="User ID must be an integer")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="User ID must be an integer")

    try:
        user_service.delete_user_as_admin(session, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        session.rollback()
        logger.error("Error deleting user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to delete user: {e}")
    return {"success": True}
