# localpress/routers/articles.py

from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlmodel import Session, select

from localpress.db.session import get_session
from localpress.db.models import Article, UserProfile, utc_now
from localpress.utils.content import is_breaking_active

router = APIRouter()

RECOMMEND_TAG_WINDOW = 100


def published_articles(now=None):
    now = now or utc_now()
    return (
        select(Article)
        .where(Article.status == "published")
        .where(Article.published_at != None)  # noqa: E711
        .where(Article.published_at <= now)
    )


# ------------------------------
# Published articles, newest first
# ------------------------------
@router.get("")
def list_articles(
    section: Optional[str] = None,
    tag: Optional[str] = None,
    author: Optional[str] = None,
    featured: Optional[bool] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
):
    query = published_articles().order_by(Article.published_at.desc())

    if author:
        query = query.join(UserProfile, UserProfile.id == Article.author_id).where(UserProfile.username == author)
    if featured is not None:
        query = query.where(Article.is_featured == featured)

    articles = session.exec(query).all()

    # sections and tags are JSON lists, filtered here rather than in SQL
    if section:
        articles = [a for a in articles if section in (a.sections or []) or a.section == section]
    if tag:
        wanted = tag.lower()
        articles = [a for a in articles if any(t.lower() == wanted for t in (a.tags or []))]

    return {"articles": articles[offset: offset + limit], "total": len(articles)}


# ------------------------------
# Breaking news still inside its display window
# ------------------------------
@router.get("/breaking")
def breaking_news(session: Session = Depends(get_session)):
    now = utc_now()
    rows = session.exec(
        published_articles(now)
        .where(Article.is_breaking == True)  # noqa: E712
        .order_by(Article.published_at.desc())
        .limit(10)
    ).all()
    return {"articles": [a for a in rows if is_breaking_active(a, now)]}


# ------------------------------
# Fetch single article + auto-increment views
# ------------------------------
@router.get("/{slug}")
def get_article(slug: str, session: Session = Depends(get_session)):
    article = session.exec(published_articles().where(Article.slug == slug)).first()
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")

    increment_article_views(session, article.id)
    session.refresh(article)
    return article


# ------------------------------
# Recommended reading
# ------------------------------
@router.get("/{article_id}/recommended")
def recommended(
    article_id: int,
    limit: int = Query(3, ge=1, le=12),
    session: Session = Depends(get_session),
):
    article = session.get(Article, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return {"articles": recommended_articles(session, article, limit)}


def recommended_articles(session: Session, article: Article, limit: int = 3, now=None) -> List[Article]:
    """
    Published articles to read next: shared tags first, then the same
    section, then the most recent. The article itself is never included.
    """
    now = now or utc_now()
    others = published_articles(now).where(Article.id != article.id).order_by(Article.published_at.desc())
    picked: List[Article] = []

    def fill(candidates) -> None:
        for candidate in candidates:
            if len(picked) >= limit:
                return
            if all(p.id != candidate.id for p in picked):
                picked.append(candidate)

    wanted_tags = set(article.tags or [])
    if wanted_tags:
        # tags are a JSON list, matched here over a window of recent articles
        recent = session.exec(others.limit(RECOMMEND_TAG_WINDOW)).all()
        fill(a for a in recent if wanted_tags.intersection(a.tags or []))

    if len(picked) < limit:
        fill(session.exec(others.where(Article.section == article.section).limit(limit * 2)).all())

    if len(picked) < limit:
        fill(session.exec(others.limit(limit * 2)).all())

    return picked


# ------------------------------
# Share counter
# ------------------------------
@router.post("/{article_id}/share")
def share_article(article_id: int, session: Session = Depends(get_session)):
    shares = increment_article_shares(session, article_id)
    if shares is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return {"success": True, "share_count": shares}


def increment_article_views(session: Session, article_id: int) -> None:
    session.exec(
        Article.__table__.update()
        .where(Article.id == article_id)
        .values(view_count=Article.view_count + 1)
    )
    session.commit()


def increment_article_shares(session: Session, article_id: int) -> Optional[int]:
    """Atomically bump share_count; returns the new count or None for a missing article."""
    if not session.get(Article, article_id):
        return None
    session.exec(
        Article.__table__.update()
        .where(Article.id == article_id)
        .values(share_count=Article.share_count + 1)
    )
    session.commit()
    return session.exec(select(func.coalesce(Article.share_count, 0)).where(Article.id == article_id)).one()
