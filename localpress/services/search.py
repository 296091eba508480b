# localpress/services/search.py
import re
import logging
from datetime import datetime
from typing import Optional, List

from sqlalchemy import or_
from sqlmodel import Session, select

from localpress.db.models import Article, utc_now

logger = logging.getLogger("localpress.search")

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 50
MAX_SUGGESTIONS = 3

SEARCHABLE_FIELDS = ("title", "excerpt", "content", "meta_title", "meta_description", "category")

SECTIONS = [
    {"label": "Spring City", "query": "Spring City", "slug": "spring-city"},
    {"label": "Royersford", "query": "Royersford", "slug": "royersford"},
    {"label": "Limerick", "query": "Limerick", "slug": "limerick"},
    {"label": "Upper Providence", "query": "Upper Providence", "slug": "upper-providence"},
    {"label": "School District", "query": "School District", "slug": "school-district"},
    {"label": "Politics", "query": "Politics", "slug": "politics"},
    {"label": "Business", "query": "Business", "slug": "business"},
    {"label": "Events", "query": "Events", "slug": "events"},
    {"label": "Opinion", "query": "Opinion", "slug": "opinion"},
]


def summarize(article: Article) -> dict:
    return {
        "id": article.id,
        "title": article.title,
        "slug": article.slug,
        "excerpt": article.excerpt,
        "image_url": article.image_url,
        "author_name": article.author_name,
        "published_at": article.published_at,
        "category": article.category,
    }


def _published(now: datetime):
    return (
        select(Article)
        .where(Article.status == "published")
        .where(Article.published_at != None)  # noqa: E711
        .where(Article.published_at <= now)
    )


def _escape_like(q: str) -> str:
    return q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_articles(session: Session, search_query: str, now: Optional[datetime] = None) -> List[dict]:
    """
    Whole-word search over published articles.

    "car" matches "car" and "Car," but not "carbon" or "scar". Candidate rows
    are narrowed in SQL with a substring filter, then checked per word
    boundary in Python.
    """
    now = now or utc_now()
    terms = [t for t in re.split(r"\s+", search_query.strip()) if t]
    if not terms:
        return []

    like = f"%{_escape_like(search_query.strip())}%" if len(terms) == 1 else f"%{_escape_like(terms[0])}%"
    columns = [getattr(Article, f) for f in SEARCHABLE_FIELDS]
    statement = (
        _published(now)
        .where(or_(*[c.ilike(like, escape="\\") for c in columns]))
        .order_by(Article.published_at.desc())
    )

    patterns = [re.compile(rf"\b{re.escape(t)}\b", re.IGNORECASE) for t in terms]
    matches = []
    for article in session.exec(statement).all():
        haystack = " ".join(getattr(article, f) or "" for f in SEARCHABLE_FIELDS)
        if all(p.search(haystack) for p in patterns):
            matches.append(summarize(article))
        if len(matches) >= MAX_RESULTS:
            break
    return matches


def fallback_search(session: Session, q: str, now: Optional[datetime] = None) -> List[dict]:
    now = now or utc_now()
    like = f"%{_escape_like(q)}%"
    statement = (
        _published(now)
        .where(or_(*[getattr(Article, f).ilike(like, escape="\\") for f in SEARCHABLE_FIELDS]))
        .order_by(Article.published_at.desc())
        .limit(MAX_RESULTS)
    )
    return [summarize(a) for a in session.exec(statement).all()]


def search(session: Session, q: Optional[str]) -> dict:
    q = (q or "").strip()
    if len(q) < MIN_QUERY_LENGTH:
        return {"articles": [], "total": 0}

    try:
        articles = search_articles(session, q)
    except Exception as e:
        logger.error("Search error, using substring fallback: %s", e)
        session.rollback()
        try:
            articles = fallback_search(session, q)
        except Exception as e2:
            logger.error("Fallback search error: %s", e2)
            articles = []

    return {"articles": articles, "total": len(articles)}


# ------------------------------
# Suggestions
# ------------------------------
def suggestions(session: Session, q: Optional[str], now: Optional[datetime] = None) -> List[dict]:
    q = (q or "").strip().lower()
    if not q:
        return []
    now = now or utc_now()

    out: List[dict] = []
    seen = set()

    def add(kind: str, label: str) -> None:
        key = f"{kind}:{label}"
        if key not in seen and len(out) < MAX_SUGGESTIONS:
            seen.add(key)
            out.append({"label": label, "query": label})

    # 1. sections, by label or slug
    slug_q = re.sub(r"\s", "-", q)
    for s in SECTIONS:
        if q in s["label"].lower() or slug_q in s["slug"]:
            add("section", s["query"])

    # 2. published titles
    if len(out) < MAX_SUGGESTIONS:
        titles = session.exec(
            _published(now)
            .where(Article.title.ilike(f"%{_escape_like(q)}%", escape="\\"))
            .order_by(Article.published_at.desc())
            .limit(5)
        ).all()
        for a in titles:
            add("article", a.title)

    # 3. tags on published articles
    if len(out) < MAX_SUGGESTIONS:
        rows = session.exec(_published(now).order_by(Article.published_at.desc()).limit(100)).all()
        tags = []
        for a in rows:
            for t in a.tags or []:
                if isinstance(t, str) and t and q in t.lower() and t not in tags:
                    tags.append(t)
        for t in tags:
            add("tag", t)

    return out
