# localpress/services/analytics.py
"""
Site analytics report for the admin dashboard.

Aggregates page views, reading engagement, traffic sources, devices and ad
slot performance over a time range ("7d", "30d", "90d" or "all").
"""
from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy import case, func
from sqlmodel import Session, select

from localpress.db.models import Ad, AdClick, AdImpression, Article, PageView, utc_now
from localpress.exceptions import ValidationError

RANGES = {"7d": 7, "30d": 30, "90d": 90, "all": None}
COMPLETION_SCROLL_PERCENT = 90
TOP_LIMIT = 5


def range_start(range_key: str, now: Optional[datetime] = None) -> Optional[datetime]:
    if range_key not in RANGES:
        raise ValidationError(f"Unknown range {range_key!r}; expected one of {', '.join(RANGES)}")
    days = RANGES[range_key]
    if days is None:
        return None
    return (now or utc_now()) - timedelta(days=days)


def _since(statement, column, start: Optional[datetime]):
    return statement if start is None else statement.where(column >= start)


def _pct(part, whole) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


# ------------------------------
# Sections of the report
# ------------------------------
def _engagement(session: Session, start: Optional[datetime]) -> dict:
    total_views = session.exec(_since(select(func.count(PageView.id)), PageView.viewed_at, start)).one()

    # time per session, counting only views that reported time spent
    total_time, sessions = session.exec(
        _since(
            select(func.coalesce(func.sum(PageView.time_spent_seconds), 0), func.count(func.distinct(PageView.session_id)))
            .where(PageView.time_spent_seconds > 0),
            PageView.viewed_at,
            start,
        )
    ).one()

    completed = case(
        (
            (PageView.completed_article == True)  # noqa: E712
            | (PageView.max_scroll_depth >= COMPLETION_SCROLL_PERCENT),
            1,
        ),
        else_=0,
    )
    reads, finished, avg_read = session.exec(
        _since(
            select(func.count(PageView.id), func.coalesce(func.sum(completed), 0), func.avg(PageView.time_spent_seconds))
            .where(PageView.article_id != None)  # noqa: E711
            .where(PageView.time_spent_seconds != None),  # noqa: E711
            PageView.viewed_at,
            start,
        )
    ).one()

    return {
        "total_page_views": total_views,
        "avg_session_duration": round(total_time / sessions) if sessions else 0,
        "avg_reading_time": round(avg_read or 0),
        "completion_rate": _pct(finished, reads),
    }


def _top_articles(session: Session, start: Optional[datetime]) -> List[dict]:
    articles = session.exec(
        select(Article)
        .where(Article.status == "published")
        .order_by(Article.view_count.desc())
        .limit(TOP_LIMIT)
    ).all()
    if not articles:
        return []

    avg_time = dict(
        session.exec(
            _since(
                select(PageView.article_id, func.avg(PageView.time_spent_seconds))
                .where(PageView.article_id.in_([a.id for a in articles]))
                .where(PageView.time_spent_seconds != None)  # noqa: E711
                .group_by(PageView.article_id),
                PageView.viewed_at,
                start,
            )
        ).all()
    )
    return [
        {
            "id": a.id,
            "title": a.title,
            "slug": a.slug,
            "section": a.section,
            "author_name": a.author_name,
            "view_count": a.view_count,
            "share_count": a.share_count,
            "avg_time_spent": round(avg_time.get(a.id) or 0),
        }
        for a in articles
    ]


def _section_performance(session: Session, start: Optional[datetime]) -> List[dict]:
    views = func.count(PageView.id)
    rows = session.exec(
        _since(
            select(Article.section, views, func.avg(PageView.time_spent_seconds))
            .select_from(PageView)
            .join(Article, Article.id == PageView.article_id)
            .group_by(Article.section)
            .order_by(views.desc())
            .limit(TOP_LIMIT),
            PageView.viewed_at,
            start,
        )
    ).all()
    return [{"name": name, "views": count, "avg_time_spent": round(avg or 0)} for name, count, avg in rows]


def _breakdown(session: Session, column, start: Optional[datetime], key: str) -> List[dict]:
    label = func.coalesce(column, "unknown")
    count = func.count(PageView.id)
    rows = session.exec(
        _since(select(label, count).group_by(label).order_by(count.desc()), PageView.viewed_at, start)
    ).all()
    total = sum(c for _, c in rows)
    return [{key: name, "count": c, "percentage": _pct(c, total)} for name, c in rows]


def _ad_slots(session: Session, start: Optional[datetime]) -> dict:
    viewed = func.sum(case((AdImpression.was_viewed == True, 1), else_=0))  # noqa: E712
    view_time = func.sum(case((AdImpression.was_viewed == True, AdImpression.view_duration_seconds), else_=0))  # noqa: E712

    def position(name):
        return func.sum(case((AdImpression.viewport_position == name, 1), else_=0))

    rows = session.exec(
        _since(
            select(
                AdImpression.ad_slot,
                func.count(AdImpression.id),
                viewed,
                view_time,
                position("above-fold"),
                position("mid-page"),
                position("below-fold"),
            ).group_by(AdImpression.ad_slot),
            AdImpression.created_at,
            start,
        )
    ).all()
    clicks = dict(
        session.exec(
            _since(
                select(AdClick.ad_slot, func.count(AdClick.id)).group_by(AdClick.ad_slot),
                AdClick.created_at,
                start,
            )
        ).all()
    )

    slots = []
    total_impressions = total_viewed = total_view_time = 0
    for slot, impressions, seen, seconds, above, mid, below in rows:
        seen, seconds = seen or 0, seconds or 0
        total_impressions += impressions
        total_viewed += seen
        total_view_time += seconds
        slot_clicks = clicks.get(slot, 0)
        slots.append(
            {
                "slot": slot,
                "impressions": impressions,
                "viewed": seen,
                "clicks": slot_clicks,
                "ctr": _pct(slot_clicks, impressions),
                "viewability": _pct(seen, impressions),
                "avg_view_time": round(seconds / seen) if seen else 0,
                "above_fold": above or 0,
                "mid_page": mid or 0,
                "below_fold": below or 0,
            }
        )
    slots.sort(key=lambda s: s["impressions"], reverse=True)

    return {
        "total_impressions": total_impressions,
        "total_clicks": sum(clicks.values()),
        "viewability": _pct(total_viewed, total_impressions),
        "avg_time_in_viewport": round(total_view_time / total_viewed) if total_viewed else 0,
        "slots": slots,
    }


def _top_ads(session: Session, start: Optional[datetime]) -> List[dict]:
    impressions = dict(
        session.exec(
            _since(
                select(AdImpression.ad_id, func.count(AdImpression.id)).group_by(AdImpression.ad_id),
                AdImpression.created_at,
                start,
            )
        ).all()
    )
    if not impressions:
        return []
    clicks = dict(
        session.exec(
            _since(select(AdClick.ad_id, func.count(AdClick.id)).group_by(AdClick.ad_id), AdClick.created_at, start)
        ).all()
    )
    titles = dict(session.exec(select(Ad.id, Ad.title).where(Ad.id.in_(list(impressions)))).all())

    rows = [
        {
            "ad_id": ad_id,
            "title": titles.get(ad_id),
            "impressions": shown,
            "clicks": clicks.get(ad_id, 0),
            "ctr": _pct(clicks.get(ad_id, 0), shown),
        }
        for ad_id, shown in impressions.items()
    ]
    rows.sort(key=lambda r: (r["clicks"], r["impressions"]), reverse=True)
    return rows[:TOP_LIMIT]


def site_overview(session: Session, range_key: str = "30d", now: Optional[datetime] = None) -> dict:
    """Build the full dashboard report. Raises ValidationError for an unknown range."""
    start = range_start(range_key, now)
    report = {"range": range_key, "since": start.isoformat() if start else None}
    report.update(_engagement(session, start))
    report["top_articles"] = _top_articles(session, start)
    report["sections"] = _section_performance(session, start)
    report["traffic_sources"] = _breakdown(session, PageView.traffic_source, start, "source")
    report["devices"] = _breakdown(session, PageView.device_type, start, "device")
    report["ads"] = _ad_slots(session, start)
    report["top_ads"] = _top_ads(session, start)
    return report
