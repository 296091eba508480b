# localpress/services/publisher.py
"""
Scheduled publication.

Every caller (the HTTP route, the admin listing and the background job) goes
through auto_publish_scheduled_articles, so there is a single transition.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List

from sqlmodel import Session, select

from localpress.db.models import Article, utc_now
from localpress.logger import log_event

logger = logging.getLogger("localpress.publisher")


@dataclass
class PublishResult:
    id: int
    title: str
    success: bool
    error: Optional[str] = None

    def as_dict(self) -> dict:
        data = {"id": self.id, "title": self.title, "success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class PublishReport:
    timestamp: datetime
    results: List[PublishResult] = field(default_factory=list)

    @property
    def published_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def message(self) -> str:
        if not self.results:
            return "No articles due for publishing"
        return f"Published {self.published_count} article(s)"

    def as_dict(self) -> dict:
        return {
            "success": True,
            "message": self.message,
            "published_count": self.published_count,
            "results": [r.as_dict() for r in self.results],
            "timestamp": self.timestamp.isoformat(),
        }


def due_articles(session: Session, now: datetime) -> List[Article]:
    statement = (
        select(Article)
        .where(Article.status == "scheduled")
        .where(Article.scheduled_for != None)  # noqa: E711
        .where(Article.scheduled_for <= now)
        .order_by(Article.scheduled_for)
    )
    return list(session.exec(statement).all())


def publish_article(session: Session, article: Article, now: datetime) -> None:
    article.status = "published"
    # keep the scheduled time as the publication time, not the transition time
    article.published_at = article.scheduled_for
    article.updated_at = now
    session.add(article)
    session.commit()


def auto_publish_scheduled_articles(session: Session, now: Optional[datetime] = None) -> PublishReport:
    """
    Move every due scheduled article to published.

    Articles are handled one at a time; a failed commit is rolled back and
    recorded without stopping the rest. Errors from the initial query
    propagate to the caller.
    """
    now = now or utc_now()
    report = PublishReport(timestamp=now)

    # snapshot id/title before commits expire the instances
    pending = [(a, a.id, a.title) for a in due_articles(session, now)]
    for article, article_id, title in pending:
        try:
            publish_article(session, article, now)
        except Exception as e:
            session.rollback()
            logger.error("Error publishing article %s: %s", article_id, e)
            report.results.append(PublishResult(id=article_id, title=title, success=False, error=str(e)))
        else:
            report.results.append(PublishResult(id=article_id, title=title, success=True))

    if report.results:
        log_event(
            logger,
            logging.INFO,
            "auto_publish",
            due=len(report.results),
            published=report.published_count,
        )
    return report


# ------------------------------
# Background job
# ------------------------------
class ScheduledPublisher:
    """Run the publish check on an interval until stopped."""

    def __init__(self, engine, interval_seconds: int = 30):
        self.engine = engine
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> PublishReport:
        with Session(self.engine) as session:
            return auto_publish_scheduled_articles(session)

    async def _loop(self) -> None:
        logger.info("Scheduled publisher started (interval: %ss)", self.interval_seconds)
        while not self._stop_event.is_set():
            try:
                report = await asyncio.to_thread(self.run_once)
                if report.published_count:
                    logger.info("Auto-published %s article(s)", report.published_count)
            except Exception as e:
                logger.error("Error checking scheduled articles: %s", e)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break  # stop event was set
            except asyncio.TimeoutError:
                pass
        logger.info("Scheduled publisher stopped")

    def start(self) -> None:
        if self._task is None:
            self._stop_event.clear()
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
