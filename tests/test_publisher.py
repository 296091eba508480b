import asyncio
from datetime import timedelta

from sqlmodel import Session

from localpress.db.models import Article, utc_now
from localpress.db.session import engine
from localpress.services import publisher
from localpress.services.publisher import ScheduledPublisher, auto_publish_scheduled_articles


def test_due_article_is_published_at_its_scheduled_time(session, make_article):
    scheduled_for = (utc_now() - timedelta(minutes=5)).replace(microsecond=0)
    article = make_article(status="scheduled", published_at=None, scheduled_for=scheduled_for)

    report = auto_publish_scheduled_articles(session)

    assert report.published_count == 1
    session.refresh(article)
    assert article.status == "published"
    assert article.published_at == scheduled_for
    assert article.updated_at >= scheduled_for


def test_second_run_is_a_noop(session, make_article):
    make_article(status="scheduled", published_at=None, scheduled_for=utc_now() - timedelta(minutes=1))

    first = auto_publish_scheduled_articles(session)
    second = auto_publish_scheduled_articles(session)

    assert first.published_count == 1
    assert second.published_count == 0
    assert second.results == []
    assert second.message == "No articles due for publishing"


def test_future_and_draft_articles_are_left_alone(session, make_article):
    future = make_article(status="scheduled", published_at=None, scheduled_for=utc_now() + timedelta(hours=2))
    draft = make_article(status="draft", published_at=None, scheduled_for=utc_now() - timedelta(hours=2))

    report = auto_publish_scheduled_articles(session)

    assert report.published_count == 0
    session.refresh(future)
    session.refresh(draft)
    assert future.status == "scheduled"
    assert draft.status == "draft"


def test_one_failure_does_not_block_others(session, make_article, monkeypatch):
    past = utc_now() - timedelta(minutes=10)
    bad = make_article(title="Bad", status="scheduled", published_at=None, scheduled_for=past)
    good = make_article(title="Good", status="scheduled", published_at=None, scheduled_for=past + timedelta(minutes=1))
    bad_id, good_id = bad.id, good.id

    real_publish = publisher.publish_article

    def flaky(s, article, now):
        if article.id == bad_id:
            raise RuntimeError("db write failed")
        real_publish(s, article, now)

    monkeypatch.setattr(publisher, "publish_article", flaky)

    report = auto_publish_scheduled_articles(session)

    assert report.published_count == 1
    by_id = {r.id: r for r in report.results}
    assert by_id[bad_id].success is False
    assert by_id[bad_id].error == "db write failed"
    assert by_id[good_id].success is True
    assert session.get(Article, good_id).status == "published"
    assert session.get(Article, bad_id).status == "scheduled"


def test_publish_route_reports_results(client, make_article):
    article = make_article(status="scheduled", published_at=None, scheduled_for=utc_now() - timedelta(seconds=30))

    response = client.get("/api/publish-scheduled")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["published_count"] == 1
    assert body["message"] == "Published 1 article(s)"
    assert body["results"] == [{"id": article.id, "title": article.title, "success": True}]
    assert "timestamp" in body


def test_publish_route_with_nothing_due(client):
    response = client.get("/api/publish-scheduled")

    body = response.json()
    assert response.status_code == 200
    assert body["published_count"] == 0
    assert body["message"] == "No articles due for publishing"
    assert "results" not in body


def test_publish_route_surfaces_query_errors(client, monkeypatch):
    def broken(session, now):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(publisher, "due_articles", broken)

    response = client.get("/api/publish-scheduled")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "connection refused"}


def test_admin_listing_publishes_overdue_articles(client, session, make_article, admin_headers):
    article = make_article(status="scheduled", published_at=None, scheduled_for=utc_now() - timedelta(minutes=1))

    response = client.get("/api/admin/articles", headers=admin_headers)

    assert response.status_code == 200
    statuses = {a["id"]: a["status"] for a in response.json()["articles"]}
    assert statuses[article.id] == "published"


def test_background_publisher_runs_before_stopping(make_article):
    article = make_article(status="scheduled", published_at=None, scheduled_for=utc_now() - timedelta(minutes=1))

    async def run():
        job = ScheduledPublisher(engine, interval_seconds=3600)
        job.start()
        await asyncio.sleep(0)
        await job.stop()

    asyncio.run(run())

    with Session(engine) as s:
        assert s.get(Article, article.id).status == "published"


def test_scheduled_time_survives_a_commit(session, make_article):
    when = (utc_now() + timedelta(hours=3)).replace(microsecond=0)
    article_id = make_article(status="scheduled", published_at=None, scheduled_for=when).id

    session.expire_all()
    stored = session.get(Article, article_id)

    assert stored.scheduled_for == when
    assert stored.scheduled_for.tzinfo is None
