from datetime import timedelta

import pytest

from conftest import auth_headers
from localpress.db.models import Ad, AdClick, AdImpression, PageView, utc_now
from localpress.services.analytics import site_overview


def test_page_view_classifies_request(client, session):
    response = client.post(
        "/api/analytics/page-view",
        json={"session_id": "s1", "view_type": "homepage", "referrer_url": "https://www.bing.com/search?q=news"},
        headers={"User-Agent": "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X)"},
    )

    assert response.status_code == 201
    row = session.get(PageView, response.json()["id"])
    assert row.device_type == "tablet"
    assert row.traffic_source == "search"
    assert row.user_id is None


def test_engagement_update_targets_latest_view(client, session, make_article):
    article = make_article()
    client.post("/api/analytics/page-view", json={"session_id": "s1", "view_type": "article", "article_id": article.id})
    latest = client.post(
        "/api/analytics/page-view", json={"session_id": "s1", "view_type": "article", "article_id": article.id}
    ).json()["id"]

    response = client.patch(
        "/api/analytics/page-view",
        json={"session_id": "s1", "article_id": article.id, "time_spent_seconds": 95,
              "scroll_depth_percent": 80, "max_scroll_depth": 100, "completed_article": True},
    )

    assert response.json() == {"ok": True, "id": latest}
    row = session.get(PageView, latest)
    assert row.time_spent_seconds == 95
    assert row.completed_article is True
    assert row.exit_page is True


def test_engagement_update_for_non_article_page(client):
    client.post("/api/analytics/page-view", json={"session_id": "s2", "view_type": "homepage"})

    ok = client.patch("/api/analytics/page-view", json={"session_id": "s2", "time_spent_seconds": 5})
    missing = client.patch("/api/analytics/page-view", json={"session_id": "nope"})

    assert ok.status_code == 200
    assert missing.status_code == 404


# =============================================================================
# Dashboard report
# =============================================================================

@pytest.fixture
def traffic(session, make_article):
    now = utc_now()
    article = make_article(section="sports", view_count=10)
    ad = Ad(title="Bakery", image_url="i", link_url="l", start_date=now, end_date=now)
    session.add(ad)
    session.commit()
    session.refresh(ad)

    session.add_all([
        PageView(session_id="s1", article_id=article.id, view_type="article", time_spent_seconds=60,
                 max_scroll_depth=95, traffic_source="search", device_type="mobile", viewed_at=now - timedelta(days=1)),
        PageView(session_id="s1", article_id=article.id, view_type="article", time_spent_seconds=30,
                 max_scroll_depth=40, traffic_source="internal", device_type="desktop", viewed_at=now - timedelta(days=2)),
        PageView(session_id="s2", view_type="homepage", time_spent_seconds=30,
                 traffic_source="external", device_type="desktop", viewed_at=now - timedelta(days=2)),
        PageView(session_id="s3", article_id=article.id, view_type="article", time_spent_seconds=100,
                 traffic_source="search", device_type="tablet", viewed_at=now - timedelta(days=40)),
        AdImpression(ad_id=ad.id, ad_slot="homepage-banner", session_id="s1", was_viewed=True,
                     view_duration_seconds=4, viewport_position="above-fold"),
        AdImpression(ad_id=ad.id, ad_slot="homepage-banner", session_id="s1", was_viewed=True,
                     view_duration_seconds=6, viewport_position="above-fold"),
        AdImpression(ad_id=ad.id, ad_slot="homepage-banner", session_id="s2", was_viewed=False,
                     viewport_position="below-fold"),
        AdClick(ad_id=ad.id, ad_slot="homepage-banner", session_id="s1"),
    ])
    session.commit()
    return article, ad


def test_overview_engagement_within_range(session, traffic):
    report = site_overview(session, "30d")

    assert report["total_page_views"] == 3
    # 120 seconds over two sessions
    assert report["avg_session_duration"] == 60
    assert report["avg_reading_time"] == 45
    assert report["completion_rate"] == 50.0


def test_overview_all_time_includes_older_views(session, traffic):
    report = site_overview(session, "all")

    assert report["since"] is None
    assert report["total_page_views"] == 4


def test_overview_breakdowns(session, traffic):
    article, _ = traffic

    report = site_overview(session, "30d")

    assert report["devices"][0] == {"device": "desktop", "count": 2, "percentage": 66.67}
    assert {t["source"] for t in report["traffic_sources"]} == {"search", "internal", "external"}
    assert report["sections"] == [{"name": "sports", "views": 2, "avg_time_spent": 45}]
    assert report["top_articles"][0]["id"] == article.id
    assert report["top_articles"][0]["avg_time_spent"] == 45


def test_overview_ad_slots(session, traffic):
    _, ad = traffic

    ads = site_overview(session, "7d")["ads"]

    slot = ads["slots"][0]
    assert slot["slot"] == "homepage-banner"
    assert (slot["impressions"], slot["viewed"], slot["clicks"]) == (3, 2, 1)
    assert slot["ctr"] == 33.33
    assert slot["viewability"] == 66.67
    assert slot["avg_view_time"] == 5
    assert (slot["above_fold"], slot["mid_page"], slot["below_fold"]) == (2, 0, 1)
    assert ads["avg_time_in_viewport"] == 5
    assert site_overview(session, "7d")["top_ads"][0] == {
        "ad_id": ad.id, "title": "Bakery", "impressions": 3, "clicks": 1, "ctr": 33.33,
    }


def test_overview_endpoint(client, traffic, admin_headers, make_user):
    reader = make_user()

    ok = client.get("/api/admin/analytics/overview?range=90d", headers=admin_headers)
    bad_range = client.get("/api/admin/analytics/overview?range=1y", headers=admin_headers)
    forbidden = client.get("/api/admin/analytics/overview", headers=auth_headers(reader))

    assert ok.status_code == 200
    assert ok.json()["range"] == "90d"
    assert ok.json()["total_page_views"] == 4
    assert bad_range.status_code == 400
    assert forbidden.status_code == 403


def test_overview_on_empty_site(session):
    report = site_overview(session, "30d")

    assert report["total_page_views"] == 0
    assert report["completion_rate"] == 0.0
    assert report["ads"]["slots"] == []
    assert report["top_ads"] == []
