from datetime import timedelta

from localpress.db.models import utc_now
from localpress.services import search as search_service
from localpress.services.search import search_articles, suggestions


def test_whole_word_matching(session, make_article):
    hit = make_article(title="Car show returns to Main Street", content="Dozens of classic cars.")
    make_article(title="Carbon monoxide alarm drive", content="Firefighters hand out detectors.")
    make_article(title="Old scar on the landscape", content="Quarry cleanup continues.")

    results = search_articles(session, "car")

    assert [r["id"] for r in results] == [hit.id]


def test_match_is_case_insensitive_and_ignores_punctuation(session, make_article):
    hit = make_article(title="Parking", content="Where do you park your Car, exactly?")

    assert [r["id"] for r in search_articles(session, "CAR")] == [hit.id]


def test_every_term_must_match(session, make_article):
    both = make_article(title="Royersford budget vote", content="Council approved it.")
    make_article(title="Limerick budget vote", content="Council tabled it.")

    results = search_articles(session, "budget royersford")

    assert [r["id"] for r in results] == [both.id]


def test_unpublished_articles_are_not_searchable(session, make_article):
    make_article(title="Draft about parks", status="draft", published_at=None)
    make_article(title="Future parks piece", published_at=utc_now() + timedelta(days=1))

    assert search_articles(session, "parks") == []


def test_short_query_returns_nothing(client, make_article):
    make_article(title="A is for apple")

    response = client.get("/api/search?q=a")

    assert response.json() == {"articles": [], "total": 0}


def test_falls_back_to_substring_search(client, make_article, monkeypatch):
    article = make_article(title="Carbon monoxide alarm drive")

    def broken(session, q, now=None):
        raise RuntimeError("function missing")

    monkeypatch.setattr(search_service, "search_articles", broken)

    body = client.get("/api/search?q=car").json()

    assert body["total"] == 1
    assert body["articles"][0]["id"] == article.id


def test_suggestions_prefer_sections_then_titles_then_tags(session, make_article):
    make_article(title="Spring fair this weekend", tags=["springtime"])

    result = suggestions(session, "spring")

    assert result == [
        {"label": "Spring City", "query": "Spring City"},
        {"label": "Spring fair this weekend", "query": "Spring fair this weekend"},
        {"label": "springtime", "query": "springtime"},
    ]


def test_suggestions_capped_and_deduplicated(session, make_article):
    for _ in range(3):
        make_article(title="Events calendar", tags=["events"])

    result = suggestions(session, "events")

    assert len(result) == 3
    assert result[0]["label"] == "Events"
    assert [r["label"] for r in result].count("Events calendar") == 1


def test_suggestion_endpoint(client):
    response = client.get("/api/search-suggestions?q=royers")

    assert response.json() == {"suggestions": [{"label": "Royersford", "query": "Royersford"}]}
