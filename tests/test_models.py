from datetime import datetime, timezone
from curator.models.articles import Article, parse_published_date, split_sections


def test_article_accepts_library_field_names():
    article = Article.model_validate({
        "id": "technology/2025/jan/01/chips",
        "title": "Chips",
        "trailText": "Trail",
        "publishedDate": "2025-01-01T10:00:00Z",
        "webUrl": "https://news.test/chips",
        "pillarName": "News",
    })
    assert article.trail_text == "Trail"
    assert article.url == "https://news.test/chips"
    assert article.section_name == "technology"
    assert article.published_at == datetime(2025, 1, 1, 10, tzinfo=timezone.utc)


def test_with_score_leaves_original_untouched():
    article = Article(id="world/1")
    scored = article.with_score(88)
    assert scored.relevance_score == 88
    assert article.relevance_score == 0
    assert scored.to_digest_dict()["relevanceScore"] == 88


def test_parse_published_date():
    assert parse_published_date("2025-01-01T00:00:00") == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_published_date("yesterday") is None
    assert parse_published_date(None) is None


def test_split_sections():
    assert split_sections(" technology| |world ") == ["technology", "world"]
    assert split_sections("") == []
