import aiosmtplib
import json
import httpx
import pytest
from curator.models.articles import UserRecord
from curator.services.cache import TTLCache
from curator.services.database import BackgroundWriter, Database
from curator.services.delivery import EmailSender
from curator.services.library import ArticleLibraryProvider
from curator.tools.scorer import RelevanceScorer
from curator.tools.section_selector import SectionSelector
from curator.workflows.curation import CurationOrchestrator
from curator.workflows.pipeline import CurationInputError, CurationPipeline, generate_user_id
from tests.fakes import FakeLLM, FakeSleep, FakeSMTP

BASE = "https://library.test/"
ROUTES = {
    f"{BASE}summaries.json": {"sections": {"technology": {"summary": "Tech"}, "world": {"summary": "World"}}},
    f"{BASE}technology.json": {"articles": [
        {"id": "technology/ai", "title": "AI chips", "publishedDate": "2025-01-02T00:00:00Z"},
        {"id": "technology/phones", "title": "Phones", "publishedDate": "2025-01-01T00:00:00Z"},
    ]},
    f"{BASE}world.json": {"articles": [
        {"id": "world/summit", "title": "AI summit", "publishedDate": "2025-01-03T00:00:00Z"},
    ]},
}


def _handler(request: httpx.Request) -> httpx.Response:
    body = ROUTES.get(str(request.url))
    return httpx.Response(200, json=body) if body is not None else httpx.Response(404)


def _pipeline(tmp_path, llm_responses, smtp=None):
    llm = FakeLLM(llm_responses)
    provider = ArticleLibraryProvider(
        cache=TTLCache(ttl=3600),
        client=httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
        base_url=BASE,
        summaries_url=f"{BASE}summaries.json",
    )
    pipeline = CurationPipeline(
        provider=provider,
        selector=SectionSelector(llm_service=llm, strict=True, fallback="world"),
        curation=CurationOrchestrator(RelevanceScorer(llm_service=llm, sleep=FakeSleep())),
        sender=EmailSender(enabled=True, send=smtp or FakeSMTP()),
        database=Database(tmp_path / "pipeline.db"),
        writer=BackgroundWriter(),
        summary_path=tmp_path / "curation-summary.json",
    )
    return pipeline, llm


async def test_new_user_run_selects_curates_sends_and_persists(tmp_path):
    smtp = FakeSMTP()
    pipeline, llm = _pipeline(tmp_path, [
        "technology|world",
        '{"technology/ai": 95, "technology/phones": 20, "world/summit": 80}',
    ], smtp)

    summary = await pipeline.run("reader@example.com", "AI hardware and policy")
    await pipeline.writer.drain()

    assert summary["status"] == "success"
    assert summary["selectedSections"] == "technology|world"
    assert summary["curated_count"] == 2
    assert summary["prepared_count"] == 3
    assert summary["email_sent"] is True
    assert summary["distribution"]["86-100"] == 1
    assert json.loads((tmp_path / "curation-summary.json").read_text())["email"] == "reader@example.com"
    assert len(smtp.sent) == 1

    user = await pipeline.db.get_user_by_email("reader@example.com")
    assert user.user_id == generate_user_id("reader@example.com")
    assert user.selected_sections == "technology|world"
    feed = await pipeline.db.get_latest_curated_feed(user.user_id)
    assert [a["id"] for a in feed.curated_articles] == ["technology/ai", "world/summit"]
    assert feed.is_first_feed is True
    assert pipeline.writer.errors == []


async def test_email_failure_does_not_fail_the_run(tmp_path):
    pipeline, _ = _pipeline(tmp_path, ["world", '{"world/summit": 90}'],
                            FakeSMTP(error=aiosmtplib.SMTPException("refused")))

    summary = await pipeline.run("reader@example.com", "Diplomacy")
    await pipeline.writer.drain()

    assert summary["email_sent"] is False
    assert summary["curated_count"] == 1
    assert await pipeline.db.get_user_by_email("reader@example.com") is not None


async def test_existing_user_reuses_stored_sections_and_interests(tmp_path):
    pipeline, llm = _pipeline(tmp_path, ['{"technology/ai": 90}'])
    await pipeline.db.init()
    await pipeline.db.upsert_user(UserRecord(
        user_id="stored1", email="reader@example.com", user_interests="Semiconductors",
        selected_sections="technology", paid=True,
    ))

    summary = await pipeline.run("reader@example.com", "", is_new_user=False)
    await pipeline.writer.drain()

    assert summary["selectedSections"] == "technology"
    assert summary["curated_count"] == 1
    # Only the scoring call; no section mapping
    assert len(llm.calls) == 1
    assert "Semiconductors" in llm.calls[0]["messages"][1]["content"]
    feed = await pipeline.db.get_latest_curated_feed("stored1")
    assert feed.is_first_feed is False


async def test_unpaid_existing_user_is_skipped(tmp_path):
    pipeline, llm = _pipeline(tmp_path, [])
    await pipeline.db.init()
    await pipeline.db.upsert_user(UserRecord(
        user_id="stored1", email="reader@example.com", user_interests="AI", selected_sections="technology",
    ))

    summary = await pipeline.run("reader@example.com", "", is_new_user=False)

    assert summary["status"] == "skipped"
    assert llm.calls == []


async def test_invalid_inputs_raise(tmp_path):
    pipeline, _ = _pipeline(tmp_path, [])
    with pytest.raises(CurationInputError):
        await pipeline.run("", "AI")
    with pytest.raises(CurationInputError):
        await pipeline.run("reader@example.com", "")
    with pytest.raises(CurationInputError):
        await pipeline.run("ghost@example.com", "AI", is_new_user=False)
