import asyncio
from typing import Dict, List, Optional
from curator.config import settings
from curator.models.articles import Article, CurationResult, ScoreMap, SCORE_BANDS
from curator.services.logger import logger
from curator.tools.chunking import chunk
from curator.tools.scorer import RelevanceScorer, scorer as default_scorer


def score_band(score: int) -> str:
    if score >= 86:
        return "86-100"
    if score >= 71:
        return "71-85"
    if score >= 51:
        return "51-70"
    if score >= 31:
        return "31-50"
    return "0-30"


def score_distribution(articles: List[Article]) -> Dict[str, int]:
    distribution = {band: 0 for band in SCORE_BANDS}
    for article in articles:
        distribution[score_band(article.relevance_score)] += 1
    return distribution


def rank(articles: List[Article], scores: ScoreMap, threshold: int) -> List[Article]:
    """Annotate, keep scores >= threshold, sort descending. Equal scores keep input order."""
    annotated = [article.with_score(scores.get(article.id, 0)) for article in articles]
    kept = [article for article in annotated if article.relevance_score >= threshold]
    return sorted(kept, key=lambda a: a.relevance_score, reverse=True)


class CurationOrchestrator:
    def __init__(self, relevance_scorer: Optional[RelevanceScorer] = None):
        self.scorer = relevance_scorer or default_scorer

    async def curate(self, interests: str, articles: List[Article], chunk_size: Optional[int] = None,
                     threshold: Optional[int] = None, cancel_event: Optional[asyncio.Event] = None) -> CurationResult:
        if not isinstance(articles, list):
            raise TypeError(f"articles must be a list, got {type(articles).__name__}")

        chunk_size = chunk_size or settings.ARTICLE_CHUNK_SIZE
        threshold = settings.RELEVANCE_THRESHOLD if threshold is None else threshold
        interests = interests or ""

        logger.info(f"🎯 Starting curation for {len(articles)} articles")
        logger.info(f"📋 User interests: {interests[:100]}...")

        chunks = chunk(articles, chunk_size)
        logger.info(f"📦 Split into {len(chunks)} chunks of up to {chunk_size} articles each")

        all_scores: ScoreMap = {}
        failed_chunks = []
        cancelled = False
        for index, batch in enumerate(chunks):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"🛑 Curation cancelled before chunk {index + 1}/{len(chunks)}")
                cancelled = True
                break
            try:
                scores = await self.scorer.score(batch, interests, index)
            except Exception as e:
                logger.error(f"❌ Chunk {index + 1} failed with error: {e}")
                logger.warning(f"⚠️ Skipping chunk {index + 1} and continuing to next chunk")
                failed_chunks.append(index)
                continue
            batch_ids = {article.id for article in batch}
            scores = {key: value for key, value in (scores or {}).items() if key in batch_ids}
            if not scores:
                failed_chunks.append(index)
            all_scores.update(scores)

        logger.info(f"✅ Scored {len(all_scores)} articles out of {len(articles)} total")

        curated = rank(articles, all_scores, threshold)
        distribution = score_distribution(curated)
        logger.info(f"✅ Curated {len(curated)} articles above relevance threshold ({threshold})")
        logger.info(f"📊 Score distribution: {distribution}")

        return CurationResult(
            articles=curated,
            distribution=distribution,
            scored_count=len(all_scores),
            total_count=len(articles),
            failed_chunks=failed_chunks,
            cancelled=cancelled,
        )

    async def curate_with_fallback(self, interests: str, articles: List[Article], chunk_size: Optional[int] = None,
                                   threshold: Optional[int] = None, cancel_event: Optional[asyncio.Event] = None,
                                   fallback_count: Optional[int] = None) -> CurationResult:
        """Never raises: a failure anywhere in curation yields the first N articles unscored."""
        try:
            return await self.curate(interests, articles, chunk_size, threshold, cancel_event)
        except Exception as e:
            count = fallback_count or settings.FALLBACK_ARTICLE_COUNT
            fallback = list(articles[:count]) if isinstance(articles, (list, tuple)) else []
            logger.exception(f"❌ Curation failed, falling back to first {len(fallback)} articles: {e}")
            return CurationResult(
                articles=fallback,
                distribution=score_distribution(fallback),
                total_count=len(fallback),
                fallback_used=True,
            )

orchestrator = CurationOrchestrator()
