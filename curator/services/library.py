import asyncio
import httpx
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from curator.config import settings
from curator.models.articles import Article, PreparedArticles, split_sections
from curator.services.cache import TTLCache, MISS
from curator.services.logger import logger
from curator.tools.sampler import sample_with_stats

SUMMARIES_KEY = "__section_summaries__"


class ArticleLibraryProvider:
    """Fetches per-section article libraries (JSON) and keeps them in a TTL cache."""

    def __init__(self, cache: Optional[TTLCache] = None, client: Optional[httpx.AsyncClient] = None,
                 base_url: Optional[str] = None, summaries_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.cache = cache if cache is not None else TTLCache(ttl=settings.LIBRARY_CACHE_TTL)
        self.client = client
        self.base_url = base_url or settings.LIBRARY_BASE_URL
        self.summaries_url = summaries_url or settings.SECTION_SUMMARIES_URL
        self.timeout = timeout or settings.LIBRARY_TIMEOUT

    async def _get_json(self, url: str) -> Optional[Any]:
        try:
            if self.client is not None:
                resp = await self.client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    resp = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"❌ Request failed for {url}: {e}")
            return None

        if resp.status_code != 200:
            logger.warning(f"⚠️ {url} returned status {resp.status_code}")
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"❌ Failed to parse JSON from {url}: {e}")
            return None

    async def fetch_section_summaries(self) -> Optional[Dict[str, Any]]:
        cached = self.cache.get(SUMMARIES_KEY)
        if cached is not MISS:
            return cached

        logger.info("📥 Fetching section summaries...")
        summaries = await self._get_json(self.summaries_url)
        if not isinstance(summaries, dict):
            return None
        self.cache.set(SUMMARIES_KEY, summaries)
        logger.info(f"✅ Loaded {len(summaries.get('sections') or {})} section summaries")
        return summaries

    async def available_sections(self) -> List[str]:
        summaries = await self.fetch_section_summaries()
        sections = (summaries or {}).get("sections")
        if not isinstance(sections, dict) or not sections:
            logger.warning("⚠️ Cannot discover sections without section summaries, defaulting to 'world'")
            return ["world"]
        return list(sections.keys())

    async def fetch_library(self, section: str) -> Optional[Dict[str, Any]]:
        """Returns the library for a section, or None when it cannot be fetched."""
        cached = self.cache.get(section)
        if cached is not MISS:
            logger.debug(f"Article library for '{section}' served from cache")
            return cached

        logger.info(f"📥 Fetching article library for section '{section}'...")
        library = await self._get_json(f"{self.base_url}{section}.json")
        if not isinstance(library, dict):
            return None
        self.cache.set(section, library)
        logger.info(f"✅ Loaded {len(library.get('articles') or [])} articles for section '{section}'")
        return library

    @staticmethod
    def parse_articles(section: str, library: Optional[Dict[str, Any]]) -> List[Article]:
        raw_articles = (library or {}).get("articles")
        if not isinstance(raw_articles, list):
            return []
        articles = []
        for raw in raw_articles:
            if not isinstance(raw, dict):
                continue
            try:
                articles.append(Article.model_validate({"section": section, **raw}))
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping malformed article in '{section}': {e.error_count()} errors")
        return articles

    async def load_pools(self, sections: List[str]) -> Dict[str, List[Article]]:
        libraries = await asyncio.gather(*(self.fetch_library(s) for s in sections))
        pools = {}
        for section, library in zip(sections, libraries):
            if library is None:
                logger.warning(f"⚠️ No article library found for section '{section}'")
            pools[section] = self.parse_articles(section, library)
        return pools

    async def prepare_for_curation(self, selected_sections: str, cap: Optional[int] = None) -> PreparedArticles:
        sections = split_sections(selected_sections or "")
        cap = settings.MAX_ARTICLES_FOR_CURATION if cap is None else cap
        logger.info(f"🔍 Preparing data for curation. Selected sections: {', '.join(sections)}")

        pools = await self.load_pools(sections)
        articles, stats = sample_with_stats(pools, sections, cap)

        # Libraries for sections nobody asked for are dropped from memory
        for key in self.cache.keys():
            if key != SUMMARIES_KEY and key not in sections:
                self.cache.evict(key)
                logger.debug(f"Dropped article library for section '{key}'")

        logger.info(f"✅ Prepared {len(articles)} articles for curation from {len(sections)} sections")
        return PreparedArticles(selected_sections=sections, articles=articles, sections_data=stats)

library_provider = ArticleLibraryProvider()
