import math
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Sequence, Tuple
from curator.models.articles import Article, SectionSample
from curator.services.logger import logger

# Missing or unparseable dates sort as the oldest possible value
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _recency_key(article: Article) -> datetime:
    return article.published_at or _OLDEST


def sort_by_recency(pool: Sequence[Article]) -> List[Article]:
    """Most recent first. Stable: equal dates keep their original order."""
    return sorted(pool, key=_recency_key, reverse=True)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sample_with_stats(pools_by_section: Mapping[str, Sequence[Article]], sections: Sequence[str],
                      cap: int) -> Tuple[List[Article], List[SectionSample]]:
    """
    Proportionally sample up to `cap` articles across sections.

    Each section gets round(cap * pool_size / total) of its most recent articles.
    Rounding overflow is trimmed from the tail, so later sections lose first.
    """
    sections = list(dict.fromkeys(sections))
    sorted_pools: Dict[str, List[Article]] = {}
    for section in sections:
        pool = pools_by_section.get(section) or []
        sorted_pools[section] = sort_by_recency(pool)

    total = sum(len(pool) for pool in sorted_pools.values())
    cap = max(cap, 0)

    if total <= cap:
        selected = [a for section in sections for a in sorted_pools[section]]
        stats = [SectionSample(section=s, available=len(sorted_pools[s]), selected=len(sorted_pools[s]))
                 for s in sections]
        logger.info(f"✅ Using all {total} articles (within limit of {cap})")
        return selected, stats

    logger.info(f"⚙️ Total articles ({total}) exceeds limit ({cap}). Applying proportional sampling...")
    selected = []
    taken: Dict[str, int] = {}
    for section in sections:
        pool = sorted_pools[section]
        if not pool:
            taken[section] = 0
            continue
        quota = round_half_up(cap * len(pool) / total)
        count = min(quota, len(pool))
        selected.extend(pool[:count])
        taken[section] = count
        logger.debug(f"Section '{section}': selected {count}/{len(pool)} ({len(pool) / total:.1%} share)")

    if len(selected) > cap:
        overflow = len(selected) - cap
        selected = selected[:cap]
        # Give the trimmed articles back from the last sections first
        for section in reversed(sections):
            if overflow == 0:
                break
            drop = min(overflow, taken.get(section, 0))
            taken[section] = taken.get(section, 0) - drop
            overflow -= drop
        logger.info(f"🔧 Trimmed to {cap} articles after rounding")

    stats = [SectionSample(section=s, available=len(sorted_pools[s]), selected=taken.get(s, 0))
             for s in sections]
    return selected, stats


def sample(pools_by_section: Mapping[str, Sequence[Article]], sections: Sequence[str], cap: int) -> List[Article]:
    articles, _ = sample_with_stats(pools_by_section, sections, cap)
    return articles
