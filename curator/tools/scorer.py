import asyncio
import json
import math
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional
from tenacity import AsyncRetrying, stop_after_attempt, wait_fixed, retry_if_exception_type
from curator.config import settings
from curator.models.articles import Article, ScoreMap
from curator.prompts import RELEVANCE_SCORING_PROMPT
from curator.services.llm import LLMService, LLMError, LLMTimeoutError, llm
from curator.services.logger import logger
from curator.tools.sampler import round_half_up

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def parse_score_map(response: str, valid_ids: Optional[set] = None) -> ScoreMap:
    """
    Extract a flat {article_id: score} object from a model response.
    Unknown ids and non-numeric values are dropped; scores are clamped to 0-100.
    """
    if not response:
        return {}
    match = _JSON_OBJECT.search(response)
    try:
        data = json.loads(match.group(0) if match else response)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"❌ Failed to parse relevance scores JSON: {e}")
        logger.debug(f"Response: {response[:500]}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"❌ Relevance scores were not a JSON object (got {type(data).__name__})")
        return {}

    scores: ScoreMap = {}
    for key, value in data.items():
        if valid_ids is not None and key not in valid_ids:
            logger.debug(f"Discarding score for unknown id: {key}")
            continue
        score = _coerce_score(value)
        if score is not None:
            scores[str(key)] = score
    return scores


def _coerce_score(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(0, min(100, value))
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return max(0, min(100, round_half_up(number)))


class RelevanceScorer:
    def __init__(self, llm_service: Optional[LLMService] = None, max_attempts: Optional[int] = None,
                 retry_delay: Optional[float] = None, temperature: Optional[float] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.llm = llm_service or llm
        self.max_attempts = max_attempts or settings.SCORING_MAX_ATTEMPTS
        self.retry_delay = settings.SCORING_RETRY_DELAY if retry_delay is None else retry_delay
        self.temperature = settings.SCORING_TEMPERATURE if temperature is None else temperature
        self.sleep = sleep

    def build_messages(self, chunk: List[Article], interests: str) -> List[Dict[str, str]]:
        articles_text = "\n\n".join(article.to_prompt_string(i + 1) for i, article in enumerate(chunk))
        user_message = f"User's interests and motivations:\n{interests}\n\nArticles to score:\n\n{articles_text}"
        return [
            {'role': 'system', 'content': RELEVANCE_SCORING_PROMPT},
            {'role': 'user', 'content': user_message},
        ]

    async def score(self, chunk: List[Article], interests: str, chunk_index: int = 0) -> ScoreMap:
        """
        Score one chunk. Timeouts are retried with a fixed delay; every other
        failure returns an empty map straight away.
        """
        if not chunk:
            return {}

        label = f"Chunk {chunk_index + 1}"
        messages = self.build_messages(chunk, interests or "")
        valid_ids = {article.id for article in chunk}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception_type(LLMTimeoutError),
            sleep=self.sleep,
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"⚠️ {label} timed out (attempt {retry_state.attempt_number}/{self.max_attempts}), "
                f"waiting {self.retry_delay:.0f}s before retry..."
            ),
        )

        try:
            async for attempt in retrying:
                with attempt:
                    logger.info(f"📊 Processing {label.lower()}: {len(chunk)} articles "
                                f"(attempt {attempt.retry_state.attempt_number}/{self.max_attempts})")
                    response = await self.llm.call(messages, temperature=self.temperature)
        except LLMTimeoutError as e:
            logger.error(f"❌ {label} timed out after {self.max_attempts} attempts: {e}")
            return {}
        except LLMError as e:
            logger.error(f"❌ {label} failed with non-timeout error [{e.kind.value}]: {e}")
            logger.warning(f"⚠️ Skipping {label.lower()} and continuing")
            return {}

        scores = parse_score_map(response, valid_ids)
        logger.info(f"✅ {label} processed: scored {len(scores)}/{len(chunk)} articles")
        return scores

scorer = RelevanceScorer()
