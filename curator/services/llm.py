import asyncio
import enum
import httpx
import ollama
from curator.config import settings
from curator.services.logger import logger
from typing import Dict, List, Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type


class LLMErrorKind(str, enum.Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    AUTH = "auth"
    OTHER = "other"


class LLMError(Exception):
    kind = LLMErrorKind.OTHER

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMTimeoutError(LLMError):
    kind = LLMErrorKind.TIMEOUT


class LLMRateLimitError(LLMError):
    kind = LLMErrorKind.RATE_LIMITED


class LLMMalformedError(LLMError):
    kind = LLMErrorKind.MALFORMED


class LLMAuthError(LLMError):
    kind = LLMErrorKind.AUTH


def classify_error(exc: BaseException) -> LLMError:
    """Map a provider/transport exception onto the typed LLM error hierarchy."""
    if isinstance(exc, LLMError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return LLMTimeoutError(f"LLM request timeout: {exc}")
    if isinstance(exc, ollama.ResponseError):
        status = exc.status_code
        if status == 429:
            return LLMRateLimitError(f"LLM rate limit: {exc.error}", status)
        if status in (401, 403):
            return LLMAuthError(f"LLM authentication failed: {exc.error}", status)
        if status in (400, 404, 422):
            return LLMMalformedError(f"LLM rejected request: {exc.error}", status)
        if status in (408, 504):
            return LLMTimeoutError(f"LLM upstream timeout: {exc.error}", status)
        return LLMError(f"LLM error ({status}): {exc.error}", status)
    return LLMError(f"LLM call failed: {exc}")


class LLMService:
    def __init__(self, client: Optional[ollama.AsyncClient] = None, model: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.client = client or ollama.AsyncClient(host=settings.OLLAMA_BASE_URL)
        self.model = model or settings.OLLAMA_MODEL
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT

    async def call(self, messages: List[Dict[str, str]], temperature: Optional[float] = None) -> str:
        """
        Single chat completion, no retries. Raises an LLMError subclass describing the failure kind.
        """
        temp = settings.LLM_TEMPERATURE if temperature is None else temperature
        try:
            response = await asyncio.wait_for(
                self.client.chat(model=self.model, messages=messages, options={'temperature': temp}),
                timeout=self.timeout,
            )
        except Exception as e:
            error = classify_error(e)
            logger.error(f"LLM call failed [{error.kind.value}]: {error}")
            raise error from e

        try:
            content = response['message']['content']
        except (KeyError, TypeError) as e:
            raise LLMMalformedError(f"Unexpected LLM response shape: {e}") from e
        return content or ""

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(LLMRateLimitError),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"LLM rate limited, retrying in {retry_state.next_action.sleep} seconds... (attempt {retry_state.attempt_number})"
        )
    )
    async def call_with_retry(self, messages: List[Dict[str, str]], temperature: Optional[float] = None) -> str:
        """Chat completion that retries once on rate limiting. Used for interactive chat only."""
        return await self.call(messages, temperature)

llm = LLMService()
