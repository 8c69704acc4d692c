from typing import Any, Dict, List, Optional
from curator.models.articles import Article


class FakeLLM:
    """Scripted stand-in for LLMService. Each call pops the next response; exceptions are raised."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    async def call(self, messages, temperature=None):
        self.calls.append({"messages": messages, "temperature": temperature})
        if not self.responses:
            raise AssertionError("FakeLLM ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def call_with_retry(self, messages, temperature=None):
        return await self.call(messages, temperature)


class FakeSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeSMTP:
    def __init__(self, error: Optional[BaseException] = None):
        self.error = error
        self.sent: List[Dict[str, Any]] = []

    async def __call__(self, message, **kwargs):
        if self.error is not None:
            raise self.error
        self.sent.append({"message": message, **kwargs})
        return ({}, "OK")


def make_article(article_id: str, published: Optional[str] = None, **fields) -> Article:
    data = {"id": article_id, "title": fields.pop("title", f"Title {article_id}")}
    if published:
        data["publishedDate"] = published
    data.update(fields)
    return Article.model_validate(data)
