
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone

ScoreMap = Dict[str, int]

SCORE_BANDS = ["0-30", "31-50", "51-70", "71-85", "86-100"]


def parse_published_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Returns None when missing or unparseable."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Article(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='allow', frozen=True)

    id: str
    title: str = ""
    trail_text: Optional[str] = Field(default=None, alias="trailText")
    summary: Optional[str] = None
    section: Optional[str] = None
    published_date: Optional[str] = Field(default=None, alias="publishedDate")
    url: Optional[str] = Field(default=None, validation_alias=AliasChoices("url", "webUrl", "shortUrl"))
    relevance_score: int = Field(default=0, alias="relevanceScore")

    @property
    def published_at(self) -> Optional[datetime]:
        return parse_published_date(self.published_date)

    @property
    def section_name(self) -> str:
        # Library ids look like "technology/2025/jan/01/slug"
        if self.section:
            return self.section
        return self.id.split("/")[0] if "/" in self.id else "unknown"

    def with_score(self, score: int) -> "Article":
        return self.model_copy(update={"relevance_score": score})

    def to_prompt_string(self, index: int) -> str:
        title = self.title or "No title"
        trail = self.trail_text or "No trail text"
        summary = self.summary or "No summary available"
        return f"{index}. ID: {self.id}\n   Title: {title}\n   Trail: {trail}\n   Summary: {summary}"

    def to_digest_dict(self) -> Dict[str, Any]:
        """Fields consumed by the email digest and the curated feed record."""
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "trailText": self.trail_text,
            "summary": self.summary,
            "relevanceScore": self.relevance_score,
            "section": self.section_name,
            "publishedDate": self.published_date,
        }


class SectionSample(BaseModel):
    section: str
    available: int
    selected: int


class PreparedArticles(BaseModel):
    selected_sections: List[str]
    articles: List[Article]
    sections_data: List[SectionSample] = Field(default_factory=list)

    @property
    def article_count(self) -> int:
        return len(self.articles)


class CurationResult(BaseModel):
    articles: List[Article]
    distribution: Dict[str, int]
    scored_count: int = 0
    total_count: int = 0
    failed_chunks: List[int] = Field(default_factory=list)
    cancelled: bool = False
    fallback_used: bool = False


class UserRecord(BaseModel):
    user_id: str
    email: str
    user_interests: Optional[str] = None
    selected_sections: Optional[str] = None
    paid: bool = False
    is_first_conversation_complete: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_report_generated_at: Optional[datetime] = None

    @property
    def sections(self) -> List[str]:
        return split_sections(self.selected_sections or "")


class CuratedFeedRecord(BaseModel):
    user_id: str
    email: str
    curated_articles: List[Dict[str, Any]]
    article_count: int
    is_first_feed: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EmailResult(BaseModel):
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


class DigestEmail(BaseModel):
    recipient: str
    subject: str
    text: str
    html: str
    article_count: int


class ChatMessage(BaseModel):
    role: str
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChatReply(BaseModel):
    session_id: str
    response: str
    conversation_complete: bool = False
    user_interests: Optional[str] = None


def split_sections(value: str) -> List[str]:
    return [s.strip() for s in value.split("|") if s.strip()]
