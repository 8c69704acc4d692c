import html
from datetime import datetime
from typing import List, Optional
from curator.models.articles import Article, DigestEmail

EMAIL_SUMMARY_LENGTH = 200


def truncate(text: Optional[str], max_length: int = EMAIL_SUMMARY_LENGTH) -> str:
    if not text or len(text) <= max_length:
        return text or ""
    return text[:max_length].strip() + "..."


def subject_line(article_count: int, today: Optional[datetime] = None) -> str:
    today = today or datetime.now()
    day = f"{today.strftime('%A, %b')} {today.day}"
    if article_count == 0:
        return f"📰 Your Daily News - {day}"
    if article_count == 1:
        return f"📰 Your Daily News - 1 article for {day}"
    return f"📰 Your Daily News - {article_count} articles for {day}"


def _published_label(article: Article) -> str:
    published = article.published_at
    return f"{published.strftime('%b')} {published.day}" if published else "Today"


def format_text(articles: List[Article], sections_label: str, today: datetime) -> str:
    lines = [f"# Your Daily News - {today.strftime('%Y-%m-%d')}\n"]
    if sections_label:
        lines.append(f"**Sections:** {sections_label.replace('|', ', ')}\n")
    if not articles:
        lines.append("No articles matched your interests today.")
    for article in articles:
        lines.append(f"### [{article.title or 'Untitled'}]({article.url or '#'})")
        lines.append(f"**{_published_label(article)} • {article.section_name}** (relevance {article.relevance_score})")
        lines.append(truncate(article.summary or article.trail_text or "No summary available"))
        lines.append("")
    return "\n".join(lines)


def format_html(articles: List[Article], sections_label: str, today: datetime) -> str:
    items = []
    for article in articles:
        items.append(
            '<div class="article">'
            f'<div class="article-meta">{html.escape(_published_label(article))} • {html.escape(article.section_name)}</div>'
            f'<h3>{html.escape(article.title or "Untitled")}</h3>'
            f'<p>{html.escape(truncate(article.summary or article.trail_text or "No summary available"))}</p>'
            f'<a href="{html.escape(article.url or "#", quote=True)}">Read full article →</a>'
            '</div>'
        )
    body = "".join(items) or "<p>No articles matched your interests today.</p>"
    sections = html.escape(sections_label.replace("|", ", ")) if sections_label else ""
    return (
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\"><title>Your Daily News</title></head><body>"
        f"<h1>📰 Your Daily News</h1><p>{today.strftime('%A, %B')} {today.day}, {today.year}</p>"
        f"<p>{sections}</p>{body}</body></html>"
    )


def compose_digest(recipient: str, articles: List[Article], sections_label: str = "",
                   today: Optional[datetime] = None) -> DigestEmail:
    today = today or datetime.now()
    return DigestEmail(
        recipient=recipient,
        subject=subject_line(len(articles), today),
        text=format_text(articles, sections_label, today),
        html=format_html(articles, sections_label, today),
        article_count=len(articles),
    )
