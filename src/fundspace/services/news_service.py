"""Cached RSS news for the community feeds."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import structlog

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..models.database import RssArticle
from ..repositories.news_repository import NewsRepository

logger = structlog.get_logger(__name__)

# "general" feeds national and California news together
CATEGORY_GROUPS = {
    "general": ["general", "california"],
}

RETENTION_DAYS = 30


def categories_for(category: str) -> List[str]:
    return CATEGORY_GROUPS.get(category, [category])


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def format_time_ago(published: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Relative age label: "Just now", "5h ago", "3d ago"; "Recently" when unknown."""
    if published is None:
        return "Recently"
    now = _aware(now or datetime.now(timezone.utc))
    hours = int((now - _aware(published)).total_seconds() // 3600)
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def article_payload(article: RssArticle, now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "id": article.url,
        "title": article.title,
        "summary": article.summary,
        "url": article.url,
        "image": article.image_url,
        "timeAgo": format_time_ago(article.published_at, now),
        "category": article.source_name,
    }


class NewsService:
    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.articles = NewsRepository(session)

    async def latest(self, category: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Newest articles for a feed category, capped at the configured limit."""
        rows = await self.articles.recent(categories_for(category), self.settings.rss_article_limit)
        return [article_payload(row, now) for row in rows]

    async def cleanup(self, days: int = RETENTION_DAYS, now: Optional[datetime] = None) -> int:
        """Delete articles published more than ``days`` ago."""
        cutoff = _aware(now or datetime.now(timezone.utc)) - timedelta(days=days)
        deleted = await self.articles.delete_published_before(cutoff)
        logger.info("Old news articles removed", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted
