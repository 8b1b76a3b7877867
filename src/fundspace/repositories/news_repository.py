"""News article and feed post repository implementation."""

from datetime import datetime
from typing import List, Dict, Any

from sqlalchemy import select, delete

from ..models.database import RssArticle, Post
from ..core.exceptions import DatabaseError
from .base_repository import BaseRepository


class NewsRepository(BaseRepository[RssArticle]):
    """Repository for cached RSS articles."""

    def get_model_class(self):
        return RssArticle

    async def recent(self, categories: List[str], limit: int) -> List[RssArticle]:
        """Newest articles in any of the categories."""
        try:
            result = await self.session.execute(
                select(RssArticle)
                .where(RssArticle.category.in_(categories))
                .order_by(RssArticle.published_at.desc().nulls_last(), RssArticle.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
        except Exception as e:
            raise DatabaseError(f"Failed to fetch articles: {str(e)}")

    async def add_many(self, articles: List[Dict[str, Any]]) -> int:
        """Insert articles whose URL is not stored yet."""
        urls = [a["url"] for a in articles if a.get("url")]
        try:
            result = await self.session.execute(select(RssArticle.url).where(RssArticle.url.in_(urls)))
            known = set(result.scalars().all())
            fresh = []
            for article in articles:
                url = article.get("url")
                if not url or url in known:
                    continue
                known.add(url)
                fresh.append(RssArticle(**{k: v for k, v in article.items() if hasattr(RssArticle, k)}))
            self.session.add_all(fresh)
            await self.session.flush()
            return len(fresh)
        except Exception as e:
            raise DatabaseError(f"Failed to store articles: {str(e)}")

    async def delete_published_before(self, cutoff: datetime) -> int:
        try:
            result = await self.session.execute(delete(RssArticle).where(RssArticle.published_at < cutoff))
            await self.session.flush()
            return result.rowcount
        except Exception as e:
            raise DatabaseError(f"Failed to delete old articles: {str(e)}")


class PostRepository(BaseRepository[Post]):
    """Repository for feed posts."""

    def get_model_class(self):
        return Post

    async def recent(self, channel: str, limit: int = 20) -> List[Post]:
        try:
            result = await self.session.execute(
                select(Post).where(Post.channel == channel).order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
            )
            return list(result.scalars().all())
        except Exception as e:
            raise DatabaseError(f"Failed to fetch posts: {str(e)}")
