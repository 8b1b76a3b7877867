"""Community feed: merging pushed post changes into a loaded feed."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import structlog

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ValidationError
from ..models.records import _as_datetime
from ..repositories.news_repository import PostRepository

logger = structlog.get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _created(post: Dict[str, Any]) -> datetime:
    value = _as_datetime(post.get("created_at"))
    if value is None:
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def merge_posts(existing: Iterable[Dict[str, Any]], incoming: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge incoming posts into a feed, newest first.

    Posts are matched by id only; an incoming post replaces the existing one
    with the same id. Posts without an id are kept as they are.
    """
    by_id: Dict[Any, Dict[str, Any]] = {}
    anonymous: List[Dict[str, Any]] = []
    for post in list(existing or []) + list(incoming or []):
        if not isinstance(post, dict):
            continue
        if post.get("id") is None:
            anonymous.append(post)
        else:
            by_id[post["id"]] = post
    return sorted(list(by_id.values()) + anonymous, key=_created, reverse=True)


def apply_update(posts: List[Dict[str, Any]], changed: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Overlay changed fields on the post with the same id."""
    return [{**post, **changed} if post.get("id") == changed.get("id") else post for post in posts]


def remove_post(posts: List[Dict[str, Any]], post_id: Any) -> List[Dict[str, Any]]:
    return [post for post in posts if post.get("id") != post_id]


class FeedService:
    def __init__(self, session: AsyncSession):
        self.posts = PostRepository(session)

    async def recent(self, channel: str, limit: int = 20) -> List[Dict[str, Any]]:
        return [post.to_dict() for post in await self.posts.recent(channel, limit)]

    async def publish(self, profile_id: str, content: str, channel: str = "general",
                      organization_id: Optional[str] = None) -> Dict[str, Any]:
        if not (content or "").strip():
            raise ValidationError("Post content is required", details={"field": "content"})
        post = await self.posts.create({
            "profile_id": profile_id,
            "content": content.strip(),
            "channel": channel,
            "organization_id": organization_id,
        })
        logger.info("Post published", profile_id=profile_id, channel=channel, post_id=post.id)
        return post.to_dict()
