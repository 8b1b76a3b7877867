"""Tests for the community feed."""

import pytest

from fundspace.core.exceptions import ValidationError
from fundspace.services.feed import FeedService, apply_update, merge_posts, remove_post


def _post(post_id, created_at, content="hello"):
    return {"id": post_id, "created_at": created_at, "content": content}


def test_merge_replaces_by_id_and_sorts_newest_first():
    existing = [_post(1, "2026-06-01T10:00:00"), _post(2, "2026-06-01T09:00:00")]
    incoming = [_post(2, "2026-06-01T09:00:00", content="edited"), _post(3, "2026-06-01T11:00:00")]

    merged = merge_posts(existing, incoming)

    assert [p["id"] for p in merged] == [3, 1, 2]
    assert merged[2]["content"] == "edited"


def test_merge_keeps_posts_without_ids_and_skips_junk():
    merged = merge_posts([{"content": "draft"}, "junk"], [_post(1, "2026-06-01T10:00:00+00:00")])
    assert [p.get("id") for p in merged] == [1, None]


def test_merge_tolerates_missing_inputs():
    assert merge_posts(None, None) == []


def test_apply_update_overlays_matching_post():
    posts = [_post(1, "2026-06-01"), _post(2, "2026-06-02")]
    updated = apply_update(posts, {"id": 2, "content": "changed"})
    assert updated[1]["content"] == "changed"
    assert updated[1]["created_at"] == "2026-06-02"
    assert updated[0] is posts[0]


def test_remove_post():
    posts = [_post(1, "2026-06-01"), _post(2, "2026-06-02")]
    assert [p["id"] for p in remove_post(posts, 1)] == [2]


def test_publish_and_read_back(run_db):
    async def work(db):
        async with db.transaction() as session:
            feed = FeedService(session)
            await feed.publish("p1", "  First post  ")
            await feed.publish("p1", "Funders only", channel="funders")
        async with db.transaction() as session:
            return await FeedService(session).recent("general")

    posts = run_db(work)
    assert len(posts) == 1
    assert posts[0]["content"] == "First post"
    assert posts[0]["profile_id"] == "p1"


def test_blank_post_is_rejected(run_db):
    async def work(db):
        async with db.transaction() as session:
            await FeedService(session).publish("p1", "   ")

    with pytest.raises(ValidationError):
        run_db(work)
