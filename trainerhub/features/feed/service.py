"""
trainerhub/features/feed/service.py
Feed Aggregator: one denormalized read of posts (author, likes, comments
joined), newest first, folded into DisplayPost snapshots for the viewer.
"""

from enum import Enum
from typing import List, Optional

from trainerhub.core.errors import FetchError, GatewayError, NotFoundError, ValidationError
from trainerhub.core.logging import log_event
from trainerhub.core.metrics import feed_loads_total
from trainerhub.features.feed.reducers import display_post, fold_feed, only_provider_posts
from trainerhub.features.relationships.service import followed_provider_ids
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import POSTS
from trainerhub.models.display import DisplayPost
from trainerhub.models.social import Post, Principal

POST_COLUMNS = """
    *,
    trainer:profiles!trainer_id(id, full_name, role, bio),
    likes(id, post_id, user_id, created_at),
    comments(id, post_id, user_id, content, created_at, user:profiles!user_id(id, full_name))
"""


class FeedScope(str, Enum):
    ALL = "all"
    FOLLOWING = "following"
    FOLLOWING_OR_ALL = "following_or_all"
    PROVIDER = "provider"


def posts_query(gateway: DataGateway):
    return (
        gateway.from_(POSTS)
        .select(POST_COLUMNS)
        .order("created_at", desc=True)
        .order("created_at", foreign_table="comments")
    )


async def load_feed(
    gateway: DataGateway,
    principal: Optional[Principal],
    scope: FeedScope = FeedScope.ALL,
    provider_id: Optional[str] = None,
) -> List[DisplayPost]:
    """Snapshot of the viewer's feed under ``scope``.

    Raises FetchError on any failed read; no partial list is ever returned.
    """
    query = posts_query(gateway)

    if scope == FeedScope.PROVIDER:
        if not provider_id:
            raise ValidationError("provider_id is required for the provider feed")
        query = query.eq("trainer_id", provider_id)
    elif scope in (FeedScope.FOLLOWING, FeedScope.FOLLOWING_OR_ALL):
        followed = await followed_provider_ids(gateway, principal)
        if followed:
            query = query.in_("trainer_id", sorted(followed))
        elif scope == FeedScope.FOLLOWING:
            feed_loads_total.inc(labels={"scope": scope.value, "outcome": "empty"})
            return []

    try:
        rows = await query.execute()
    except GatewayError as exc:
        feed_loads_total.inc(labels={"scope": scope.value, "outcome": "failed"})
        log_event(
            "error",
            "feed.load_failed",
            user_id=principal.id if principal else None,
            error_code="fetch_failed",
            extra={"scope": scope.value, "reason": exc.message},
        )
        raise FetchError(f"Could not load posts: {exc.message}", upstream_status=exc.upstream_status) from exc

    posts = [Post.model_validate(row) for row in rows]
    if scope == FeedScope.ALL:
        posts = only_provider_posts(posts)

    feed_loads_total.inc(labels={"scope": scope.value, "outcome": "ok"})
    return fold_feed(posts, principal)


async def load_post(gateway: DataGateway, principal: Optional[Principal], post_id: str) -> DisplayPost:
    try:
        row = await posts_query(gateway).eq("id", post_id).maybe_single().execute()
    except GatewayError as exc:
        raise FetchError(f"Could not load post: {exc.message}", upstream_status=exc.upstream_status) from exc
    if row is None:
        raise NotFoundError(f"Post {post_id} not found")
    return display_post(Post.model_validate(row), principal)
