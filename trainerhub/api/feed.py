"""Social feed, post publishing and post interactions."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from trainerhub.api.deps import get_gateway, get_pending, get_principal, require_principal
from trainerhub.core.errors import ConflictError
from trainerhub.features.feed.service import FeedScope, load_feed, load_post
from trainerhub.features.interactions.pending import InteractionKey, InteractionKind, PendingKeys
from trainerhub.features.interactions.service import add_comment, settle, toggle_like
from trainerhub.features.posts.service import create_post
from trainerhub.gateway.base import DataGateway
from trainerhub.models.display import DisplayPost
from trainerhub.models.requests import CommentRequest, LikeToggleRequest, PostDraft
from trainerhub.models.social import Principal

feed_router = APIRouter()
posts_router = APIRouter()


@feed_router.get("")
async def get_feed(
    scope: FeedScope = Query(FeedScope.ALL),
    provider_id: Optional[str] = Query(None),
    gateway: DataGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> List[DisplayPost]:
    return await load_feed(gateway, principal, scope, provider_id)


@posts_router.post("", status_code=201)
async def publish_post(
    payload: PostDraft,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
) -> DisplayPost:
    return await create_post(gateway, principal, payload.image_ref, payload.caption)


@posts_router.post("/{post_id}/like")
async def like_post(
    post_id: str,
    payload: LikeToggleRequest,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
    pending: PendingKeys = Depends(get_pending),
) -> DisplayPost:
    """Toggle the like; on a failed write the rolled-back post is discarded and 502 returned.

    ``was_liked`` must match the stored state, else 409: a replayed request cannot like twice.
    """
    # Held across the read so two overlapping requests cannot both see "not liked"
    with pending.hold(InteractionKey(InteractionKind.LIKE, post_id, principal.id)):
        item = await load_post(gateway, principal, post_id)
        if payload.was_liked != item.is_liked:
            raise ConflictError("Post is already liked" if item.is_liked else "Post is not liked")
        mutation = toggle_like(gateway, [item], principal, post_id, payload.was_liked)
        if mutation is None:
            return item
        outcome = await settle(mutation)
    if outcome.error is not None:
        raise outcome.error
    return outcome.items[0]


@posts_router.post("/{post_id}/comments", status_code=201)
async def comment_on_post(
    post_id: str,
    payload: CommentRequest,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
) -> DisplayPost:
    item = await load_post(gateway, principal, post_id)
    items = await add_comment(gateway, [item], principal, post_id, payload.content)
    return items[0]
