"""
trainerhub/features/posts/service.py
Post publishing by providers.
"""

from typing import Optional

from trainerhub.core.errors import AuthenticationError, GatewayError, MutationError, PermissionError, ValidationError
from trainerhub.core.logging import log_event
from trainerhub.core.metrics import mutations_total
from trainerhub.features.feed.reducers import display_post
from trainerhub.features.feed.service import POST_COLUMNS
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import POSTS
from trainerhub.models.display import DisplayPost
from trainerhub.models.social import Post, Principal


async def create_post(
    gateway: DataGateway,
    principal: Optional[Principal],
    image_ref: str,
    caption: str,
) -> DisplayPost:
    """Insert a post and return it folded, with no likes or comments yet."""
    if principal is None:
        raise AuthenticationError("Sign in to post")
    if not principal.is_provider:
        raise PermissionError("Only trainers can publish posts")

    image = (image_ref or "").strip()
    text = (caption or "").strip()
    if not image or not text:
        mutations_total.inc(labels={"kind": "post", "outcome": "rejected"})
        raise ValidationError("Both an image and a caption are required")

    try:
        row = await (
            gateway.from_(POSTS)
            .insert({"trainer_id": principal.id, "image_url": image, "caption": text})
            .select(POST_COLUMNS)
            .single()
            .execute()
        )
    except GatewayError as exc:
        mutations_total.inc(labels={"kind": "post", "outcome": "failed"})
        log_event("error", "post.create_failed", user_id=principal.id, error_code="mutation_failed", extra={"reason": exc.message})
        raise MutationError(f"Could not publish post: {exc.message}", upstream_status=exc.upstream_status) from exc

    mutations_total.inc(labels={"kind": "post", "outcome": "ok"})
    post = Post.model_validate(row)
    log_event("info", "post.created", user_id=principal.id, post_id=post.id)
    return display_post(post, principal)

