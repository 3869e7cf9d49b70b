"""
trainerhub/features/feed/reducers.py

Pure fold from joined post rows to DisplayPost read models.
Same posts + same viewer => identical output; order is never changed here.
"""

from typing import Iterable, List, Optional

from trainerhub.core.config import settings
from trainerhub.features.relationships.service import RelationshipEdges, liked_post_ids, resolve
from trainerhub.models.display import DisplayPost
from trainerhub.models.social import Post, Principal, Role


def display_post(
    post: Post,
    principal: Optional[Principal],
    edges: Optional[RelationshipEdges] = None,
    preview_count: Optional[int] = None,
) -> DisplayPost:
    """Fold one joined post. Counts always equal the sizes of its collections."""
    if edges is None:
        edges = RelationshipEdges(liked_post_ids=liked_post_ids([post], principal))
    limit = settings.COMMENT_PREVIEW_COUNT if preview_count is None else preview_count
    comment_count = len(post.comments)
    return DisplayPost(
        post=post,
        like_count=len(post.likes),
        comment_count=comment_count,
        is_liked=resolve(principal, post, edges).liked,
        preview_comments=list(post.comments[:limit]),
        has_more_comments=comment_count > limit,
    )


def fold_feed(posts: Iterable[Post], principal: Optional[Principal]) -> List[DisplayPost]:
    """Order-preserving map; the viewer's like edges are collected once."""
    posts = list(posts)
    edges = RelationshipEdges(liked_post_ids=liked_post_ids(posts, principal))
    return [display_post(post, principal, edges) for post in posts]


def only_provider_posts(posts: Iterable[Post]) -> List[Post]:
    """Drop posts whose author no longer has the provider role."""
    return [p for p in posts if p.provider is not None and p.provider.role == Role.PROVIDER]


def prepend(feed: List[DisplayPost], item: DisplayPost) -> List[DisplayPost]:
    return [item] + [p for p in feed if p.id != item.id]


def is_consistent(item: DisplayPost) -> bool:
    return item.like_count == len(item.post.likes) and item.comment_count == len(item.post.comments)
