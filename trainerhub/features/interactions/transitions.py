"""
trainerhub/features/interactions/transitions.py

Pure local state transitions and their inverses. Each returns a new list;
items other than the target are passed through untouched (same objects).
Every DisplayPost is re-folded from its collections, so counts cannot drift.
"""

from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from trainerhub.features.feed.reducers import display_post
from trainerhub.features.plans.reducers import present_plan
from trainerhub.models.display import DisplayPlan, DisplayPost, DisplayTrainer
from trainerhub.models.social import Comment, Like, Principal

T = TypeVar("T")


def replace_item(items: Sequence[T], item_id: str, fn: Callable[[T], T]) -> List[T]:
    return [fn(item) if item.id == item_id else item for item in items]


def find_item(items: Sequence[T], item_id: str) -> Optional[T]:
    for item in items:
        if item.id == item_id:
            return item
    return None


def _refold(item: DisplayPost, principal: Optional[Principal], **changes) -> DisplayPost:
    return display_post(item.post.model_copy(update=changes), principal)


def add_like(item: DisplayPost, like: Like, principal: Principal) -> DisplayPost:
    return _refold(item, principal, likes=list(item.post.likes) + [like])


def remove_likes_by(item: DisplayPost, principal: Principal) -> Tuple[DisplayPost, Tuple[Like, ...]]:
    """Drop every like of the principal; returns the removed rows for rollback."""
    removed = tuple(like for like in item.post.likes if like.principal_id == principal.id)
    kept = [like for like in item.post.likes if like.principal_id != principal.id]
    return _refold(item, principal, likes=kept), removed


def remove_like_id(item: DisplayPost, like_id: str, principal: Principal) -> DisplayPost:
    return _refold(item, principal, likes=[like for like in item.post.likes if like.id != like_id])


def restore_likes(item: DisplayPost, likes: Sequence[Like], principal: Principal) -> DisplayPost:
    present = {like.id for like in item.post.likes}
    return _refold(item, principal, likes=list(item.post.likes) + [like for like in likes if like.id not in present])


def swap_like(item: DisplayPost, tentative_id: str, persisted: Like, principal: Principal) -> DisplayPost:
    """Replace the tentative like with the stored row once the insert returns."""
    likes = [persisted if like.id == tentative_id else like for like in item.post.likes]
    return _refold(item, principal, likes=likes)


def append_comment(item: DisplayPost, comment: Comment, principal: Optional[Principal]) -> DisplayPost:
    return _refold(item, principal, comments=list(item.post.comments) + [comment])


def set_following(items: Sequence[DisplayTrainer], provider_id: str, value: bool) -> List[DisplayTrainer]:
    return replace_item(items, provider_id, lambda t: t.model_copy(update={"is_following": value}))


def set_subscribed(items: Sequence[DisplayPlan], plan_id: str, value: bool) -> List[DisplayPlan]:
    return replace_item(items, plan_id, lambda p: present_plan(p.plan, value))
