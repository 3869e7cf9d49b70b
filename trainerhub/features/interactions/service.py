"""
trainerhub/features/interactions/service.py

Optimistic Mutation Engine.

toggle_like and toggle_follow return an OptimisticMutation: the locally
updated list (apply it right away) plus the pending remote write. settle()
awaits the write and then either reconciles the list with the stored row or
applies the inverse transition to whatever the list looks like by then.

add_comment and subscribe are not optimistic: they write first and only then
change local state, so what the viewer sees always has a stored identity.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from trainerhub.core.errors import (
    AuthenticationError,
    GatewayError,
    MutationError,
    PermissionError,
    ValidationError,
)
from trainerhub.core.logging import log_event
from trainerhub.core.metrics import mutation_rollbacks_total, mutations_total
from trainerhub.features.interactions.pending import InteractionKey, InteractionKind
from trainerhub.features.interactions.transitions import (
    add_like,
    append_comment,
    find_item,
    remove_like_id,
    remove_likes_by,
    replace_item,
    restore_likes,
    set_following,
    set_subscribed,
    swap_like,
)
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import COMMENTS, FOLLOWS, LIKES, SUBSCRIPTIONS
from trainerhub.models.display import DisplayPlan, DisplayPost, DisplayTrainer
from trainerhub.models.social import Comment, Like, Principal

T = TypeVar("T")

TENTATIVE_PREFIX = "pending:"


def _identity(items: List[T], result: Any) -> List[T]:
    return items


@dataclass
class OptimisticMutation(Generic[T]):
    key: InteractionKey
    items: List[T]
    write: Callable[[], Awaitable[Any]]
    rollback: Callable[[List[T]], List[T]]
    reconcile: Callable[[List[T], Any], List[T]] = field(default=_identity)


@dataclass
class MutationOutcome(Generic[T]):
    items: List[T]
    error: Optional[MutationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle(
    mutation: OptimisticMutation[T],
    current: Optional[Callable[[], List[T]]] = None,
) -> MutationOutcome[T]:
    """Await the remote write; reconcile on success, roll back on failure.

    ``current`` returns the caller's list at completion time, so the inverse
    is applied on top of any other changes made while the write was in flight.
    """
    kind = mutation.key.kind.value
    try:
        result = await mutation.write()
    except GatewayError as exc:
        latest = current() if current else mutation.items
        mutations_total.inc(labels={"kind": kind, "outcome": "failed"})
        mutation_rollbacks_total.inc(labels={"kind": kind})
        log_event(
            "warning",
            "interaction.rolled_back",
            user_id=mutation.key.principal_id,
            event_type=kind,
            error_code="mutation_failed",
            extra={"entity_id": mutation.key.entity_id, "reason": exc.message},
        )
        error = MutationError(f"Could not save {kind}: {exc.message}", upstream_status=exc.upstream_status)
        return MutationOutcome(items=mutation.rollback(latest), error=error)

    latest = current() if current else mutation.items
    mutations_total.inc(labels={"kind": kind, "outcome": "ok"})
    return MutationOutcome(items=mutation.reconcile(latest, result))


def _reject(kind: InteractionKind, reason: str, principal: Optional[Principal]) -> None:
    mutations_total.inc(labels={"kind": kind.value, "outcome": "rejected"})
    log_event("info", "interaction.rejected", user_id=principal.id if principal else None, event_type=kind.value, extra={"reason": reason})


def toggle_like(
    gateway: DataGateway,
    feed: Sequence[DisplayPost],
    principal: Optional[Principal],
    post_id: str,
    was_liked: bool,
) -> Optional[OptimisticMutation[DisplayPost]]:
    """Flip the viewer's like on ``post_id``. None when there is nothing to do.

    A ``was_liked`` that contradicts the loaded post is stale and also yields None,
    so a repeated like never inserts a second row for the same viewer.
    """
    if principal is None:
        _reject(InteractionKind.LIKE, "anonymous", principal)
        return None
    item = find_item(feed, post_id)
    if item is None:
        _reject(InteractionKind.LIKE, "post not loaded", principal)
        return None
    if item.is_liked != was_liked:
        _reject(InteractionKind.LIKE, "stale", principal)
        return None

    key = InteractionKey(InteractionKind.LIKE, post_id, principal.id)

    if was_liked:
        removed: List[Like] = []

        def unlike(item: DisplayPost) -> DisplayPost:
            updated, rows = remove_likes_by(item, principal)
            removed.extend(rows)
            return updated

        items = replace_item(feed, post_id, unlike)

        async def write():
            return await (
                gateway.from_(LIKES).delete()
                .eq("user_id", principal.id).eq("post_id", post_id)
                .execute()
            )

        return OptimisticMutation(
            key=key,
            items=items,
            write=write,
            rollback=lambda current: replace_item(current, post_id, lambda i: restore_likes(i, removed, principal)),
        )

    tentative = Like(
        id=f"{TENTATIVE_PREFIX}{uuid.uuid4()}",
        post_id=post_id,
        principal_id=principal.id,
        created_at=datetime.now(timezone.utc),
    )
    items = replace_item(feed, post_id, lambda i: add_like(i, tentative, principal))

    async def write():
        return await (
            gateway.from_(LIKES).insert({"user_id": principal.id, "post_id": post_id})
            .select("*").single()
            .execute()
        )

    def reconcile(current: List[DisplayPost], row: Any) -> List[DisplayPost]:
        persisted = Like.model_validate(row)
        return replace_item(current, post_id, lambda i: swap_like(i, tentative.id, persisted, principal))

    return OptimisticMutation(
        key=key,
        items=items,
        write=write,
        rollback=lambda current: replace_item(current, post_id, lambda i: remove_like_id(i, tentative.id, principal)),
        reconcile=reconcile,
    )


async def add_comment(
    gateway: DataGateway,
    feed: Sequence[DisplayPost],
    principal: Optional[Principal],
    post_id: str,
    content: str,
    current: Optional[Callable[[], Sequence[DisplayPost]]] = None,
) -> List[DisplayPost]:
    """Insert a comment and append the stored row to ``post_id``.

    Raises ValidationError (before any remote call) for blank content and
    MutationError when the insert fails; ``feed`` is never modified. The row is
    appended to ``current()`` when given, so changes that landed during the
    insert are kept.
    """
    text = (content or "").strip()
    if not text:
        _reject(InteractionKind.COMMENT, "empty", principal)
        raise ValidationError("Comment cannot be empty")
    if principal is None:
        _reject(InteractionKind.COMMENT, "anonymous", principal)
        raise AuthenticationError("Sign in to comment")

    try:
        row = await (
            gateway.from_(COMMENTS)
            .insert({"post_id": post_id, "user_id": principal.id, "content": text})
            .select("*, user:profiles!user_id(id, full_name)")
            .single()
            .execute()
        )
    except GatewayError as exc:
        mutations_total.inc(labels={"kind": InteractionKind.COMMENT.value, "outcome": "failed"})
        log_event("error", "comment.create_failed", user_id=principal.id, post_id=post_id, error_code="mutation_failed", extra={"reason": exc.message})
        raise MutationError(f"Could not add comment: {exc.message}", upstream_status=exc.upstream_status) from exc

    comment = Comment.model_validate(row)
    mutations_total.inc(labels={"kind": InteractionKind.COMMENT.value, "outcome": "ok"})
    latest = current() if current else feed
    return replace_item(latest, post_id, lambda i: append_comment(i, comment, principal))


def can_follow(principal: Optional[Principal], provider_id: str) -> bool:
    return principal is not None and principal.is_consumer and principal.id != provider_id


def toggle_follow(
    gateway: DataGateway,
    trainers: Sequence[DisplayTrainer],
    principal: Optional[Principal],
    provider_id: str,
    was_following: bool,
) -> Optional[OptimisticMutation[DisplayTrainer]]:
    """Follow/unfollow a provider. Only consumers, never oneself: else None."""
    if not can_follow(principal, provider_id):
        _reject(InteractionKind.FOLLOW, "not permitted", principal)
        return None
    loaded = find_item(trainers, provider_id)
    if loaded is not None and loaded.is_following != was_following:
        _reject(InteractionKind.FOLLOW, "stale", principal)
        return None

    key = InteractionKey(InteractionKind.FOLLOW, provider_id, principal.id)
    items = set_following(trainers, provider_id, not was_following)

    if was_following:
        async def write():
            return await (
                gateway.from_(FOLLOWS).delete()
                .eq("follower_id", principal.id).eq("trainer_id", provider_id)
                .execute()
            )
    else:
        async def write():
            return await (
                gateway.from_(FOLLOWS)
                .insert({"follower_id": principal.id, "trainer_id": provider_id})
                .select("*").single()
                .execute()
            )

    return OptimisticMutation(
        key=key,
        items=items,
        write=write,
        rollback=lambda current: set_following(current, provider_id, was_following),
    )


async def subscribe(
    gateway: DataGateway,
    plans: Sequence[DisplayPlan],
    principal: Optional[Principal],
    plan_id: str,
) -> List[DisplayPlan]:
    """Record a subscription, then unlock the plan locally.

    No duplicate check and no payment step: the row insert is the purchase.
    """
    if principal is None:
        _reject(InteractionKind.SUBSCRIBE, "anonymous", principal)
        raise AuthenticationError("Sign in to subscribe")
    if not principal.is_consumer:
        _reject(InteractionKind.SUBSCRIBE, "not a consumer", principal)
        raise PermissionError("Only members can subscribe to plans")

    try:
        await (
            gateway.from_(SUBSCRIPTIONS)
            .insert({"user_id": principal.id, "plan_id": plan_id})
            .select("*").single()
            .execute()
        )
    except GatewayError as exc:
        mutations_total.inc(labels={"kind": InteractionKind.SUBSCRIBE.value, "outcome": "failed"})
        log_event("error", "subscription.create_failed", user_id=principal.id, plan_id=plan_id, error_code="mutation_failed", extra={"reason": exc.message})
        raise MutationError(f"Could not subscribe: {exc.message}", upstream_status=exc.upstream_status) from exc

    mutations_total.inc(labels={"kind": InteractionKind.SUBSCRIBE.value, "outcome": "ok"})
    log_event("info", "subscription.created", user_id=principal.id, plan_id=plan_id)
    return set_subscribed(plans, plan_id, True)
