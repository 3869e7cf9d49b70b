"""
trainerhub/features/relationships/service.py

Relationship Resolver: the viewer's liked/following/subscribed flags.

The viewer's edge ids are collected once per batch (one query, or one pass
over an already-joined snapshot) and every entity is then a set lookup.
Flags are a pure function of the edges passed in; nothing is cached between
calls. A failed edge fetch fails the batch: "unknown" is never reported as
"not liked".
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Union

from trainerhub.core.errors import FetchError, GatewayError
from trainerhub.core.logging import log_event
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import FOLLOWS, LIKES, SUBSCRIPTIONS
from trainerhub.models.social import Plan, Post, Principal, Profile

Entity = Union[Post, Profile, Plan]


@dataclass(frozen=True)
class Relationship:
    liked: bool = False
    following: bool = False
    subscribed: bool = False


@dataclass(frozen=True)
class RelationshipEdges:
    """The viewer's own edge ids, keyed by target."""

    liked_post_ids: FrozenSet[str] = frozenset()
    followed_provider_ids: FrozenSet[str] = frozenset()
    subscribed_plan_ids: FrozenSet[str] = frozenset()


NO_EDGES = RelationshipEdges()


def liked_post_ids(posts: Iterable[Post], principal: Optional[Principal]) -> FrozenSet[str]:
    """Edge set from a joined snapshot: posts whose likes include the viewer."""
    if principal is None:
        return frozenset()
    return frozenset(
        post.id for post in posts
        if any(like.principal_id == principal.id for like in post.likes)
    )


def resolve(principal: Optional[Principal], entity: Entity, edges: RelationshipEdges) -> Relationship:
    if principal is None:
        return Relationship()
    if isinstance(entity, Post):
        return Relationship(liked=entity.id in edges.liked_post_ids)
    if isinstance(entity, Plan):
        return Relationship(subscribed=entity.id in edges.subscribed_plan_ids)
    return Relationship(following=entity.id in edges.followed_provider_ids)


def resolve_batch(
    principal: Optional[Principal],
    entities: Iterable[Entity],
    edges: RelationshipEdges,
) -> List[Relationship]:
    return [resolve(principal, entity, edges) for entity in entities]


async def load_edges(
    gateway: DataGateway,
    principal: Optional[Principal],
    *,
    likes: bool = False,
    follows: bool = False,
    subscriptions: bool = False,
) -> RelationshipEdges:
    """Fetch the viewer's requested edge sets, one query per kind."""
    if principal is None:
        return NO_EDGES

    try:
        liked: FrozenSet[str] = frozenset()
        followed: FrozenSet[str] = frozenset()
        subscribed: FrozenSet[str] = frozenset()
        if likes:
            rows = await gateway.from_(LIKES).select("post_id").eq("user_id", principal.id).execute()
            liked = frozenset(r["post_id"] for r in rows)
        if follows:
            rows = await gateway.from_(FOLLOWS).select("trainer_id").eq("follower_id", principal.id).execute()
            followed = frozenset(r["trainer_id"] for r in rows)
        if subscriptions:
            rows = await gateway.from_(SUBSCRIPTIONS).select("plan_id").eq("user_id", principal.id).execute()
            subscribed = frozenset(r["plan_id"] for r in rows)
    except GatewayError as exc:
        log_event("warning", "relationships.load_failed", user_id=principal.id, error_code="fetch_failed", extra={"reason": exc.message})
        raise FetchError(f"Could not load relationships: {exc.message}", upstream_status=exc.upstream_status) from exc

    return RelationshipEdges(
        liked_post_ids=liked,
        followed_provider_ids=followed,
        subscribed_plan_ids=subscribed,
    )


async def followed_provider_ids(gateway: DataGateway, principal: Optional[Principal]) -> FrozenSet[str]:
    edges = await load_edges(gateway, principal, follows=True)
    return edges.followed_provider_ids


async def is_following(gateway: DataGateway, principal: Optional[Principal], provider_id: str) -> bool:
    """Single-pair lookup for profile pages."""
    if principal is None:
        return False
    try:
        rows = await (
            gateway.from_(FOLLOWS).select("id")
            .eq("follower_id", principal.id).eq("trainer_id", provider_id)
            .execute()
        )
    except GatewayError as exc:
        raise FetchError(f"Could not load follow state: {exc.message}", upstream_status=exc.upstream_status) from exc
    return bool(rows)


async def is_subscribed(gateway: DataGateway, principal: Optional[Principal], plan_id: str) -> bool:
    if principal is None:
        return False
    try:
        rows = await (
            gateway.from_(SUBSCRIPTIONS).select("id")
            .eq("user_id", principal.id).eq("plan_id", plan_id)
            .execute()
        )
    except GatewayError as exc:
        raise FetchError(f"Could not load subscription state: {exc.message}", upstream_status=exc.upstream_status) from exc
    return bool(rows)
