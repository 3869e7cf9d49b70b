"""
trainerhub/features/trainers/service.py
Trainer profile page and the discover listing.
"""

from typing import List, Optional

from trainerhub.core.errors import FetchError, GatewayError, NotFoundError
from trainerhub.core.logging import log_event
from trainerhub.features.interactions.service import can_follow
from trainerhub.features.relationships.service import is_following, load_edges, resolve
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import PLANS, PROFILES
from trainerhub.models.display import DisplayTrainer, TrainerProfileView
from trainerhub.models.social import Plan, Principal, Profile, Role


async def _read(query, what: str, principal: Optional[Principal]):
    try:
        return await query.execute()
    except GatewayError as exc:
        log_event("error", "trainers.load_failed", user_id=principal.id if principal else None, error_code="fetch_failed", extra={"what": what, "reason": exc.message})
        raise FetchError(f"Could not load {what}: {exc.message}", upstream_status=exc.upstream_status) from exc


async def get_trainer_profile(gateway: DataGateway, principal: Optional[Principal], trainer_id: str) -> TrainerProfileView:
    """Profile row, the trainer's plans (newest first) and the follow flag."""
    row = await _read(
        gateway.from_(PROFILES).select("*").eq("id", trainer_id).maybe_single(),
        "trainer",
        principal,
    )
    if row is None:
        raise NotFoundError(f"Trainer {trainer_id} not found")
    profile = Profile.model_validate(row)

    rows = await _read(
        gateway.from_(PLANS).select("*").eq("trainer_id", trainer_id).order("created_at", desc=True),
        "trainer plans",
        principal,
    )
    following = False
    if principal is not None and principal.is_consumer:
        following = await is_following(gateway, principal, trainer_id)

    return TrainerProfileView(
        trainer=DisplayTrainer(
            profile=profile,
            is_following=following,
            can_follow=can_follow(principal, trainer_id),
        ),
        plans=[Plan.model_validate(r) for r in rows],
    )


async def discover_trainers(gateway: DataGateway, principal: Optional[Principal]) -> List[DisplayTrainer]:
    rows = await _read(
        gateway.from_(PROFILES).select("*").eq("role", Role.PROVIDER.value).order("created_at", desc=True),
        "trainers",
        principal,
    )
    profiles = [Profile.model_validate(r) for r in rows]
    edges = await load_edges(gateway, principal, follows=True)
    return [
        DisplayTrainer(
            profile=profile,
            is_following=resolve(principal, profile, edges).following,
            can_follow=can_follow(principal, profile.id),
        )
        for profile in profiles
    ]
