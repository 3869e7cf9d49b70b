from typing import List, Optional

from fastapi import APIRouter, Depends

from trainerhub.api.deps import get_gateway, get_pending, get_principal, require_principal
from trainerhub.core.errors import ConflictError, PermissionError
from trainerhub.features.interactions.pending import InteractionKey, InteractionKind, PendingKeys
from trainerhub.features.interactions.service import settle, toggle_follow
from trainerhub.features.trainers.service import discover_trainers, get_trainer_profile
from trainerhub.gateway.base import DataGateway
from trainerhub.models.display import DisplayTrainer, TrainerProfileView
from trainerhub.models.requests import FollowToggleRequest
from trainerhub.models.social import Principal

router = APIRouter()


@router.get("")
async def discover(
    gateway: DataGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> List[DisplayTrainer]:
    return await discover_trainers(gateway, principal)


@router.get("/{trainer_id}")
async def trainer_profile(
    trainer_id: str,
    gateway: DataGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> TrainerProfileView:
    return await get_trainer_profile(gateway, principal, trainer_id)


@router.post("/{trainer_id}/follow")
async def follow_trainer(
    trainer_id: str,
    payload: FollowToggleRequest,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
    pending: PendingKeys = Depends(get_pending),
) -> DisplayTrainer:
    with pending.hold(InteractionKey(InteractionKind.FOLLOW, trainer_id, principal.id)):
        view = await get_trainer_profile(gateway, principal, trainer_id)
        if payload.was_following != view.trainer.is_following:
            raise ConflictError("Already following" if view.trainer.is_following else "Not following")
        mutation = toggle_follow(gateway, [view.trainer], principal, trainer_id, payload.was_following)
        if mutation is None:
            raise PermissionError("Only members can follow trainers, and never themselves")
        outcome = await settle(mutation)
    if outcome.error is not None:
        raise outcome.error
    return outcome.items[0]
