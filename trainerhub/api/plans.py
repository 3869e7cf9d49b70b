"""Plan catalogue and details, subscriptions, the consumer plan feed and the trainer dashboard."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from trainerhub.api.deps import get_gateway, get_pending, get_principal, require_principal
from trainerhub.features.interactions.pending import InteractionKey, InteractionKind, PendingKeys
from trainerhub.features.interactions.service import subscribe
from trainerhub.features.plans import service as plans
from trainerhub.gateway.base import DataGateway
from trainerhub.models.display import DisplayPlan, PlanFeed
from trainerhub.models.requests import PlanDraft, PlanUpdate
from trainerhub.models.social import Plan, Principal

router = APIRouter()
me_router = APIRouter()
dashboard_router = APIRouter()


@router.get("")
async def list_plans(gateway: DataGateway = Depends(get_gateway)) -> List[Plan]:
    return await plans.list_plans(gateway)


@router.get("/{plan_id}")
async def plan_details(
    plan_id: str,
    gateway: DataGateway = Depends(get_gateway),
    principal: Optional[Principal] = Depends(get_principal),
) -> DisplayPlan:
    return await plans.get_plan_details(gateway, principal, plan_id)


@router.post("/{plan_id}/subscribe", status_code=201)
async def subscribe_to_plan(
    plan_id: str,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
    pending: PendingKeys = Depends(get_pending),
) -> DisplayPlan:
    plan = await plans.get_plan_details(gateway, principal, plan_id)
    with pending.hold(InteractionKey(InteractionKind.SUBSCRIBE, plan_id, principal.id)):
        updated = await subscribe(gateway, [plan], principal, plan_id)
    return updated[0]


@me_router.get("/plans")
async def my_plans(
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
) -> PlanFeed:
    return await plans.load_plan_feed(gateway, principal)


@dashboard_router.get("/plans")
async def dashboard_plans(
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
) -> List[Plan]:
    return await plans.list_own_plans(gateway, principal)


@dashboard_router.post("/plans", status_code=201)
async def dashboard_create_plan(
    payload: PlanDraft,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
) -> Plan:
    return await plans.create_plan(gateway, principal, payload)


@dashboard_router.patch("/plans/{plan_id}")
async def dashboard_update_plan(
    plan_id: str,
    payload: PlanUpdate,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
) -> Plan:
    return await plans.update_plan(gateway, principal, plan_id, payload)


@dashboard_router.delete("/plans/{plan_id}", status_code=204)
async def dashboard_delete_plan(
    plan_id: str,
    gateway: DataGateway = Depends(get_gateway),
    principal: Principal = Depends(require_principal),
):
    await plans.delete_plan(gateway, principal, plan_id)
    return Response(status_code=204)
