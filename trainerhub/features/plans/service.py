"""
trainerhub/features/plans/service.py
Plan catalogue, plan details, the consumer plan feed and the provider dashboard.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from trainerhub.core.errors import (
    AuthenticationError,
    FetchError,
    GatewayError,
    MutationError,
    NotFoundError,
    PermissionError,
    ValidationError,
)
from trainerhub.core.logging import log_event
from trainerhub.features.plans.reducers import present_plan, present_plans
from trainerhub.features.relationships.service import RelationshipEdges, followed_provider_ids, is_subscribed
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import PLANS, SUBSCRIPTIONS
from trainerhub.models.display import DisplayPlan, PlanFeed
from trainerhub.models.requests import PlanDraft, PlanUpdate
from trainerhub.models.social import Plan, Principal, Subscription

PLAN_COLUMNS = "*, trainer:profiles!trainer_id(id, full_name, role, bio)"
SUBSCRIPTION_COLUMNS = f"*, plan:fitness_plans!plan_id({PLAN_COLUMNS})"


def _plans_query(gateway: DataGateway):
    return gateway.from_(PLANS).select(PLAN_COLUMNS).order("created_at", desc=True)


async def _read(query, what: str, principal: Optional[Principal] = None):
    try:
        return await query.execute()
    except GatewayError as exc:
        log_event(
            "error",
            "plans.load_failed",
            user_id=principal.id if principal else None,
            error_code="fetch_failed",
            extra={"what": what, "reason": exc.message},
        )
        raise FetchError(f"Could not load {what}: {exc.message}", upstream_status=exc.upstream_status) from exc


async def list_plans(gateway: DataGateway) -> List[Plan]:
    """Landing catalogue: every plan with its provider, newest first."""
    rows = await _read(_plans_query(gateway), "plans")
    return [Plan.model_validate(row) for row in rows]


async def get_plan_details(gateway: DataGateway, principal: Optional[Principal], plan_id: str) -> DisplayPlan:
    row = await _read(_plans_query(gateway).eq("id", plan_id).maybe_single(), "plan", principal)
    if row is None:
        raise NotFoundError(f"Plan {plan_id} not found")
    plan = Plan.model_validate(row)
    return present_plan(plan, await is_subscribed(gateway, principal, plan.id))


async def load_plan_feed(gateway: DataGateway, principal: Optional[Principal]) -> PlanFeed:
    """Plans from followed providers, plus the viewer's own subscriptions."""
    if principal is None:
        return PlanFeed()

    followed_ids = await followed_provider_ids(gateway, principal)
    followed: List[Plan] = []
    if followed_ids:
        rows = await _read(_plans_query(gateway).in_("trainer_id", sorted(followed_ids)), "followed plans", principal)
        followed = [Plan.model_validate(row) for row in rows]

    rows = await _read(
        gateway.from_(SUBSCRIPTIONS).select(SUBSCRIPTION_COLUMNS)
        .eq("user_id", principal.id)
        .order("subscribed_at", desc=True),
        "subscriptions",
        principal,
    )
    subscriptions = [Subscription.model_validate(row) for row in rows]
    subscribed = [s.plan for s in subscriptions if s.plan is not None]

    edges = RelationshipEdges(subscribed_plan_ids=frozenset(s.plan_id for s in subscriptions))
    return PlanFeed(
        followed=present_plans(followed, principal, edges),
        subscribed=present_plans(subscribed, principal, edges),
    )


# ----- provider dashboard -----


def _require_provider(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise AuthenticationError("Sign in to manage plans")
    if not principal.is_provider:
        raise PermissionError("Only trainers can manage plans")
    return principal


def _positive_decimal(value: Any, field: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number") from exc
    if not number.is_finite() or number <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return number


def _positive_int(value: Any, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a whole number") from exc
    if number <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return number


def _required_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def _plan_row(draft: PlanDraft) -> Dict[str, Any]:
    return {
        "title": _required_text(draft.title, "Title"),
        "description": _required_text(draft.description, "Description"),
        # Sent as text so no precision is lost on the way to a numeric column
        "price": str(_positive_decimal(draft.price, "Price")),
        "duration": _positive_int(draft.duration_days, "Duration"),
        "image_url": (draft.image_ref or "").strip() or None,
    }


def _changes(update: PlanUpdate) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    if update.title is not None:
        changes["title"] = _required_text(update.title, "Title")
    if update.description is not None:
        changes["description"] = _required_text(update.description, "Description")
    if update.price is not None:
        changes["price"] = str(_positive_decimal(update.price, "Price"))
    if update.duration_days is not None:
        changes["duration"] = _positive_int(update.duration_days, "Duration")
    if update.image_ref is not None:
        changes["image_url"] = update.image_ref.strip() or None
    return changes


async def _write(query, what: str, principal: Principal):
    try:
        return await query.execute()
    except GatewayError as exc:
        log_event("error", "dashboard.write_failed", user_id=principal.id, error_code="mutation_failed", extra={"what": what, "reason": exc.message})
        raise MutationError(f"Could not {what}: {exc.message}", upstream_status=exc.upstream_status) from exc


async def list_own_plans(gateway: DataGateway, principal: Optional[Principal]) -> List[Plan]:
    provider = _require_provider(principal)
    rows = await _read(
        gateway.from_(PLANS).select("*").eq("trainer_id", provider.id).order("created_at", desc=True),
        "your plans",
        provider,
    )
    return [Plan.model_validate(row) for row in rows]


async def create_plan(gateway: DataGateway, principal: Optional[Principal], draft: PlanDraft) -> Plan:
    provider = _require_provider(principal)
    row = {**_plan_row(draft), "trainer_id": provider.id}
    created = await _write(gateway.from_(PLANS).insert(row).select("*").single(), "create plan", provider)
    log_event("info", "plan.created", user_id=provider.id, plan_id=created.get("id"))
    return Plan.model_validate(created)


async def update_plan(gateway: DataGateway, principal: Optional[Principal], plan_id: str, update: PlanUpdate) -> Plan:
    provider = _require_provider(principal)
    changes = _changes(update)
    if not changes:
        raise ValidationError("Nothing to update")
    row = await _write(
        gateway.from_(PLANS).update(changes)
        .eq("id", plan_id).eq("trainer_id", provider.id)
        .select("*").maybe_single(),
        "update plan",
        provider,
    )
    if row is None:
        raise NotFoundError(f"Plan {plan_id} not found")
    return Plan.model_validate(row)


async def delete_plan(gateway: DataGateway, principal: Optional[Principal], plan_id: str) -> None:
    provider = _require_provider(principal)
    rows = await _write(
        gateway.from_(PLANS).delete().eq("id", plan_id).eq("trainer_id", provider.id),
        "delete plan",
        provider,
    )
    if not rows:
        raise NotFoundError(f"Plan {plan_id} not found")
    log_event("info", "plan.deleted", user_id=provider.id, plan_id=plan_id)
