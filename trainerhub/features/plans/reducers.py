"""
trainerhub/features/plans/reducers.py
Subscription-gated plan presentation.
"""

from typing import Iterable, List, Optional

from trainerhub.core.config import settings
from trainerhub.features.relationships.service import RelationshipEdges, resolve
from trainerhub.models.display import DisplayPlan
from trainerhub.models.social import Plan, Principal

INCLUDED = (
    "{duration} days of structured workout routines",
    "Personalized meal and nutrition guidance",
    "Progress tracking and milestone checkpoints",
    "Direct support from your trainer",
)


def preview_text(description: str, limit: Optional[int] = None) -> str:
    limit = settings.PREVIEW_CHARS if limit is None else limit
    return description[:limit] + "..."


def present_plan(plan: Plan, subscribed: bool, preview_chars: Optional[int] = None) -> DisplayPlan:
    """Full description and what's-included iff the viewer holds a subscription."""
    if subscribed:
        return DisplayPlan(
            plan=plan,
            is_subscribed=True,
            is_preview=False,
            description=plan.description,
            included=[line.format(duration=plan.duration_days) for line in INCLUDED],
        )
    return DisplayPlan(
        plan=plan,
        is_subscribed=False,
        is_preview=True,
        description=preview_text(plan.description, preview_chars),
        included=[],
    )


def present_plans(
    plans: Iterable[Plan],
    principal: Optional[Principal],
    edges: RelationshipEdges,
) -> List[DisplayPlan]:
    return [present_plan(plan, resolve(principal, plan, edges).subscribed) for plan in plans]
