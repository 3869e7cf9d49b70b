"""
trainerhub/features/navigation/router.py

View Router: a closed set of screens and a pure transition function.
No I/O; screens are loaded by whoever observes the resulting state.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from trainerhub.models.social import Principal


class View(str, Enum):
    LANDING = "landing"
    LOGIN = "login"
    SIGNUP = "signup"
    DASHBOARD = "dashboard"
    PLAN = "plan"
    FEED = "feed"
    TRAINER = "trainer"
    SOCIAL = "social"
    DISCOVER = "discover"


AUTH_VIEWS = (View.LOGIN, View.SIGNUP)


class RouterState(BaseModel):
    model_config = ConfigDict(frozen=True)

    view: View = View.LANDING
    selected_plan_id: Optional[str] = None
    selected_trainer_id: Optional[str] = None


class NavigationEvent(BaseModel):
    view: View
    plan_id: Optional[str] = None
    trainer_id: Optional[str] = None


def transition(state: RouterState, event: NavigationEvent) -> RouterState:
    """Move to ``event.view``. Selections are only overwritten when given."""
    return RouterState(
        view=event.view,
        selected_plan_id=event.plan_id or state.selected_plan_id,
        selected_trainer_id=event.trainer_id or state.selected_trainer_id,
    )


def apply_session_guard(state: RouterState, authenticated: bool) -> RouterState:
    """Signed-in users never stay on login/signup."""
    if authenticated and state.view in AUTH_VIEWS:
        return state.model_copy(update={"view": View.LANDING})
    return state


def navigate(state: RouterState, event: NavigationEvent, principal: Optional[Principal]) -> RouterState:
    return apply_session_guard(transition(state, event), principal is not None)


def resolve_screen(state: RouterState, principal: Optional[Principal]) -> Optional[View]:
    """The screen actually rendered for ``state``, or None when it is gated.

    Dashboard is for providers, the plan feed for consumers, social and
    discover for anyone signed in; plan and trainer need a selection.
    """
    view = state.view
    if view == View.DASHBOARD:
        return view if principal is not None and principal.is_provider else None
    if view == View.FEED:
        return view if principal is not None and principal.is_consumer else None
    if view in (View.SOCIAL, View.DISCOVER):
        return view if principal is not None else None
    if view == View.PLAN:
        return view if state.selected_plan_id else None
    if view == View.TRAINER:
        return view if state.selected_trainer_id else None
    return view


def menu(principal: Optional[Principal]) -> List[View]:
    """Navigation bar entries for the principal."""
    if principal is None:
        return [View.LANDING, View.LOGIN, View.SIGNUP]
    items = [View.LANDING, View.DISCOVER, View.SOCIAL]
    items.append(View.FEED if principal.is_consumer else View.DASHBOARD)
    return items
