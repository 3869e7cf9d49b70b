"""
trainerhub/screens/shell.py

AppShell: wires the Identity Context to the View Router and the screens.
Navigation mounts the resolved screen (unmounting the previous one); a
principal change re-applies the session guard and reloads from scratch,
so relationship flags never outlive the identity they were computed for.
"""

from typing import Optional

from trainerhub.features.feed.service import FeedScope
from trainerhub.features.navigation.router import (
    NavigationEvent,
    RouterState,
    View,
    apply_session_guard,
    navigate,
    resolve_screen,
)
from trainerhub.identity.context import IdentityContext
from trainerhub.models.social import Principal
from trainerhub.screens.base import Screen
from trainerhub.screens.feed import FeedScreen
from trainerhub.screens.plans import CatalogueScreen, DashboardScreen, PlanFeedScreen, PlanScreen
from trainerhub.screens.trainers import DiscoverScreen, TrainerScreen


class AppShell:
    def __init__(self, identity: IdentityContext, state: Optional[RouterState] = None):
        self.identity = identity
        self.state = state or RouterState()
        self.screen: Optional[Screen] = None
        self._unsubscribe = identity.on_change(self._on_principal_change)

    @property
    def principal(self) -> Optional[Principal]:
        return self.identity.current_principal()

    @property
    def rendered_view(self) -> Optional[View]:
        return resolve_screen(self.state, self.principal)

    async def start(self) -> None:
        await self._mount()

    async def navigate(self, view: View, plan_id: Optional[str] = None, trainer_id: Optional[str] = None) -> None:
        self.state = navigate(self.state, NavigationEvent(view=view, plan_id=plan_id, trainer_id=trainer_id), self.principal)
        await self._mount()

    async def _on_principal_change(self, principal: Optional[Principal]) -> None:
        self.state = apply_session_guard(self.state, principal is not None)
        await self._mount()

    def _build(self, view: View) -> Optional[Screen]:
        gateway = self.identity.gateway
        principal = self.principal
        if view == View.LANDING:
            return CatalogueScreen(gateway, principal)
        if view == View.PLAN:
            return PlanScreen(gateway, principal, self.state.selected_plan_id)
        if view == View.FEED:
            return PlanFeedScreen(gateway, principal)
        if view == View.DASHBOARD:
            return DashboardScreen(gateway, principal)
        if view == View.SOCIAL:
            return FeedScreen(gateway, principal, FeedScope.FOLLOWING_OR_ALL)
        if view == View.DISCOVER:
            return DiscoverScreen(gateway, principal)
        if view == View.TRAINER:
            return TrainerScreen(gateway, principal, self.state.selected_trainer_id)
        # login / signup are forms, not data screens
        return None

    async def _mount(self) -> None:
        if self.screen is not None:
            self.screen.unmount()
        view = self.rendered_view
        self.screen = self._build(view) if view is not None else None
        if self.screen is not None:
            await self.screen.load()

    def close(self) -> None:
        self._unsubscribe()
        if self.screen is not None:
            self.screen.unmount()
            self.screen = None
