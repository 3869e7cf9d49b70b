"""
trainerhub/screens/plans.py
Plan screens: landing catalogue, plan details, the consumer plan feed and the provider dashboard.
"""

from typing import List, Optional

from trainerhub.core.errors import AppError
from trainerhub.features.interactions.service import subscribe
from trainerhub.features.plans import service as plans
from trainerhub.gateway.base import DataGateway
from trainerhub.models.display import DisplayPlan, PlanFeed
from trainerhub.models.requests import PlanDraft, PlanUpdate
from trainerhub.models.social import Plan, Principal
from trainerhub.screens.base import Screen


class CatalogueScreen(Screen):
    name = "landing"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal]):
        super().__init__(gateway, principal)
        self.plans: List[Plan] = []

    async def load(self) -> None:
        token = self._begin()
        try:
            result = await plans.list_plans(self.gateway)
        except AppError as exc:
            self._fail(token, exc)
            return
        if self.is_current(token):
            self.plans = result
            self._ready(bool(result))


class PlanScreen(Screen):
    name = "plan"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal], plan_id: str):
        super().__init__(gateway, principal)
        self.plan_id = plan_id
        self.plan: Optional[DisplayPlan] = None

    async def load(self) -> None:
        token = self._begin()
        try:
            result = await plans.get_plan_details(self.gateway, self.principal, self.plan_id)
        except AppError as exc:
            self._fail(token, exc)
            return
        if self.is_current(token):
            self.plan = result
            self._ready(True)

    async def subscribe(self) -> bool:
        """Write first, unlock after; a failure leaves the preview in place."""
        if self.plan is None:
            return False
        try:
            updated = await subscribe(self.gateway, [self.plan], self.principal, self.plan_id)
        except AppError as exc:
            self.last_error = exc.message
            return False
        if self.mounted:
            self.plan = updated[0]
        return True


class PlanFeedScreen(Screen):
    name = "my_plans"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal]):
        super().__init__(gateway, principal)
        self.feed = PlanFeed()

    async def load(self) -> None:
        token = self._begin()
        try:
            result = await plans.load_plan_feed(self.gateway, self.principal)
        except AppError as exc:
            self._fail(token, exc)
            return
        if self.is_current(token):
            self.feed = result
            self._ready(bool(result.followed or result.subscribed))


class DashboardScreen(Screen):
    name = "dashboard"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal]):
        super().__init__(gateway, principal)
        self.plans: List[Plan] = []

    async def load(self) -> None:
        token = self._begin()
        try:
            result = await plans.list_own_plans(self.gateway, self.principal)
        except AppError as exc:
            self._fail(token, exc)
            return
        if self.is_current(token):
            self.plans = result
            self._ready(bool(result))

    async def create(self, draft: PlanDraft) -> Optional[Plan]:
        try:
            plan = await plans.create_plan(self.gateway, self.principal, draft)
        except AppError as exc:
            self.last_error = exc.message
            return None
        if self.mounted:
            self.plans = [plan] + self.plans
            self._ready(True)
        return plan

    async def update(self, plan_id: str, update: PlanUpdate) -> Optional[Plan]:
        try:
            plan = await plans.update_plan(self.gateway, self.principal, plan_id, update)
        except AppError as exc:
            self.last_error = exc.message
            return None
        if self.mounted:
            self.plans = [plan if p.id == plan_id else p for p in self.plans]
        return plan

    async def delete(self, plan_id: str) -> bool:
        try:
            await plans.delete_plan(self.gateway, self.principal, plan_id)
        except AppError as exc:
            self.last_error = exc.message
            return False
        if self.mounted:
            self.plans = [p for p in self.plans if p.id != plan_id]
            self._ready(bool(self.plans))
        return True
