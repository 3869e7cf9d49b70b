"""
trainerhub/screens/trainers.py
Trainer profile and discover screens, both with optimistic follow toggles.
"""

from typing import List, Optional

from trainerhub.core.errors import AppError
from trainerhub.features.interactions.service import toggle_follow
from trainerhub.features.interactions.transitions import find_item
from trainerhub.features.trainers.service import discover_trainers, get_trainer_profile
from trainerhub.gateway.base import DataGateway
from trainerhub.models.display import DisplayTrainer, TrainerProfileView
from trainerhub.models.social import Principal
from trainerhub.screens.base import Screen


class DiscoverScreen(Screen):
    name = "discover"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal]):
        super().__init__(gateway, principal)
        self.trainers: List[DisplayTrainer] = []

    def _set_trainers(self, trainers: List[DisplayTrainer]) -> None:
        self.trainers = trainers

    async def load(self) -> None:
        token = self._begin()
        try:
            result = await discover_trainers(self.gateway, self.principal)
        except AppError as exc:
            self._fail(token, exc)
            return
        if self.is_current(token):
            self.trainers = result
            self._ready(bool(result))

    async def toggle_follow(self, trainer_id: str) -> bool:
        item = find_item(self.trainers, trainer_id)
        if item is None:
            return False
        mutation = toggle_follow(self.gateway, self.trainers, self.principal, trainer_id, item.is_following)
        return await self._run_optimistic(mutation, lambda: self.trainers, self._set_trainers)


class TrainerScreen(Screen):
    name = "trainer"

    def __init__(self, gateway: DataGateway, principal: Optional[Principal], trainer_id: str):
        super().__init__(gateway, principal)
        self.trainer_id = trainer_id
        self.view: Optional[TrainerProfileView] = None

    def _trainers(self) -> List[DisplayTrainer]:
        return [self.view.trainer] if self.view else []

    def _set_trainers(self, trainers: List[DisplayTrainer]) -> None:
        if self.view is not None and trainers:
            self.view = self.view.model_copy(update={"trainer": trainers[0]})

    async def load(self) -> None:
        token = self._begin()
        try:
            result = await get_trainer_profile(self.gateway, self.principal, self.trainer_id)
        except AppError as exc:
            self._fail(token, exc)
            return
        if self.is_current(token):
            self.view = result
            self._ready(True)

    async def toggle_follow(self) -> bool:
        if self.view is None:
            return False
        mutation = toggle_follow(
            self.gateway,
            self._trainers(),
            self.principal,
            self.trainer_id,
            self.view.trainer.is_following,
        )
        return await self._run_optimistic(mutation, self._trainers, self._set_trainers)
