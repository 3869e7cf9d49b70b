from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from trainerhub.api.deps import get_principal
from trainerhub.features.navigation.router import NavigationEvent, RouterState, View, menu, navigate, resolve_screen
from trainerhub.models.social import Principal

router = APIRouter()


class NavigationIn(BaseModel):
    state: RouterState = RouterState()
    event: NavigationEvent


class NavigationOut(BaseModel):
    state: RouterState
    screen: Optional[View] = None
    menu: List[View]


@router.post("")
async def navigation(
    payload: NavigationIn,
    principal: Optional[Principal] = Depends(get_principal),
) -> NavigationOut:
    state = navigate(payload.state, payload.event, principal)
    return NavigationOut(state=state, screen=resolve_screen(state, principal), menu=menu(principal))
