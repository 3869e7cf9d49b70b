from fastapi import APIRouter, Depends
from pydantic import BaseModel

from trainerhub.api.deps import get_auth_backend, get_gateway
from trainerhub.gateway.base import DataGateway
from trainerhub.identity import service
from trainerhub.identity.backends import AuthBackend
from trainerhub.models.requests import Credentials, SignUpRequest
from trainerhub.models.social import Principal

router = APIRouter()


class SessionOut(BaseModel):
    user_id: str
    access_token: str | None = None
    principal: Principal


@router.post("/signup", response_model=SessionOut, status_code=201)
async def signup(
    payload: SignUpRequest,
    auth: AuthBackend = Depends(get_auth_backend),
    gateway: DataGateway = Depends(get_gateway),
):
    session, principal = await service.sign_up(auth, gateway, payload)
    return SessionOut(user_id=session.user_id, access_token=session.access_token, principal=principal)


@router.post("/signin", response_model=SessionOut)
async def signin(
    payload: Credentials,
    auth: AuthBackend = Depends(get_auth_backend),
    gateway: DataGateway = Depends(get_gateway),
):
    session, principal = await service.sign_in(auth, gateway, payload)
    return SessionOut(user_id=session.user_id, access_token=session.access_token, principal=principal)
