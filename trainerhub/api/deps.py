"""Shared FastAPI dependencies: gateway, auth backend and acting principal."""

from typing import Optional

from fastapi import Depends, Request

from trainerhub.core.auth import bearer_token, get_current_user_id
from trainerhub.core.errors import AuthenticationError
from trainerhub.core.logging import bind_principal
from trainerhub.features.interactions.pending import PendingKeys
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.factory import build_gateway
from trainerhub.identity.backends import AuthBackend, build_auth_backend
from trainerhub.identity.service import load_profile
from trainerhub.models.social import Principal

# Toggles in flight across requests, keyed by (interaction, entity, principal)
PENDING = PendingKeys()


def get_gateway(request: Request) -> DataGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = build_gateway()
        request.app.state.gateway = gateway
    return gateway.for_token(bearer_token(request))


def get_auth_backend(request: Request) -> AuthBackend:
    backend = getattr(request.app.state, "auth_backend", None)
    if backend is None:
        backend = build_auth_backend()
        request.app.state.auth_backend = backend
    return backend


def get_pending() -> PendingKeys:
    return PENDING


async def get_principal(
    user_id: Optional[str] = Depends(get_current_user_id),
    gateway: DataGateway = Depends(get_gateway),
) -> Optional[Principal]:
    """The acting principal, with its role read from the profile row; None if anonymous."""
    if not user_id:
        return None
    profile = await load_profile(gateway, user_id)
    if profile is None:
        raise AuthenticationError("Unknown user")
    bind_principal(profile.id)
    return profile.as_principal()


async def require_principal(principal: Optional[Principal] = Depends(get_principal)) -> Principal:
    if principal is None:
        raise AuthenticationError("Authentication required")
    return principal
