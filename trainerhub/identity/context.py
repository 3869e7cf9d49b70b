"""
trainerhub/identity/context.py

Identity Context: the one owned object holding the current principal and
session. Only the sign-in/sign-up/sign-out flow writes it; everything else
reads ``current_principal()`` or registers an ``on_change`` listener.
"""

import inspect
import logging
from typing import Any, Callable, List, Optional

from trainerhub.gateway.base import DataGateway
from trainerhub.identity import service
from trainerhub.identity.backends import AuthBackend, Session
from trainerhub.models.requests import Credentials, SignUpRequest
from trainerhub.models.social import Principal

logger = logging.getLogger("trainerhub")

Listener = Callable[[Optional[Principal]], Any]


class IdentityContext:
    def __init__(self, auth: AuthBackend, gateway: DataGateway):
        self._auth = auth
        self._gateway = gateway
        self._principal: Optional[Principal] = None
        self._session: Optional[Session] = None
        self._listeners: List[Listener] = []

    def current_principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def gateway(self) -> DataGateway:
        """Gateway acting with the current session's token."""
        return self._gateway.for_token(self._session.access_token if self._session else None)

    def on_change(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _set(self, principal: Optional[Principal], session: Optional[Session]) -> None:
        previous = self._principal
        self._principal = principal
        self._session = session
        if previous == principal:
            return
        for listener in list(self._listeners):
            result = listener(principal)
            if inspect.isawaitable(result):
                await result

    async def sign_in(self, credentials: Credentials) -> Principal:
        session, principal = await service.sign_in(self._auth, self._gateway, credentials)
        await self._set(principal, session)
        return principal

    async def sign_up(self, request: SignUpRequest) -> Principal:
        session, principal = await service.sign_up(self._auth, self._gateway, request)
        await self._set(principal, session)
        return principal

    async def sign_out(self) -> None:
        if self._session is not None:
            await self._auth.sign_out(self._session)
        logger.info("auth.signed_out", extra={"user_id": self._principal.id if self._principal else None})
        await self._set(None, None)
