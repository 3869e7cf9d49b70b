"""
trainerhub/identity/backends.py

Auth backends: the hosted backend's auth endpoints (``{BAAS_URL}/auth/v1``)
or an in-process account table for local dev and tests.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import bcrypt
import httpx
from pydantic import BaseModel, ConfigDict

from trainerhub.core.auth import issue_access_token
from trainerhub.core.config import Settings, settings
from trainerhub.core.errors import AuthenticationError, ConflictError, GatewayError, ValidationError

logger = logging.getLogger("trainerhub")


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str = ""
    access_token: Optional[str] = None


class AuthBackend(ABC):
    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Session:
        """Create the account; returns a session for it."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """Raises AuthenticationError on bad credentials."""

    @abstractmethod
    async def sign_out(self, session: Session) -> None:
        ...

    async def aclose(self) -> None:
        return None


class RestAuthBackend(AuthBackend):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {access_token or self._api_key}",
        }

    async def _post(self, path: str, *, json=None, params=None, access_token: Optional[str] = None) -> httpx.Response:
        try:
            return await self._client.post(path, json=json, params=params, headers=self._headers(access_token))
        except httpx.HTTPError as exc:
            logger.warning("auth.transport_error", extra={"error_code": "gateway_error", "path": path})
            raise GatewayError(f"auth {path}: {exc.__class__.__name__}") from exc

    @staticmethod
    def _message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("msg") or body.get("error_description") or body.get("message") or f"HTTP {response.status_code}")
        return f"HTTP {response.status_code}"

    @staticmethod
    def _session(body: dict, email: str) -> Session:
        user = body.get("user") or body
        if not user.get("id"):
            raise GatewayError("auth response carried no user id")
        return Session(user_id=user["id"], email=user.get("email") or email, access_token=body.get("access_token"))

    async def sign_up(self, email: str, password: str) -> Session:
        response = await self._post("/signup", json={"email": email, "password": password})
        if response.status_code in (400, 422):
            raise ValidationError(self._message(response))
        if response.status_code >= 400:
            raise GatewayError(f"auth signup: {self._message(response)}", upstream_status=response.status_code)
        return self._session(response.json(), email)

    async def sign_in(self, email: str, password: str) -> Session:
        response = await self._post("/token", params={"grant_type": "password"}, json={"email": email, "password": password})
        if response.status_code in (400, 401):
            raise AuthenticationError("Invalid email or password")
        if response.status_code >= 400:
            raise GatewayError(f"auth token: {self._message(response)}", upstream_status=response.status_code)
        return self._session(response.json(), email)

    async def sign_out(self, session: Session) -> None:
        if not session.access_token:
            return
        response = await self._post("/logout", access_token=session.access_token)
        if response.status_code >= 400 and response.status_code != 401:
            raise GatewayError(f"auth logout: {self._message(response)}", upstream_status=response.status_code)


class InMemoryAuthBackend(AuthBackend):
    """Accounts kept in-process with bcrypt hashes; tokens signed like the hosted ones."""

    def __init__(self, jwt_secret: str = "dev-secret", id_factory=None):
        self._secret = jwt_secret
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._accounts: Dict[str, Tuple[str, bytes]] = {}
        self.signed_out: list = []

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def _session(self, user_id: str, email: str) -> Session:
        return Session(user_id=user_id, email=email, access_token=issue_access_token(user_id, self._secret, email=email))

    def add_account(self, email: str, password: str, user_id: Optional[str] = None) -> str:
        user_id = user_id or self._id_factory()
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4))
        self._accounts[self._key(email)] = (user_id, hashed)
        return user_id

    async def sign_up(self, email: str, password: str) -> Session:
        if self._key(email) in self._accounts:
            raise ConflictError("User already registered")
        user_id = self.add_account(email, password)
        return self._session(user_id, email)

    async def sign_in(self, email: str, password: str) -> Session:
        account = self._accounts.get(self._key(email))
        if account is None or not bcrypt.checkpw(password.encode("utf-8"), account[1]):
            raise AuthenticationError("Invalid email or password")
        return self._session(account[0], email)

    async def sign_out(self, session: Session) -> None:
        self.signed_out.append(session.user_id)


def build_auth_backend(settings_obj: Optional[Settings] = None) -> AuthBackend:
    cfg = settings_obj or settings
    if cfg.uses_hosted_backend:
        return RestAuthBackend(cfg.BAAS_URL, cfg.BAAS_ANON_KEY or "", timeout=cfg.BAAS_TIMEOUT_SECONDS)
    logger.warning("BAAS_URL not set; using in-memory auth backend")
    return InMemoryAuthBackend(jwt_secret=cfg.BAAS_JWT_SECRET or "dev-secret")
