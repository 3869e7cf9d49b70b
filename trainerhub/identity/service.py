"""
trainerhub/identity/service.py
Sign-up and sign-in: the auth backend owns credentials, the profiles table owns the role.
"""

from typing import Optional, Tuple

from trainerhub.core.config import settings
from trainerhub.core.errors import AuthenticationError, FetchError, GatewayError, MutationError, ValidationError
from trainerhub.core.logging import log_event
from trainerhub.gateway.base import DataGateway
from trainerhub.gateway.schema import PROFILES
from trainerhub.identity.backends import AuthBackend, Session
from trainerhub.models.requests import Credentials, SignUpRequest
from trainerhub.models.social import Principal, Profile


def validate_sign_up(request: SignUpRequest, min_length: Optional[int] = None) -> None:
    min_length = settings.PASSWORD_MIN_LENGTH if min_length is None else min_length
    if not request.email.strip():
        raise ValidationError("Email is required")
    if len(request.password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
    if not request.full_name.strip():
        raise ValidationError("Full name is required")


async def load_profile(gateway: DataGateway, user_id: str) -> Optional[Profile]:
    try:
        row = await gateway.from_(PROFILES).select("*").eq("id", user_id).maybe_single().execute()
    except GatewayError as exc:
        raise FetchError(f"Could not load profile: {exc.message}", upstream_status=exc.upstream_status) from exc
    return Profile.model_validate(row) if row is not None else None


async def sign_up(auth: AuthBackend, gateway: DataGateway, request: SignUpRequest) -> Tuple[Session, Principal]:
    """Create the account, then its profile row carrying name and role."""
    validate_sign_up(request)
    session = await auth.sign_up(request.email.strip(), request.password)

    row = {"id": session.user_id, "full_name": request.full_name.strip(), "role": request.role.value, "bio": ""}
    try:
        created = await gateway.for_token(session.access_token).from_(PROFILES).insert(row).select("*").single().execute()
    except GatewayError as exc:
        log_event("error", "auth.profile_create_failed", user_id=session.user_id, error_code="mutation_failed", extra={"reason": exc.message})
        raise MutationError(f"Could not create profile: {exc.message}", upstream_status=exc.upstream_status) from exc

    log_event("info", "auth.signed_up", user_id=session.user_id, extra={"role": request.role.value})
    return session, Profile.model_validate(created).as_principal()


async def sign_in(auth: AuthBackend, gateway: DataGateway, credentials: Credentials) -> Tuple[Session, Principal]:
    try:
        session = await auth.sign_in(credentials.email.strip(), credentials.password)
    except AuthenticationError as exc:
        log_event("info", "auth.sign_in_failed", error_code="unauthenticated")
        raise AuthenticationError("Invalid email or password") from exc

    profile = await load_profile(gateway.for_token(session.access_token), session.user_id)
    if profile is None:
        raise AuthenticationError("Invalid email or password")
    log_event("info", "auth.signed_in", user_id=session.user_id)
    return session, profile.as_principal()
