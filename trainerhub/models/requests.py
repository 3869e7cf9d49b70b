"""
trainerhub/models/requests.py
Inputs to the service layer and HTTP surface.

Semantic checks (trimmed non-empty text, positive price) live in the services
so headless callers and the HTTP surface reject the same inputs.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from trainerhub.models.social import Role


class Credentials(BaseModel):
    email: str
    password: str


class SignUpRequest(BaseModel):
    email: str
    password: str
    full_name: str
    role: Role = Role.CONSUMER


class PlanDraft(BaseModel):
    """Provider dashboard form for a new plan."""

    title: str
    description: str
    price: Decimal
    duration_days: int
    image_ref: Optional[str] = None


class PlanUpdate(BaseModel):
    """Partial plan edit; omitted fields are left untouched."""

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    duration_days: Optional[int] = None
    image_ref: Optional[str] = None


class PostDraft(BaseModel):
    image_ref: str = ""
    caption: str = ""


class CommentRequest(BaseModel):
    content: str = ""


class LikeToggleRequest(BaseModel):
    was_liked: bool = Field(description="Like state the viewer saw when triggering the toggle")


class FollowToggleRequest(BaseModel):
    was_following: bool
