"""
trainerhub/models/social.py
Marketplace entities as stored by the hosted backend.

Field names are domain names; aliases are the storage column names so rows
(and their embedded joins) validate directly: Post.model_validate(row).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Principal role. Stored values are the product's wording."""

    CONSUMER = "user"
    PROVIDER = "trainer"


class Principal(BaseModel):
    """Authenticated identity acting on the marketplace."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    full_name: str = ""

    @property
    def is_consumer(self) -> bool:
        return self.role == Role.CONSUMER

    @property
    def is_provider(self) -> bool:
        return self.role == Role.PROVIDER


class Profile(BaseModel):
    """Public profile row. Embedded joins may carry only a subset of columns."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Optional[Role] = None
    full_name: str = ""
    bio: Optional[str] = ""
    created_at: Optional[datetime] = None

    def as_principal(self) -> Principal:
        return Principal(id=self.id, role=self.role or Role.CONSUMER, full_name=self.full_name)


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    provider_id: str = Field(alias="trainer_id")
    title: str
    description: str = ""
    price: Decimal = Field(ge=0)
    duration_days: int = Field(alias="duration", ge=0)
    image_ref: Optional[str] = Field(default=None, alias="image_url")
    created_at: datetime
    provider: Optional[Profile] = Field(default=None, alias="trainer")


class Like(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    post_id: Optional[str] = None
    principal_id: str = Field(alias="user_id")
    created_at: Optional[datetime] = None


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    post_id: Optional[str] = None
    principal_id: Optional[str] = Field(default=None, alias="user_id")
    content: str
    created_at: datetime
    author: Optional[Profile] = Field(default=None, alias="user")


class Post(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    provider_id: str = Field(alias="trainer_id")
    image_ref: str = Field(default="", alias="image_url")
    caption: str = ""
    created_at: datetime
    provider: Optional[Profile] = Field(default=None, alias="trainer")
    likes: List[Like] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)


class Subscription(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    consumer_id: str = Field(alias="user_id")
    plan_id: str
    created_at: Optional[datetime] = Field(default=None, alias="subscribed_at")
    plan: Optional[Plan] = None


class Follow(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    consumer_id: str = Field(alias="follower_id")
    provider_id: str = Field(alias="trainer_id")
    created_at: Optional[datetime] = Field(default=None, alias="followed_at")
