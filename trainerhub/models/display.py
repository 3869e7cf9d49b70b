"""
trainerhub/models/display.py
Per-principal read models folded from joined rows. Never persisted.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from trainerhub.models.social import Comment, Plan, Post, Profile


class DisplayPost(BaseModel):
    """A post enriched with derived counts and the viewer's like flag."""

    model_config = ConfigDict(frozen=True)

    post: Post
    like_count: int = Field(ge=0)
    comment_count: int = Field(ge=0)
    is_liked: bool = False
    preview_comments: List[Comment] = Field(default_factory=list)
    has_more_comments: bool = False

    @property
    def id(self) -> str:
        return self.post.id

    @property
    def provider_id(self) -> str:
        return self.post.provider_id


class DisplayPlan(BaseModel):
    """A plan as the viewer may see it: full content or a truncated preview."""

    model_config = ConfigDict(frozen=True)

    plan: Plan
    is_subscribed: bool = False
    is_preview: bool = True
    description: str = Field(description="Full description, or the preview when not subscribed")
    included: List[str] = Field(default_factory=list, description="Empty while in preview mode")

    @property
    def id(self) -> str:
        return self.plan.id


class DisplayTrainer(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: Profile
    is_following: bool = False
    can_follow: bool = False

    @property
    def id(self) -> str:
        return self.profile.id


class PlanFeed(BaseModel):
    """Consumer plan feed: plans from followed trainers plus own subscriptions."""

    model_config = ConfigDict(frozen=True)

    followed: List[DisplayPlan] = Field(default_factory=list)
    subscribed: List[DisplayPlan] = Field(default_factory=list)


class TrainerProfileView(BaseModel):
    model_config = ConfigDict(frozen=True)

    trainer: DisplayTrainer
    plans: List[Plan] = Field(default_factory=list)
