# trainerhub/conftest.py
import os
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

os.environ.setdefault("SKIP_ENV_VALIDATION", "1")

from trainerhub.core.metrics import METRICS
from trainerhub.gateway.memory import InMemoryGateway
from trainerhub.gateway.schema import COMMENTS, LIKES, PLANS, POSTS, PROFILES
from trainerhub.models.social import Principal, Role


class TickingClock:
    """Each call is one second after the previous one, so inserts order deterministically."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def fixed_now():
    """Fixed timestamp for deterministic testing."""
    return datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_metrics():
    METRICS.reset()
    yield
    METRICS.reset()


@pytest.fixture
def gateway(fixed_now):
    """Empty in-memory store with a ticking clock and sequential ids."""
    ids = count(1)
    return InMemoryGateway(clock=TickingClock(fixed_now), id_factory=lambda: f"gen-{next(ids)}")


@pytest.fixture
def consumer():
    return Principal(id="user-1", role=Role.CONSUMER, full_name="Casey Consumer")


@pytest.fixture
def other_consumer():
    return Principal(id="user-2", role=Role.CONSUMER, full_name="Robin Reader")


@pytest.fixture
def provider():
    return Principal(id="trainer-1", role=Role.PROVIDER, full_name="Tara Trainer")


@pytest.fixture
def other_provider():
    return Principal(id="trainer-2", role=Role.PROVIDER, full_name="Theo Trainer")


@pytest.fixture
def marketplace(gateway, fixed_now, consumer, other_consumer, provider, other_provider):
    """
    Seeded store:
    - two consumers, two trainers, one ex-trainer (role changed to user)
    - one plan per trainer
    - post-1 (trainer-1, oldest), post-2 (trainer-2), post-3 (ex-trainer, newest)
    - post-1 liked by user-2, with three comments
    """
    t = lambda minutes: fixed_now - timedelta(minutes=minutes)
    gateway.seed(PROFILES, [
        {"id": consumer.id, "full_name": consumer.full_name, "role": "user", "bio": "", "created_at": t(500)},
        {"id": other_consumer.id, "full_name": other_consumer.full_name, "role": "user", "bio": "", "created_at": t(400)},
        {"id": provider.id, "full_name": provider.full_name, "role": "trainer", "bio": "Strength coach", "created_at": t(300)},
        {"id": other_provider.id, "full_name": other_provider.full_name, "role": "trainer", "bio": "Runner", "created_at": t(200)},
        {"id": "ex-trainer", "full_name": "Former Trainer", "role": "user", "bio": "", "created_at": t(100)},
    ])
    gateway.seed(PLANS, [
        {
            "id": "plan-1",
            "trainer_id": provider.id,
            "title": "Strength Foundations",
            "description": "A" * 200,
            "price": "49.99",
            "duration": 30,
            "image_url": None,
            "created_at": t(90),
        },
        {
            "id": "plan-2",
            "trainer_id": other_provider.id,
            "title": "10K Builder",
            "description": "Run further, week by week.",
            "price": "19.00",
            "duration": 60,
            "image_url": "https://img.example/run.jpg",
            "created_at": t(80),
        },
    ])
    gateway.seed(POSTS, [
        {"id": "post-1", "trainer_id": provider.id, "image_url": "https://img.example/1.jpg", "caption": "Leg day", "created_at": t(60)},
        {"id": "post-2", "trainer_id": other_provider.id, "image_url": "https://img.example/2.jpg", "caption": "Tempo run", "created_at": t(30)},
        {"id": "post-3", "trainer_id": "ex-trainer", "image_url": "https://img.example/3.jpg", "caption": "Old news", "created_at": t(10)},
    ])
    gateway.seed(LIKES, [
        {"id": "like-1", "post_id": "post-1", "user_id": other_consumer.id, "created_at": t(50)},
    ])
    gateway.seed(COMMENTS, [
        {"id": "comment-1", "post_id": "post-1", "user_id": other_consumer.id, "content": "Great form", "created_at": t(45)},
        {"id": "comment-2", "post_id": "post-1", "user_id": provider.id, "content": "Thanks!", "created_at": t(44)},
        {"id": "comment-3", "post_id": "post-1", "user_id": other_consumer.id, "content": "Sets?", "created_at": t(43)},
    ])
    return gateway
