"""
trainerhub/tests/test_screens.py

Tests for screen view-state: load status, optimistic toggles, drafts,
stale results after unmount, and the AppShell reacting to identity changes.
"""

import asyncio

import pytest

from trainerhub.features.interactions.transitions import find_item
from trainerhub.features.navigation.router import RouterState, View
from trainerhub.gateway.base import Action
from trainerhub.gateway.schema import COMMENTS, FOLLOWS, LIKES, PLANS, POSTS
from trainerhub.identity.backends import InMemoryAuthBackend
from trainerhub.identity.context import IdentityContext
from trainerhub.models.requests import Credentials, PlanDraft
from trainerhub.screens.base import ScreenStatus
from trainerhub.screens.feed import FeedScreen
from trainerhub.screens.plans import DashboardScreen, PlanScreen
from trainerhub.screens.shell import AppShell
from trainerhub.screens.trainers import DiscoverScreen, TrainerScreen


class Gate:
    """Holds matching queries until ``open()``; ``reached`` fires when one arrives."""

    def __init__(self, gateway, table, action):
        self.reached = asyncio.Event()
        self._opened = asyncio.Event()
        original = gateway.execute

        async def execute(query):
            if query.table == table and query.action == action:
                self.reached.set()
                await self._opened.wait()
            return await original(query)

        gateway.execute = execute

    def open(self):
        self._opened.set()


class TestFeedScreen:
    @pytest.mark.asyncio
    async def test_load_statuses(self, marketplace, consumer):
        screen = FeedScreen(marketplace, consumer)
        assert screen.status == ScreenStatus.LOADING
        await screen.load()
        assert screen.status == ScreenStatus.READY
        assert [p.id for p in screen.items] == ["post-3", "post-2", "post-1"]

        marketplace.fail_next(POSTS)
        await screen.load()
        assert screen.status == ScreenStatus.ERROR
        assert "injected failure" in screen.last_error

    @pytest.mark.asyncio
    async def test_empty_feed(self, gateway, consumer):
        screen = FeedScreen(gateway, consumer)
        await screen.load()
        assert screen.status == ScreenStatus.EMPTY

    @pytest.mark.asyncio
    async def test_second_toggle_ignored_while_in_flight(self, marketplace, consumer):
        screen = FeedScreen(marketplace, consumer)
        await screen.load()
        gate = Gate(marketplace, LIKES, Action.INSERT)

        first = asyncio.create_task(screen.toggle_like("post-1"))
        await gate.reached.wait()
        assert find_item(screen.items, "post-1").is_liked
        assert await screen.toggle_like("post-1") is False
        gate.open()

        assert await first is True
        assert len(marketplace.calls_to(LIKES, Action.INSERT)) == 1
        assert find_item(screen.items, "post-1").like_count == 2
        assert len(screen.pending) == 0

    @pytest.mark.asyncio
    async def test_comment_keeps_like_that_settled_meanwhile(self, marketplace, consumer):
        screen = FeedScreen(marketplace, consumer)
        await screen.load()
        screen.set_comment_draft("post-1", "Strong finish")
        gate = Gate(marketplace, COMMENTS, Action.INSERT)

        comment = asyncio.create_task(screen.submit_comment("post-1"))
        await gate.reached.wait()
        assert await screen.toggle_like("post-1") is True
        gate.open()

        assert await comment is True
        item = find_item(screen.items, "post-1")
        assert (item.is_liked, item.like_count, item.comment_count) == (True, 2, 4)
        assert len([r for r in marketplace.rows(LIKES) if r["user_id"] == consumer.id]) == 1

    @pytest.mark.asyncio
    async def test_failed_toggle_rolls_back_and_reports(self, marketplace, consumer):
        screen = FeedScreen(marketplace, consumer)
        await screen.load()
        marketplace.fail_next(LIKES, Action.INSERT)

        assert await screen.toggle_like("post-1") is False
        item = find_item(screen.items, "post-1")
        assert (item.is_liked, item.like_count) == (False, 1)
        assert screen.last_error is not None

    @pytest.mark.asyncio
    async def test_comment_draft_cleared_only_on_success(self, marketplace, consumer):
        screen = FeedScreen(marketplace, consumer)
        await screen.load()
        screen.set_comment_draft("post-2", "Nice pace")

        marketplace.fail_next(COMMENTS, Action.INSERT)
        assert await screen.submit_comment("post-2") is False
        assert screen.comment_drafts["post-2"] == "Nice pace"

        assert await screen.submit_comment("post-2") is True
        assert "post-2" not in screen.comment_drafts
        assert find_item(screen.items, "post-2").comment_count == 1

    @pytest.mark.asyncio
    async def test_publish_prepends(self, marketplace, provider, consumer):
        screen = FeedScreen(marketplace, provider)
        await screen.load()
        assert await screen.publish("https://img.example/new.jpg", "Fresh") is True
        assert screen.items[0].post.caption == "Fresh"

        reader = FeedScreen(marketplace, consumer)
        assert await reader.publish("https://img.example/new.jpg", "Nope") is False
        assert reader.last_error == "Only trainers can publish posts"

    @pytest.mark.asyncio
    async def test_result_after_unmount_is_dropped(self, marketplace, consumer):
        screen = FeedScreen(marketplace, consumer)
        gate = Gate(marketplace, POSTS, Action.SELECT)

        task = asyncio.create_task(screen.load())
        await gate.reached.wait()
        screen.unmount()
        gate.open()
        await task

        assert screen.items == []
        assert screen.status == ScreenStatus.LOADING


class TestPlanScreens:
    @pytest.mark.asyncio
    async def test_subscribe_unlocks(self, marketplace, consumer):
        screen = PlanScreen(marketplace, consumer, "plan-1")
        await screen.load()
        assert screen.plan.is_preview

        assert await screen.subscribe() is True
        assert not screen.plan.is_preview

    @pytest.mark.asyncio
    async def test_missing_plan_is_not_found(self, marketplace, consumer):
        screen = PlanScreen(marketplace, consumer, "nope")
        await screen.load()
        assert screen.status == ScreenStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_dashboard_create_and_delete(self, marketplace, provider):
        screen = DashboardScreen(marketplace, provider)
        await screen.load()
        draft = PlanDraft(title="Core", description="Abs", price="10", duration_days=7)

        plan = await screen.create(draft)
        assert [p.id for p in screen.plans] == [plan.id, "plan-1"]
        assert await screen.delete("plan-1") is True
        assert [p.id for p in screen.plans] == [plan.id]

        assert await screen.create(draft.model_copy(update={"title": ""})) is None
        assert screen.last_error == "Title is required"
        assert len(marketplace.rows(PLANS)) == 2


class TestTrainerScreens:
    @pytest.mark.asyncio
    async def test_discover_follow(self, marketplace, consumer):
        screen = DiscoverScreen(marketplace, consumer)
        await screen.load()
        assert await screen.toggle_follow("trainer-2") is True
        assert find_item(screen.trainers, "trainer-2").is_following
        assert marketplace.rows(FOLLOWS)[0]["trainer_id"] == "trainer-2"

    @pytest.mark.asyncio
    async def test_profile_follow_rollback(self, marketplace, consumer):
        screen = TrainerScreen(marketplace, consumer, "trainer-1")
        await screen.load()
        marketplace.fail_next(FOLLOWS, Action.INSERT)
        assert await screen.toggle_follow() is False
        assert not screen.view.trainer.is_following

    @pytest.mark.asyncio
    async def test_provider_toggle_is_a_no_op(self, marketplace, provider):
        screen = TrainerScreen(marketplace, provider, "trainer-2")
        await screen.load()
        marketplace.reset_calls()
        assert await screen.toggle_follow() is False
        assert marketplace.calls == []


class TestAppShell:
    @pytest.fixture
    def identity(self, marketplace, consumer):
        auth = InMemoryAuthBackend(jwt_secret="shell-secret")
        auth.add_account("casey@example.com", "pw1234", user_id=consumer.id)
        return IdentityContext(auth, marketplace)

    @pytest.mark.asyncio
    async def test_gated_view_renders_nothing(self, identity):
        shell = AppShell(identity, RouterState(view=View.FEED))
        await shell.start()
        assert shell.rendered_view is None
        assert shell.screen is None

    @pytest.mark.asyncio
    async def test_sign_in_leaves_login_and_reloads(self, identity, consumer):
        shell = AppShell(identity)
        await shell.navigate(View.LOGIN)
        assert shell.rendered_view == View.LOGIN and shell.screen is None

        await identity.sign_in(Credentials(email="casey@example.com", password="pw1234"))
        assert shell.state.view == View.LANDING
        assert shell.screen.principal == consumer
        assert shell.screen.status == ScreenStatus.READY

    @pytest.mark.asyncio
    async def test_principal_change_remounts(self, identity):
        shell = AppShell(identity)
        await identity.sign_in(Credentials(email="casey@example.com", password="pw1234"))
        await shell.navigate(View.SOCIAL)
        signed_in_screen = shell.screen
        assert not find_item(signed_in_screen.items, "post-1").is_liked

        await identity.sign_out()
        assert not signed_in_screen.mounted
        assert shell.rendered_view is None

        shell.close()
        await identity.sign_in(Credentials(email="casey@example.com", password="pw1234"))
        assert shell.screen is None
