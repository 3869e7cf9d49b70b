"""
trainerhub/tests/test_interactions.py

Tests for optimistic likes/follows (apply, reconcile, roll back), comments,
subscriptions and the pending-key guard.
"""

import pytest

from trainerhub.core.errors import (
    AuthenticationError,
    ConflictError,
    MutationError,
    PermissionError,
    ValidationError,
)
from trainerhub.core.metrics import mutation_rollbacks_total, mutations_total
from trainerhub.features.feed.reducers import is_consistent
from trainerhub.features.feed.service import load_feed
from trainerhub.features.interactions.pending import InteractionKey, InteractionKind, PendingKeys
from trainerhub.features.interactions.service import (
    TENTATIVE_PREFIX,
    add_comment,
    settle,
    subscribe,
    toggle_follow,
    toggle_like,
)
from trainerhub.features.interactions.transitions import find_item
from trainerhub.features.plans.reducers import present_plan
from trainerhub.features.trainers.service import discover_trainers
from trainerhub.gateway.base import Action
from trainerhub.gateway.schema import COMMENTS, FOLLOWS, LIKES, PLANS, SUBSCRIPTIONS
from trainerhub.models.social import Plan


def summary(feed, post_id):
    item = find_item(feed, post_id)
    return item.is_liked, item.like_count


class TestToggleLike:
    @pytest.mark.asyncio
    async def test_like_applies_before_the_write(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        marketplace.reset_calls()

        mutation = toggle_like(marketplace, feed, consumer, "post-1", was_liked=False)

        assert summary(mutation.items, "post-1") == (True, 2)
        assert marketplace.calls == []
        tentative = [l for l in find_item(mutation.items, "post-1").post.likes if l.principal_id == consumer.id]
        assert tentative[0].id.startswith(TENTATIVE_PREFIX)
        # Original list untouched, other posts are the same objects
        assert summary(feed, "post-1") == (False, 1)
        assert find_item(mutation.items, "post-2") is find_item(feed, "post-2")

    @pytest.mark.asyncio
    async def test_success_reconciles_with_stored_row(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        outcome = await settle(toggle_like(marketplace, feed, consumer, "post-1", was_liked=False))

        assert outcome.ok
        stored = [r for r in marketplace.rows(LIKES) if r["user_id"] == consumer.id]
        assert len(stored) == 1
        mine = [l for l in find_item(outcome.items, "post-1").post.likes if l.principal_id == consumer.id]
        assert [l.id for l in mine] == [stored[0]["id"]]
        assert mutations_total.value({"kind": "like", "outcome": "ok"}) == 1

    @pytest.mark.asyncio
    async def test_like_then_unlike_restores_original(self, marketplace, consumer):
        original = await load_feed(marketplace, consumer)
        liked = (await settle(toggle_like(marketplace, original, consumer, "post-1", False))).items
        unliked = (await settle(toggle_like(marketplace, liked, consumer, "post-1", True))).items

        assert summary(unliked, "post-1") == summary(original, "post-1")
        assert [r["id"] for r in marketplace.rows(LIKES)] == ["like-1"]

    @pytest.mark.asyncio
    async def test_failed_insert_rolls_back(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        marketplace.fail_next(LIKES, Action.INSERT)

        mutation = toggle_like(marketplace, feed, consumer, "post-1", False)
        outcome = await settle(mutation)

        assert isinstance(outcome.error, MutationError)
        assert summary(outcome.items, "post-1") == (False, 1)
        assert all(is_consistent(p) for p in outcome.items)
        assert mutation_rollbacks_total.value({"kind": "like"}) == 1

    @pytest.mark.asyncio
    async def test_failed_delete_restores_removed_likes(self, marketplace, other_consumer):
        feed = await load_feed(marketplace, other_consumer)
        marketplace.fail_next(LIKES, Action.DELETE)

        mutation = toggle_like(marketplace, feed, other_consumer, "post-1", True)
        assert summary(mutation.items, "post-1") == (False, 0)
        outcome = await settle(mutation)

        assert not outcome.ok
        assert summary(outcome.items, "post-1") == (True, 1)
        assert len(marketplace.rows(LIKES)) == 1

    @pytest.mark.asyncio
    async def test_rollback_applies_to_the_current_list(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        marketplace.fail_next(LIKES, Action.INSERT)
        on_post_1 = toggle_like(marketplace, feed, consumer, "post-1", False)
        # A like on another post lands while the first write is in flight
        on_post_2 = toggle_like(marketplace, on_post_1.items, consumer, "post-2", False)
        current = on_post_2.items

        outcome = await settle(on_post_1, current=lambda: current)

        assert summary(outcome.items, "post-1") == (False, 1)
        assert summary(outcome.items, "post-2") == (True, 1)

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        assert toggle_like(marketplace, feed, None, "post-1", False) is None
        assert toggle_like(marketplace, feed, consumer, "missing", False) is None
        assert mutations_total.value({"kind": "like", "outcome": "rejected"}) == 2

    @pytest.mark.asyncio
    async def test_stale_flag_never_inserts_a_second_like(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        liked = (await settle(toggle_like(marketplace, feed, consumer, "post-1", False))).items
        marketplace.reset_calls()

        assert toggle_like(marketplace, liked, consumer, "post-1", False) is None
        assert toggle_like(marketplace, feed, consumer, "post-2", True) is None

        assert marketplace.calls == []
        assert len([r for r in marketplace.rows(LIKES) if r["user_id"] == consumer.id]) == 1
        assert mutations_total.value({"kind": "like", "outcome": "rejected"}) == 2


class TestAddComment:
    @pytest.mark.asyncio
    async def test_appends_the_stored_row(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        updated = await add_comment(marketplace, feed, consumer, "post-2", "  hello  ")

        item = find_item(updated, "post-2")
        assert item.comment_count == 1
        (comment,) = item.post.comments
        assert comment.content == "hello"
        assert comment.principal_id == consumer.id
        assert comment.author.full_name == consumer.full_name
        assert comment.id == marketplace.rows(COMMENTS)[-1]["id"]
        assert is_consistent(item)

    @pytest.mark.asyncio
    async def test_blank_content_makes_no_remote_call(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        marketplace.reset_calls()
        with pytest.raises(ValidationError):
            await add_comment(marketplace, feed, consumer, "post-2", "   \n ")
        assert marketplace.calls == []
        assert find_item(feed, "post-2").comment_count == 0

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        with pytest.raises(AuthenticationError):
            await add_comment(marketplace, feed, None, "post-2", "hi")

    @pytest.mark.asyncio
    async def test_failed_insert_leaves_list_unchanged(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        marketplace.fail_next(COMMENTS, Action.INSERT)
        with pytest.raises(MutationError):
            await add_comment(marketplace, feed, consumer, "post-2", "hi")
        assert find_item(feed, "post-2").comment_count == 0
        assert marketplace.rows(COMMENTS)[-1]["id"] == "comment-3"


    @pytest.mark.asyncio
    async def test_lands_on_the_list_as_it_is_when_the_insert_returns(self, marketplace, consumer):
        feed = await load_feed(marketplace, consumer)
        liked = (await settle(toggle_like(marketplace, feed, consumer, "post-2", False))).items

        updated = await add_comment(marketplace, feed, consumer, "post-2", "hello", current=lambda: liked)

        item = find_item(updated, "post-2")
        assert (item.is_liked, item.like_count, item.comment_count) == (True, 1, 1)
        assert all(is_consistent(p) for p in updated)


class TestToggleFollow:
    @pytest.mark.asyncio
    async def test_consumer_follow_and_unfollow(self, marketplace, consumer):
        trainers = await discover_trainers(marketplace, consumer)
        followed = await settle(toggle_follow(marketplace, trainers, consumer, "trainer-1", False))
        assert find_item(followed.items, "trainer-1").is_following
        assert marketplace.rows(FOLLOWS)[0]["follower_id"] == consumer.id

        unfollowed = await settle(toggle_follow(marketplace, followed.items, consumer, "trainer-1", True))
        assert not find_item(unfollowed.items, "trainer-1").is_following
        assert marketplace.rows(FOLLOWS) == []

    @pytest.mark.asyncio
    async def test_provider_and_self_are_no_ops(self, marketplace, provider, consumer):
        trainers = await discover_trainers(marketplace, provider)
        marketplace.reset_calls()
        assert toggle_follow(marketplace, trainers, provider, "trainer-2", False) is None
        assert toggle_follow(marketplace, trainers, provider, provider.id, False) is None
        assert toggle_follow(marketplace, trainers, None, "trainer-2", False) is None
        self_follow = consumer.model_copy(update={"id": "trainer-2"})
        assert toggle_follow(marketplace, trainers, self_follow, "trainer-2", False) is None
        assert marketplace.calls == []

    @pytest.mark.asyncio
    async def test_stale_flag_never_inserts_a_second_follow(self, marketplace, consumer):
        trainers = await discover_trainers(marketplace, consumer)
        followed = (await settle(toggle_follow(marketplace, trainers, consumer, "trainer-1", False))).items
        marketplace.reset_calls()

        assert toggle_follow(marketplace, followed, consumer, "trainer-1", False) is None
        assert marketplace.calls == []
        assert len(marketplace.rows(FOLLOWS)) == 1

    @pytest.mark.asyncio
    async def test_failed_follow_rolls_back(self, marketplace, consumer):
        trainers = await discover_trainers(marketplace, consumer)
        marketplace.fail_next(FOLLOWS, Action.INSERT)
        mutation = toggle_follow(marketplace, trainers, consumer, "trainer-1", False)
        assert find_item(mutation.items, "trainer-1").is_following

        outcome = await settle(mutation)
        assert not find_item(outcome.items, "trainer-1").is_following
        assert mutation_rollbacks_total.value({"kind": "follow"}) == 1


class TestSubscribe:
    @pytest.fixture
    def preview(self, marketplace):
        return [present_plan(Plan.model_validate(r), False) for r in marketplace.rows(PLANS)]

    @pytest.mark.asyncio
    async def test_unlocks_after_insert(self, marketplace, consumer, preview):
        updated = await subscribe(marketplace, preview, consumer, "plan-1")
        plan = find_item(updated, "plan-1")
        assert plan.is_subscribed and not plan.is_preview
        assert plan.description == "A" * 200
        assert find_item(updated, "plan-2").is_preview
        (row,) = marketplace.rows(SUBSCRIPTIONS)
        assert (row["user_id"], row["plan_id"]) == (consumer.id, "plan-1")

    @pytest.mark.asyncio
    async def test_no_duplicate_check(self, marketplace, consumer, preview):
        await subscribe(marketplace, preview, consumer, "plan-1")
        await subscribe(marketplace, preview, consumer, "plan-1")
        assert len(marketplace.rows(SUBSCRIPTIONS)) == 2

    @pytest.mark.asyncio
    async def test_providers_cannot_subscribe(self, marketplace, provider, preview):
        with pytest.raises(PermissionError):
            await subscribe(marketplace, preview, provider, "plan-2")
        assert marketplace.calls_to(SUBSCRIPTIONS) == []

    @pytest.mark.asyncio
    async def test_failure_keeps_preview(self, marketplace, consumer, preview):
        marketplace.fail_next(SUBSCRIPTIONS)
        with pytest.raises(MutationError):
            await subscribe(marketplace, preview, consumer, "plan-1")
        assert find_item(preview, "plan-1").is_preview


class TestPendingKeys:
    def test_second_acquire_is_refused_until_release(self):
        pending = PendingKeys()
        key = InteractionKey(InteractionKind.LIKE, "post-1", "user-1")
        assert pending.acquire(key)
        assert not pending.acquire(key)
        assert pending.acquire(InteractionKey(InteractionKind.LIKE, "post-2", "user-1"))
        pending.release(key)
        assert key not in pending
        assert len(pending) == 1

    def test_hold_raises_conflict_and_releases(self):
        pending = PendingKeys()
        key = InteractionKey(InteractionKind.FOLLOW, "trainer-1", "user-1")
        with pending.hold(key):
            with pytest.raises(ConflictError):
                with pending.hold(key):
                    pass
        assert key not in pending
