"""
trainerhub/gateway/schema.py
Table layout of the hosted backend, as far as the client relies on it.
"""

from typing import Dict, Tuple

PROFILES = "profiles"
PLANS = "fitness_plans"
SUBSCRIPTIONS = "subscriptions"
FOLLOWS = "follows"
POSTS = "posts"
LIKES = "likes"
COMMENTS = "comments"

# Columns the backend fills on insert (besides ``id``)
TIMESTAMP_COLUMNS: Dict[str, Tuple[str, ...]] = {
    PROFILES: ("created_at", "updated_at"),
    PLANS: ("created_at", "updated_at"),
    SUBSCRIPTIONS: ("subscribed_at",),
    FOLLOWS: ("followed_at",),
    POSTS: ("created_at", "updated_at"),
    LIKES: ("created_at",),
    COMMENTS: ("created_at", "updated_at"),
}

MANY_TO_ONE = "many_to_one"
ONE_TO_MANY = "one_to_many"

# (parent table, embedded table) -> (kind, foreign key column).
# many_to_one: parent[fk] == embedded.id; one_to_many: embedded[fk] == parent.id
RELATIONSHIPS: Dict[Tuple[str, str], Tuple[str, str]] = {
    (POSTS, PROFILES): (MANY_TO_ONE, "trainer_id"),
    (POSTS, LIKES): (ONE_TO_MANY, "post_id"),
    (POSTS, COMMENTS): (ONE_TO_MANY, "post_id"),
    (LIKES, PROFILES): (MANY_TO_ONE, "user_id"),
    (COMMENTS, PROFILES): (MANY_TO_ONE, "user_id"),
    (PLANS, PROFILES): (MANY_TO_ONE, "trainer_id"),
    (SUBSCRIPTIONS, PLANS): (MANY_TO_ONE, "plan_id"),
    (FOLLOWS, PROFILES): (MANY_TO_ONE, "trainer_id"),
    (PROFILES, PLANS): (ONE_TO_MANY, "trainer_id"),
    (PROFILES, POSTS): (ONE_TO_MANY, "trainer_id"),
}
