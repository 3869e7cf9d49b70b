"""
trainerhub/screens/feed.py
Social feed screen: posts, like toggles, comment drafts and post publishing.
"""

from typing import Dict, List, Optional

from trainerhub.core.errors import AppError
from trainerhub.features.feed.reducers import prepend
from trainerhub.features.feed.service import FeedScope, load_feed
from trainerhub.features.interactions.service import add_comment, toggle_like
from trainerhub.features.interactions.transitions import find_item
from trainerhub.features.posts.service import create_post
from trainerhub.gateway.base import DataGateway
from trainerhub.models.display import DisplayPost
from trainerhub.models.social import Principal
from trainerhub.screens.base import Screen


class FeedScreen(Screen):
    name = "feed"

    def __init__(
        self,
        gateway: DataGateway,
        principal: Optional[Principal],
        scope: FeedScope = FeedScope.FOLLOWING_OR_ALL,
        provider_id: Optional[str] = None,
    ):
        super().__init__(gateway, principal)
        self.scope = scope
        self.provider_id = provider_id
        self.items: List[DisplayPost] = []
        self.comment_drafts: Dict[str, str] = {}

    def _set_items(self, items: List[DisplayPost]) -> None:
        self.items = items

    async def load(self) -> None:
        token = self._begin()
        try:
            items = await load_feed(self.gateway, self.principal, self.scope, self.provider_id)
        except AppError as exc:
            self._fail(token, exc)
            return
        if not self.is_current(token):
            return
        self.items = items
        self._ready(bool(items))

    async def toggle_like(self, post_id: str) -> bool:
        item = find_item(self.items, post_id)
        if item is None:
            return False
        mutation = toggle_like(self.gateway, self.items, self.principal, post_id, item.is_liked)
        return await self._run_optimistic(mutation, lambda: self.items, self._set_items)

    def set_comment_draft(self, post_id: str, text: str) -> None:
        self.comment_drafts[post_id] = text

    async def submit_comment(self, post_id: str) -> bool:
        """Post the draft; the draft is cleared only once the insert succeeded."""
        try:
            items = await add_comment(
                self.gateway,
                self.items,
                self.principal,
                post_id,
                self.comment_drafts.get(post_id, ""),
                current=lambda: self.items,
            )
        except AppError as exc:
            self.last_error = exc.message
            return False
        if self.mounted:
            self.items = items
            self.comment_drafts.pop(post_id, None)
        return True

    async def publish(self, image_ref: str, caption: str) -> bool:
        try:
            item = await create_post(self.gateway, self.principal, image_ref, caption)
        except AppError as exc:
            self.last_error = exc.message
            return False
        if self.mounted:
            self.items = prepend(self.items, item)
            self._ready(True)
        return True
