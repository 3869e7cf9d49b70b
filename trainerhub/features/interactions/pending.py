"""
At most one in-flight toggle per (interaction, entity, principal).
Single-threaded event loop: a plain set is enough, no lock.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Set

from trainerhub.core.errors import ConflictError


class InteractionKind(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    SUBSCRIBE = "subscribe"


@dataclass(frozen=True)
class InteractionKey:
    kind: InteractionKind
    entity_id: str
    principal_id: str


class PendingKeys:
    def __init__(self):
        self._keys: Set[InteractionKey] = set()

    def __contains__(self, key: InteractionKey) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def acquire(self, key: InteractionKey) -> bool:
        """Claim ``key``; False if a mutation for it is already pending."""
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def release(self, key: InteractionKey) -> None:
        self._keys.discard(key)

    @contextmanager
    def hold(self, key: InteractionKey) -> Iterator[InteractionKey]:
        if not self.acquire(key):
            raise ConflictError(f"A {key.kind.value} for {key.entity_id} is already in flight")
        try:
            yield key
        finally:
            self.release(key)
