import logging
import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    handle: str
    owner: str
    content: bytes
    created_at: float = field(default_factory=time.monotonic)


class ArtifactStore:
    """In-memory rendered PDFs, keyed by an unguessable handle.

    Each artifact remembers the user who rendered it; lookups by anyone else
    behave as if the handle did not exist. Entries expire after ``ttl_seconds``
    and once a user holds more than ``max_per_owner`` artifacts their oldest
    ones are dropped. One user's renders never evict another user's.
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        max_per_owner: int = 8,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_per_owner = max_per_owner
        self._clock = clock
        self._items: OrderedDict[str, Artifact] = OrderedDict()

    def __len__(self) -> int:
        return len(self._items)

    def put(self, owner: str, content: bytes) -> Artifact:
        self.evict_expired()

        artifact = Artifact(
            handle=secrets.token_urlsafe(24),
            owner=owner,
            content=content,
            created_at=self._clock(),
        )
        self._items[artifact.handle] = artifact

        owned = [h for h, a in self._items.items() if a.owner == owner]
        for dropped in owned[: max(0, len(owned) - self.max_per_owner)]:
            del self._items[dropped]
            logger.info("User %s holds too many artifacts, dropped %s", owner, dropped)

        return artifact

    def get(self, handle: str, owner: str) -> Artifact | None:
        artifact = self._items.get(handle)
        if artifact is None:
            return None
        if self._is_expired(artifact):
            del self._items[handle]
            return None
        if artifact.owner != owner:
            logger.warning("User %s requested artifact owned by another user", owner)
            return None
        return artifact

    def evict_expired(self) -> int:
        expired = [h for h, a in self._items.items() if self._is_expired(a)]
        for handle in expired:
            del self._items[handle]
        if expired:
            logger.info("Evicted %d expired artifact(s)", len(expired))
        return len(expired)

    def _is_expired(self, artifact: Artifact) -> bool:
        return self._clock() - artifact.created_at >= self.ttl_seconds
