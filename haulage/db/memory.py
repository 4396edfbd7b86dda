import asyncio
import copy
import logging
from typing import Any, Dict, Optional

from haulage.db.repository import (
    GraphRepository,
    FOLLOWING,
    EDGE_DIRECTIONS,
    edge_path,
    split_path,
    stats_path,
    user_path,
)
from haulage.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)

class InMemoryGraphRepository(GraphRepository):
    """Process-local document tree with Realtime Database update semantics.

    Values written through ``write_multi_path`` are applied path by path, in
    order. Writing ``None`` removes the node and prunes any parent left empty,
    so a user whose last edge is removed loses the ``following`` key entirely.

    ``fail_after`` makes the next multi-path write raise ``StoreError`` after
    that many paths were applied, leaving the earlier ones in place.
    """

    name = "memory"

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = data if data is not None else {}
        self.fail_after: Optional[int] = None
        self.write_count = 0

    def _get(self, path: str) -> Any:
        node: Any = self.data
        for part in split_path(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        if not parts:
            raise ValidationError("Cannot write to the root of the store")

        if value is None:
            self._remove(parts)
            return

        node = self.data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = copy.deepcopy(value)

    def _remove(self, parts: list) -> None:
        trail = []
        node: Any = self.data
        for part in parts[:-1]:
            if not isinstance(node, dict) or part not in node:
                return
            trail.append((node, part))
            node = node[part]
        if not isinstance(node, dict):
            return
        node.pop(parts[-1], None)

        # Empty parents do not exist in a hierarchical store
        for parent, key in reversed(trail):
            if parent[key]:
                break
            del parent[key]

    async def user_exists(self, user_id: str) -> bool:
        return bool(self._get(user_path(user_id)))

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        user = self._get(user_path(user_id))
        return copy.deepcopy(user) if user else None

    async def get_user_stats(self, user_id: str) -> Optional[Dict[str, Any]]:
        stats = self._get(stats_path(user_id))
        return copy.deepcopy(stats) if stats else None

    async def edge_exists(self, follower_id: str, following_id: str) -> bool:
        return self._get(edge_path(follower_id, FOLLOWING, following_id)) is not None

    async def get_edges(self, user_id: str, direction: str) -> Dict[str, Any]:
        if direction not in EDGE_DIRECTIONS:
            raise ValidationError(f"Unknown edge direction: {direction}")
        edges = self._get(f"{user_path(user_id)}/{direction}")
        return copy.deepcopy(edges) if isinstance(edges, dict) else {}

    async def write_multi_path(self, updates: Dict[str, Any]) -> None:
        # Yield once so concurrent callers interleave like they would over the network
        await asyncio.sleep(0)

        self.write_count += 1
        for applied, (path, value) in enumerate(updates.items()):
            if self.fail_after is not None and applied >= self.fail_after:
                self.fail_after = None
                logger.error(f"Simulated store failure after {applied} of {len(updates)} paths")
                raise StoreError("Store write failed")
            self._set(path, value)

    async def put_user(self, user_id: str, profile: Dict[str, Any]) -> None:
        existing = self._get(user_path(user_id))
        merged = dict(existing) if isinstance(existing, dict) else {}
        merged.update(copy.deepcopy(profile))
        self._set(user_path(user_id), merged)
