"""
Repository interface for the ``users/{id}`` document tree.

Layout::

    users/{id}/following/{otherId} -> {"followedAt": iso8601}
    users/{id}/followers/{otherId} -> {"followedAt": iso8601}
    users/{id}/stats               -> {"followers": n, "following": n, "views": n}

The backing store has no multi-key transactions. ``write_multi_path`` is one
logical update request, applied best effort; a failure part way through can
leave the two sides of an edge (or an edge and its counter) out of step.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

FOLLOWERS = "followers"
FOLLOWING = "following"
EDGE_DIRECTIONS = (FOLLOWERS, FOLLOWING)


def user_path(user_id: str) -> str:
    return f"users/{user_id}"


def stats_path(user_id: str) -> str:
    return f"users/{user_id}/stats"


def edge_path(user_id: str, direction: str, other_id: str) -> str:
    return f"users/{user_id}/{direction}/{other_id}"


def split_path(path: str) -> list:
    return [part for part in path.strip("/").split("/") if part]


class GraphRepository(ABC):
    """Narrow async view of the store used by the graph service"""

    name: str = "abstract"

    @abstractmethod
    async def user_exists(self, user_id: str) -> bool:
        """True if ``users/{user_id}`` holds any data"""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Full profile subtree, or None"""

    @abstractmethod
    async def get_user_stats(self, user_id: str) -> Optional[Dict[str, Any]]:
        """``users/{user_id}/stats``, or None if it was never written"""

    @abstractmethod
    async def edge_exists(self, follower_id: str, following_id: str) -> bool:
        """True if ``users/{follower_id}/following/{following_id}`` exists"""

    @abstractmethod
    async def get_edges(self, user_id: str, direction: str) -> Dict[str, Any]:
        """The ``followers`` or ``following`` subtree of a user"""

    @abstractmethod
    async def write_multi_path(self, updates: Dict[str, Any]) -> None:
        """Apply one multi-path update. ``None`` values delete the path."""

    @abstractmethod
    async def put_user(self, user_id: str, profile: Dict[str, Any]) -> None:
        """Create a profile or merge fields into an existing one"""

    async def close(self) -> None:
        """Release client resources"""
