"""
Follow graph bookkeeping over the ``users/{id}`` document tree.

Each edge is stored twice (``following`` on the follower, ``followers`` on the
followed user) and each side keeps a redundant counter in ``stats``. Every
mutation is read-then-write with no compare-and-swap:

* two concurrent ``follow`` calls for the same pair can both pass the
  "not already following" check before either write lands, and both succeed;
* concurrent mutations touching the same user can overwrite each other's
  counter, since each writes back ``count + 1`` computed from its own read;
* a store failure part way through the multi-path write can leave an edge
  without its counter or one direction of an edge without the other.

None of this is masked here. Errors propagate to the caller and nothing is
retried or rolled back.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging

from haulage.db.repository import (
    GraphRepository,
    FOLLOWERS,
    FOLLOWING,
    edge_path,
    stats_path,
)
from haulage.exceptions import ConflictError, NotFoundError, ValidationError
from haulage.models.stats import UserStats, merge_stats
from haulage.schemas.follow_schema import (
    EdgeInfo,
    EdgeListResponse,
    FollowResult,
    StatsPayload,
    StatsResponse,
)

logger = logging.getLogger(__name__)

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

# Characters the Realtime Database forbids in keys, plus the path separator
FORBIDDEN_KEY_CHARS = frozenset("/.#$[]")

def clean_id(value: Any, field: str) -> str:
    """Trim an identifier, rejecting anything that is not a single non-blank key"""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required and must be a valid string")

    value = value.strip()
    if FORBIDDEN_KEY_CHARS.intersection(value):
        raise ValidationError(f"{field} contains invalid characters")
    return value

class FollowService:
    def __init__(
        self,
        repository: GraphRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.clock = clock

    async def _require_users(self, *user_ids: str) -> None:
        for user_id in user_ids:
            if not await self.repository.user_exists(user_id):
                if len(user_ids) > 1:
                    raise NotFoundError("One or both users not found")
                raise NotFoundError("User not found")

    async def follow(self, follower_id: Any, following_id: Any) -> FollowResult:
        """Create the edge follower -> following and bump both counters"""
        follower_id = clean_id(follower_id, "followerId")
        following_id = clean_id(following_id, "followingId")

        if follower_id == following_id:
            raise ValidationError("Cannot follow yourself")

        await self._require_users(follower_id, following_id)

        # Race window: nothing stops a concurrent follow between this check and the write
        if await self.repository.edge_exists(follower_id, following_id):
            raise ConflictError("Already following this user")

        followed_stats = await self.repository.get_user_stats(following_id)
        follower_stats = await self.repository.get_user_stats(follower_id)

        new_follower_count = UserStats.from_snapshot(followed_stats).followers + 1
        new_following_count = UserStats.from_snapshot(follower_stats).following + 1

        timestamp = self.clock().isoformat()
        updates = {
            edge_path(follower_id, FOLLOWING, following_id): {"followedAt": timestamp},
            edge_path(following_id, FOLLOWERS, follower_id): {"followedAt": timestamp},
            stats_path(following_id): merge_stats(followed_stats, followers=new_follower_count),
            stats_path(follower_id): merge_stats(follower_stats, following=new_following_count),
        }
        await self.repository.write_multi_path(updates)

        logger.info(f"Created follow: {follower_id} -> {following_id}")

        return FollowResult(
            follower_count=new_follower_count,
            following_count=new_following_count,
        )

    async def unfollow(self, follower_id: Any, following_id: Any) -> FollowResult:
        """Remove the edge follower -> following and decrement both counters"""
        follower_id = clean_id(follower_id, "followerId")
        following_id = clean_id(following_id, "followingId")

        await self._require_users(follower_id, following_id)

        if not await self.repository.edge_exists(follower_id, following_id):
            raise ValidationError("Not following this user")

        followed_stats = await self.repository.get_user_stats(following_id)
        follower_stats = await self.repository.get_user_stats(follower_id)

        new_follower_count = max(0, UserStats.from_snapshot(followed_stats).followers - 1)
        new_following_count = max(0, UserStats.from_snapshot(follower_stats).following - 1)

        updates = {
            edge_path(follower_id, FOLLOWING, following_id): None,
            edge_path(following_id, FOLLOWERS, follower_id): None,
            stats_path(following_id): merge_stats(followed_stats, followers=new_follower_count),
            stats_path(follower_id): merge_stats(follower_stats, following=new_following_count),
        }
        await self.repository.write_multi_path(updates)

        logger.info(f"Deleted follow: {follower_id} -> {following_id}")

        return FollowResult(
            follower_count=new_follower_count,
            following_count=new_following_count,
        )

    async def record_view(self, user_id: Any) -> int:
        """Count one profile view. Repeat views are not deduplicated."""
        user_id = clean_id(user_id, "userId")
        await self._require_users(user_id)

        stats = await self.repository.get_user_stats(user_id)
        new_view_count = UserStats.from_snapshot(stats).views + 1

        await self.repository.write_multi_path({
            stats_path(user_id): merge_stats(stats, views=new_view_count)
        })

        logger.debug(f"Recorded view for {user_id}: {new_view_count}")
        return new_view_count

    async def get_stats(self, user_id: Any, viewer_id: Optional[str] = None) -> StatsResponse:
        """Stats for a user, plus whether ``viewer_id`` follows them"""
        user_id = clean_id(user_id, "userId")
        if isinstance(viewer_id, str) and viewer_id.strip():
            viewer_id = clean_id(viewer_id, "currentUserId")
        else:
            viewer_id = None

        await self._require_users(user_id)
        stats = UserStats.from_snapshot(await self.repository.get_user_stats(user_id))

        is_following = False
        if viewer_id and viewer_id != user_id:
            if not await self.repository.user_exists(viewer_id):
                raise NotFoundError("Current user not found")
            is_following = await self.repository.edge_exists(viewer_id, user_id)

        return StatsResponse(
            user_id=user_id,
            stats=StatsPayload(**stats.model_dump()),
            is_following=is_following,
        )

    async def get_profile(self, user_id: Any) -> Dict[str, Any]:
        """Profile fields with ``id`` set and stats defaulted; edge sets omitted"""
        user_id = clean_id(user_id, "userId")
        profile = await self.repository.get_user(user_id)
        if not profile:
            raise NotFoundError("User not found")

        profile.pop(FOLLOWERS, None)
        profile.pop(FOLLOWING, None)
        if not profile.get("stats"):
            profile["stats"] = UserStats().model_dump()

        return {"id": user_id, **profile}

    async def list_edges(self, user_id: Any, direction: str) -> EdgeListResponse:
        """Followers or followed users, newest edge first"""
        user_id = clean_id(user_id, "userId")
        await self._require_users(user_id)

        edges = await self.repository.get_edges(user_id, direction)
        stats = UserStats.from_snapshot(await self.repository.get_user_stats(user_id))

        users: List[EdgeInfo] = []
        for other_id, edge in edges.items():
            followed_at = edge.get("followedAt") if isinstance(edge, dict) else None
            users.append(EdgeInfo(user_id=other_id, followed_at=followed_at))
        users.sort(key=lambda e: e.followed_at or "", reverse=True)

        # The counter and the list may disagree after a partial write
        total = stats.followers if direction == FOLLOWERS else stats.following

        return EdgeListResponse(
            user_id=user_id,
            total=total,
            count=len(users),
            users=users,
        )
