from pydantic import BaseModel
from typing import Any, Dict, Optional

class UserStats(BaseModel):
    """Denormalized counters kept beside the edge sets.

    Nothing derives these from the edges; they are only as accurate as the
    last multi-path write that touched them.
    """
    followers: int = 0
    following: int = 0
    views: int = 0

    @classmethod
    def from_snapshot(cls, snapshot: Optional[Dict[str, Any]]) -> "UserStats":
        snapshot = snapshot or {}
        return cls(
            followers=snapshot.get("followers") or 0,
            following=snapshot.get("following") or 0,
            views=snapshot.get("views") or 0,
        )


def merge_stats(snapshot: Optional[Dict[str, Any]], **counters: int) -> Dict[str, Any]:
    """Stats object to write back: existing fields kept, counters replaced"""
    merged = dict(UserStats().model_dump())
    merged.update(snapshot or {})
    merged.update(counters)
    return merged
