from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

class FollowRequest(BaseModel):
    # Left optional so blank or missing ids reach the service and fail as 400
    follower_id: Optional[str] = Field(default=None, alias="followerId")
    following_id: Optional[str] = Field(default=None, alias="followingId")

class FollowResult(BaseModel):
    follower_count: int
    following_count: int

class FollowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    follower_count: int = Field(alias="followerCount")
    following_count: int = Field(alias="followingCount")

class ViewResponse(BaseModel):
    success: bool = True
    message: str = "View recorded"
    views: int

class StatsPayload(BaseModel):
    followers: int = 0
    following: int = 0
    views: int = 0

class StatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    stats: StatsPayload
    is_following: bool = Field(default=False, alias="isFollowing")

class EdgeInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    followed_at: Optional[str] = Field(default=None, alias="followedAt")

class EdgeListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    total: int  # stored counter, not recomputed from the list
    count: int
    users: List[EdgeInfo]
