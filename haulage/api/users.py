from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from typing import Any, Dict, Optional
import logging

from haulage.config import settings
from haulage.db.repository import GraphRepository, FOLLOWERS, FOLLOWING
from haulage.db.session import get_repository
from haulage.exceptions import HaulageError
from haulage.schemas.follow_schema import (
    FollowRequest,
    FollowResponse,
    ViewResponse,
    StatsResponse,
    EdgeListResponse
)
from haulage.services.follow_service import FollowService
from haulage.services.notification_service import NotificationManager, get_notification_manager
from haulage.utils.rate_limit import limiter
from haulage.websocket.manager import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter()

async def _notify_new_follower(
    repository: GraphRepository,
    manager: NotificationManager,
    follower_id: str,
    following_id: str
):
    """Best effort: a failed notification never fails the follow"""
    try:
        profile = await repository.get_user(follower_id) or {}
        notification = manager.create_follow_notification(
            follower_id=follower_id,
            following_id=following_id,
            follower_name=profile.get("displayName")
        )
        if notification:
            await ws_manager.send_personal_notification(
                following_id,
                notification.model_dump(mode="json", by_alias=True)
            )
    except Exception as e:
        logger.error(f"Error creating follow notification: {e}")

@router.post("/follow", response_model=FollowResponse)
@limiter.limit(settings.FOLLOW_RATE_LIMIT)
async def follow_user(
    request: Request,
    payload: FollowRequest,
    repository: GraphRepository = Depends(get_repository),
    notifications: NotificationManager = Depends(get_notification_manager)
):
    """Follow a user"""
    try:
        follow_service = FollowService(repository)
        result = await follow_service.follow(payload.follower_id, payload.following_id)

        await _notify_new_follower(
            repository,
            notifications,
            payload.follower_id.strip(),
            payload.following_id.strip()
        )

        return FollowResponse(
            message="Followed successfully",
            follower_count=result.follower_count,
            following_count=result.following_count
        )

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error following user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to follow"
        )

@router.post("/unfollow", response_model=FollowResponse)
@limiter.limit(settings.FOLLOW_RATE_LIMIT)
async def unfollow_user(
    request: Request,
    payload: FollowRequest,
    repository: GraphRepository = Depends(get_repository)
):
    """Unfollow a user"""
    try:
        follow_service = FollowService(repository)
        result = await follow_service.unfollow(payload.follower_id, payload.following_id)

        return FollowResponse(
            message="Unfollowed successfully",
            follower_count=result.follower_count,
            following_count=result.following_count
        )

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error unfollowing user: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to unfollow"
        )

@router.post("/view/{user_id}", response_model=ViewResponse)
@limiter.limit(settings.VIEW_RATE_LIMIT)
async def record_view(
    request: Request,
    user_id: str,
    repository: GraphRepository = Depends(get_repository)
):
    """Record a profile view"""
    try:
        follow_service = FollowService(repository)
        views = await follow_service.record_view(user_id)
        return ViewResponse(views=views)

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error recording view: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record view"
        )

@router.get("/stats/{user_id}", response_model=StatsResponse)
@limiter.limit(settings.READ_RATE_LIMIT)
async def get_user_stats(
    request: Request,
    user_id: str,
    current_user_id: Optional[str] = Query(None, alias="currentUserId"),
    repository: GraphRepository = Depends(get_repository)
):
    """Get follow and view statistics for a user"""
    try:
        follow_service = FollowService(repository)
        return await follow_service.get_stats(user_id, viewer_id=current_user_id)

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error fetching stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch stats"
        )

@router.get("/profile/{user_id}", response_model=Dict[str, Any])
@limiter.limit(settings.READ_RATE_LIMIT)
async def get_user_profile(
    request: Request,
    user_id: str,
    repository: GraphRepository = Depends(get_repository)
):
    """Get a user's profile"""
    try:
        follow_service = FollowService(repository)
        return await follow_service.get_profile(user_id)

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error fetching profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch profile"
        )

@router.get("/followers/{user_id}", response_model=EdgeListResponse)
@limiter.limit(settings.READ_RATE_LIMIT)
async def get_followers(
    request: Request,
    user_id: str,
    repository: GraphRepository = Depends(get_repository)
):
    """Get followers of a user"""
    try:
        follow_service = FollowService(repository)
        return await follow_service.list_edges(user_id, FOLLOWERS)

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting followers: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get followers"
        )

@router.get("/following/{user_id}", response_model=EdgeListResponse)
@limiter.limit(settings.READ_RATE_LIMIT)
async def get_following(
    request: Request,
    user_id: str,
    repository: GraphRepository = Depends(get_repository)
):
    """Get users that a user is following"""
    try:
        follow_service = FollowService(repository)
        return await follow_service.list_edges(user_id, FOLLOWING)

    except HaulageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting following: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get following"
        )
