from fastapi import APIRouter, Depends, HTTPException, Request, Query, status, WebSocket, WebSocketDisconnect
import json
import logging

from haulage.config import settings
from haulage.schemas.notification_schema import (
    NotificationCreate,
    NotificationUpdate,
    NotificationUserRequest,
    NotificationListResponse,
    NotificationCreateResponse,
    NotificationActionResponse
)
from haulage.services.notification_service import NotificationManager, get_notification_manager
from haulage.utils.rate_limit import limiter
from haulage.websocket.manager import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("", response_model=NotificationListResponse)
@limiter.limit(settings.READ_RATE_LIMIT)
async def get_notifications(
    request: Request,
    user_id: str = Query(..., alias="userId", min_length=1),
    unread_only: bool = Query(False, alias="unreadOnly"),
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Get a user's notifications, newest first"""
    try:
        return NotificationListResponse(
            notifications=manager.get(user_id, unread_only=unread_only),
            unread_count=manager.unread_count(user_id),
            timestamp=manager.now_ms()
        )
    except Exception as e:
        logger.error(f"Error fetching notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch notifications"
        )

@router.post("", response_model=NotificationCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Create a notification and push it to the user's open sockets"""
    try:
        notification = manager.create(
            user_id=payload.user_id,
            type=payload.type,
            title=payload.title,
            message=payload.message,
            icon=payload.icon,
            data=payload.data,
            action_url=payload.action_url,
            expires_in=payload.expires_in
        )

        await ws_manager.send_personal_notification(
            payload.user_id,
            notification.model_dump(mode="json", by_alias=True)
        )

        return NotificationCreateResponse(notification=notification)

    except Exception as e:
        logger.error(f"Error creating notification: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create notification"
        )

@router.put("", response_model=NotificationActionResponse, response_model_exclude_none=True)
async def update_notification(
    payload: NotificationUpdate,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Mark a notification as read or delete it"""
    if payload.action == "read":
        found = manager.mark_as_read(payload.user_id, payload.notification_id)
    else:
        found = manager.delete(payload.user_id, payload.notification_id)

    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    return NotificationActionResponse(unread_count=manager.unread_count(payload.user_id))

@router.post("/read-all", response_model=NotificationActionResponse)
async def mark_all_notifications_read(
    payload: NotificationUserRequest,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Mark every notification of a user as read"""
    updated = manager.mark_all_as_read(payload.user_id)
    logger.info(f"Marked {updated} notifications as read for user {payload.user_id}")

    return NotificationActionResponse(
        unread_count=manager.unread_count(payload.user_id),
        updated=updated
    )

@router.post("/{notification_id}/read", response_model=NotificationActionResponse, response_model_exclude_none=True)
async def mark_notification_read(
    notification_id: str,
    payload: NotificationUserRequest,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Mark a notification as read"""
    if not manager.mark_as_read(payload.user_id, notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    return NotificationActionResponse(unread_count=manager.unread_count(payload.user_id))

@router.delete("/{notification_id}", response_model=NotificationActionResponse, response_model_exclude_none=True)
async def delete_notification(
    notification_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    manager: NotificationManager = Depends(get_notification_manager)
):
    """Delete a notification"""
    if not manager.delete(user_id, notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    return NotificationActionResponse(unread_count=manager.unread_count(user_id))

@router.websocket("/ws/{user_id}")
async def websocket_notifications(
    websocket: WebSocket,
    user_id: str,
    manager: NotificationManager = Depends(get_notification_manager)
):
    """WebSocket endpoint for real-time notifications"""
    await ws_manager.connect(user_id, websocket)
    try:
        # Send initial unread count
        await websocket.send_text(json.dumps({
            "type": "init",
            "unreadCount": manager.unread_count(user_id)
        }))

        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))

    except WebSocketDisconnect:
        pass
    finally:
        await ws_manager.disconnect(user_id, websocket)
