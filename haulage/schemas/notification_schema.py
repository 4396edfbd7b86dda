from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional

from haulage.models.notification import Notification, NotificationType

class NotificationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    type: NotificationType
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    icon: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    action_url: Optional[str] = Field(default=None, alias="actionUrl")
    expires_in: Optional[int] = Field(default=None, alias="expiresIn", gt=0)  # ms

class NotificationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_id: str = Field(alias="notificationId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    action: Literal["read", "delete"]

class NotificationUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)

class NotificationListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    notifications: List[Notification]
    unread_count: int = Field(alias="unreadCount")
    timestamp: int

class NotificationCreateResponse(BaseModel):
    success: bool = True
    notification: Notification

class NotificationActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    unread_count: int = Field(alias="unreadCount")
    updated: Optional[int] = None
