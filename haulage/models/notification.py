from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from enum import Enum

class NotificationType(str, Enum):
    ACHIEVEMENT = "achievement"
    FOLLOW = "follow"
    MESSAGE = "message"
    ALERT = "alert"
    MILESTONE = "milestone"
    SYSTEM = "system"

class Notification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    type: NotificationType
    title: str
    message: str
    icon: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    read: bool = False
    action_url: Optional[str] = Field(default=None, alias="actionUrl")
    created_at: int = Field(alias="createdAt")  # epoch ms
    expires_at: Optional[int] = Field(default=None, alias="expiresAt")  # epoch ms

    def is_expired(self, now_ms: int, inclusive: bool = False) -> bool:
        """Past expiry; with ``inclusive`` the expiry instant itself counts"""
        if self.expires_at is None:
            return False
        return now_ms >= self.expires_at if inclusive else now_ms > self.expires_at
