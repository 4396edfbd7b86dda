import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, MutableMapping, Optional

from haulage.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

# Notification templates
TEMPLATES = {
    NotificationType.FOLLOW: {
        "title": "New Follower",
        "message": "{sender} started following you",
        "icon": "👤",
    },
}

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)

class NotificationManager:
    """In-memory notification store keyed by user id.

    Built once per process. The clock and the backing map are injectable so
    expiry can be tested without real timers. Nothing here is persisted.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = _utc_now,
        store: Optional[MutableMapping[str, List[Notification]]] = None,
    ):
        self.clock = clock
        self.store: MutableMapping[str, List[Notification]] = store if store is not None else {}

    def now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def create(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        icon: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        action_url: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> Notification:
        """Create and store a notification. ``expires_in`` is in milliseconds."""
        now = self.now_ms()
        notification = Notification(
            id=f"{user_id}-{now}-{uuid.uuid4().hex[:9]}",
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            icon=icon,
            data=data,
            read=False,
            action_url=action_url,
            created_at=now,
            expires_at=now + expires_in if expires_in else None,
        )

        self.store.setdefault(user_id, []).append(notification)
        logger.info(f"Created {notification.type.value} notification {notification.id} for {user_id}")
        return notification

    def create_follow_notification(
        self,
        follower_id: str,
        following_id: str,
        follower_name: Optional[str] = None,
    ) -> Optional[Notification]:
        """Tell ``following_id`` they have a new follower"""
        if follower_id == following_id:
            return None

        template = TEMPLATES[NotificationType.FOLLOW]
        return self.create(
            user_id=following_id,
            type=NotificationType.FOLLOW,
            title=template["title"],
            message=template["message"].format(sender=follower_name or follower_id),
            icon=template["icon"],
            data={"followerId": follower_id},
            action_url=f"/profile/{follower_id}",
        )

    def get(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        """Live notifications for a user, newest first"""
        now = self.now_ms()
        notifications = [
            n for n in self.store.get(user_id, [])
            if not n.is_expired(now) and not (unread_only and n.read)
        ]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    def mark_as_read(self, user_id: str, notification_id: str) -> bool:
        for notification in self.store.get(user_id, []):
            if notification.id == notification_id:
                notification.read = True
                return True
        return False

    def mark_all_as_read(self, user_id: str) -> int:
        count = 0
        for notification in self.store.get(user_id, []):
            if not notification.read:
                notification.read = True
                count += 1
        return count

    def delete(self, user_id: str, notification_id: str) -> bool:
        notifications = self.store.get(user_id)
        if not notifications:
            return False

        for index, notification in enumerate(notifications):
            if notification.id == notification_id:
                del notifications[index]
                return True
        return False

    def unread_count(self, user_id: str) -> int:
        return len(self.get(user_id, unread_only=True))

    def clear_expired(self) -> int:
        """Drop expired notifications for every user"""
        now = self.now_ms()
        cleared = 0

        for user_id in list(self.store.keys()):
            notifications = self.store[user_id]
            kept = [n for n in notifications if not n.is_expired(now, inclusive=True)]
            cleared += len(notifications) - len(kept)
            self.store[user_id] = kept

        return cleared

    def broadcast(
        self,
        user_ids: Iterable[str],
        type: NotificationType,
        title: str,
        message: str,
        **options: Any,
    ) -> List[Notification]:
        """Send the same notification to several users"""
        return [self.create(user_id, type, title, message, **options) for user_id in user_ids]


async def cleanup_expired_notifications(manager: NotificationManager, interval: float):
    """Periodically clear expired notifications until cancelled"""
    while True:
        await asyncio.sleep(interval)
        cleared = manager.clear_expired()
        if cleared > 0:
            logger.info(f"Cleared {cleared} expired notifications")


notification_manager = NotificationManager()

def get_notification_manager() -> NotificationManager:
    """Dependency to get the process-wide notification manager"""
    return notification_manager
