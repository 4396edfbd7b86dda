"""
Models package for the Armstrong Haulage API
"""
from haulage.models.stats import UserStats, merge_stats
from haulage.models.notification import Notification, NotificationType

__all__ = [
    'UserStats',
    'merge_stats',
    'Notification',
    'NotificationType',
]
