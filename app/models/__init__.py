from .error_log import ErrorLog
from .notification_preference import NotificationPreference
from .push_subscription import PushSubscription
from .security_log import SecurityLog

__all__ = [
    "ErrorLog",
    "NotificationPreference",
    "PushSubscription",
    "SecurityLog",
]
