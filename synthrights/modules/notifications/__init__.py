"""Owner notifications for certificate events."""

from synthrights.modules.notifications.service import NotificationService
from synthrights.modules.notifications.templates import (
    NotificationTemplate,
    build_certificate_issued_notification,
    build_certificate_revoked_notification,
)

__all__ = [
    "NotificationService",
    "NotificationTemplate",
    "build_certificate_issued_notification",
    "build_certificate_revoked_notification",
]
