"""Persist notifications for certificate owners."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from synthrights.core.logging import get_logger
from synthrights.db.models import Notification
from synthrights.modules.notifications.templates import NotificationTemplate

logger = get_logger(__name__)


class NotificationService:
    """Writes notification rows inside the caller's transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def notify(self, user_id: str, template: NotificationTemplate) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=template.type,
            title=template.title,
            message=template.message,
            link_url=template.link_url,
            metadata_json=dict(template.metadata),
        )
        self._session.add(notification)
        await self._session.flush()
        logger.info(
            "notification_created",
            user_id=user_id,
            notification_type=template.type.value,
        )
        return notification
