"""In-app notification templates for certificate lifecycle events."""

from dataclasses import dataclass, field
from typing import Any

from synthrights.db.models import NotificationType


@dataclass(slots=True)
class NotificationTemplate:
    """Rendered notification payload."""

    type: NotificationType
    title: str
    message: str
    link_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def build_certificate_issued_notification(
    *,
    certificate_id: str,
    work_id: str,
    work_title: str,
    certificate_type: str,
) -> NotificationTemplate:
    return NotificationTemplate(
        type=NotificationType.RIGHTS_REGISTERED,
        title="Certificate Generated",
        message=f'Certificate for "{work_title}" has been generated successfully.',
        link_url=f"/dashboard/rights-registry/{work_id}/certificate",
        metadata={
            "certificateId": certificate_id,
            "workId": work_id,
            "certificateType": certificate_type,
        },
    )


def build_certificate_revoked_notification(
    *,
    certificate_id: str,
    work_id: str,
    work_title: str,
    reason: str,
) -> NotificationTemplate:
    return NotificationTemplate(
        type=NotificationType.SYSTEM,
        title="Certificate Revoked",
        message=f'Your certificate for "{work_title}" has been revoked.',
        link_url=f"/dashboard/rights-registry/{work_id}",
        metadata={"certificateId": certificate_id, "workId": work_id, "reason": reason},
    )
