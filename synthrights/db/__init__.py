"""Database package."""

from synthrights.db.models import (
    Base,
    BlockchainRecord,
    Certificate,
    CertificateType,
    CreativeWork,
    Notification,
    NotificationType,
    RegistrationStatus,
    User,
    Visibility,
    WorkType,
)
from synthrights.db.session import DbSession, close_db, get_db_session, init_db

__all__ = [
    "DbSession",
    "get_db_session",
    "init_db",
    "close_db",
    "Base",
    "User",
    "CreativeWork",
    "WorkType",
    "RegistrationStatus",
    "Visibility",
    "BlockchainRecord",
    "Certificate",
    "CertificateType",
    "Notification",
    "NotificationType",
]
