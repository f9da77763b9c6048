"""
SQLAlchemy ORM models for the certificate service.

Users and creative works are owned by the wider platform; this service reads
them and writes blockchain records, certificates and notifications.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSONB,
        list[str]: JSONB,
    }


def _new_id() -> str:
    return str(uuid4())


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# =============================================================================
# Enums
# =============================================================================


class WorkType(str, PyEnum):
    """Media type of a creative work."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"


class RegistrationStatus(str, PyEnum):
    """Whether a work's hash has been registered."""

    PENDING = "pending"
    REGISTERED = "registered"


class Visibility(str, PyEnum):
    """Who may see a work's full details."""

    PRIVATE = "private"
    PUBLIC = "public"
    LIMITED = "limited"


class CertificateType(str, PyEnum):
    """Certificate tier; only standard certificates expire."""

    STANDARD = "standard"
    PREMIUM = "premium"
    ENHANCED = "enhanced"


class NotificationType(str, PyEnum):
    """Notification categories shared with the rest of the platform."""

    VIOLATION_DETECTED = "VIOLATION_DETECTED"
    LICENSE_CREATED = "LICENSE_CREATED"
    LICENSE_EXPIRED = "LICENSE_EXPIRED"
    MARKETPLACE_INTEREST = "MARKETPLACE_INTEREST"
    RIGHTS_REGISTERED = "RIGHTS_REGISTERED"
    SYSTEM = "SYSTEM"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Platform user, keyed by the OIDC subject."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    username: Mapped[str | None] = mapped_column(String(255), unique=True)
    email: Mapped[str | None] = mapped_column(String(320))
    avatar_url: Mapped[str | None] = mapped_column(Text)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    works: Mapped[list["CreativeWork"]] = relationship(back_populates="owner")

    @property
    def display_name(self) -> str:
        return self.name or self.username or "Unknown"


class CreativeWork(Base):
    """A registered piece of content (image, video, audio or text)."""

    __tablename__ = "creative_works"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(255), ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    work_type: Mapped[WorkType] = mapped_column(
        Enum(WorkType, values_callable=_enum_values, name="work_type"),
        nullable=False,
    )
    category: Mapped[str | None] = mapped_column(String(100))
    keywords: Mapped[list[str]] = mapped_column(default=list)
    file_urls: Mapped[list[str]] = mapped_column(default=list)
    thumbnail_url: Mapped[str | None] = mapped_column(Text)
    content_reference: Mapped[str | None] = mapped_column(
        Text,
        comment="Normalized reference to the uploaded content, included in the metadata hash",
    )
    metadata_hash: Mapped[str | None] = mapped_column(String(66))
    registration_status: Mapped[RegistrationStatus] = mapped_column(
        Enum(RegistrationStatus, values_callable=_enum_values, name="registration_status"),
        default=RegistrationStatus.PENDING,
        nullable=False,
    )
    detection_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    ai_training_opt_out: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility, values_callable=_enum_values, name="visibility"),
        default=Visibility.PRIVATE,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    owner: Mapped[User] = relationship(back_populates="works")
    blockchain_record: Mapped["BlockchainRecord | None"] = relationship(
        back_populates="work",
        uselist=False,
        cascade="all, delete-orphan",
    )
    certificates: Mapped[list["Certificate"]] = relationship(
        back_populates="work",
        order_by="Certificate.created_at.desc()",
    )

    __table_args__ = (
        Index("ix_creative_works_owner_id", "owner_id"),
        Index("ix_creative_works_metadata_hash", "metadata_hash"),
    )


class BlockchainRecord(Base):
    """Ledger registration of a work's metadata hash (one per work)."""

    __tablename__ = "blockchain_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    work_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("creative_works.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    transaction_id: Mapped[str] = mapped_column(String(128), nullable=False)
    block_number: Mapped[int | None] = mapped_column(Integer)
    network_name: Mapped[str] = mapped_column(String(100), nullable=False)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    work: Mapped[CreativeWork] = relationship(back_populates="blockchain_record")

    __table_args__ = (Index("ix_blockchain_records_transaction_id", "transaction_id"),)


class Certificate(Base):
    """
    Signed certificate of registration for a work.

    ``metadata_json`` is the exact payload that was signed; revocation only
    adds a ``revocation`` key to it and never touches the signature.
    """

    __tablename__ = "certificates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    work_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("creative_works.id", ondelete="CASCADE"),
        nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(String(255), ForeignKey("users.id"), nullable=False)
    certificate_type: Mapped[CertificateType] = mapped_column(
        Enum(CertificateType, values_callable=_enum_values, name="certificate_type"),
        default=CertificateType.STANDARD,
        nullable=False,
    )
    metadata_json: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)
    signature_algorithm: Mapped[str] = mapped_column(String(32), nullable=False)
    signing_key_id: Mapped[str] = mapped_column(String(255), nullable=False)
    public_url: Mapped[str] = mapped_column(Text, nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    work: Mapped[CreativeWork] = relationship(back_populates="certificates")
    owner: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_certificates_work_id", "work_id"),
        Index("ix_certificates_owner_created", "owner_id", "created_at"),
    )


class Notification(Base):
    """In-app notification for a user."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, values_callable=_enum_values, name="notification_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link_url: Mapped[str | None] = mapped_column(Text)
    metadata_json: Mapped[dict[str, Any]] = mapped_column("metadata", default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at"),)
