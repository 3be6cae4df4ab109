# stylistbook/models.py
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, DateTime, Enum, ForeignKey, Boolean, Text, JSON, UniqueConstraint
from datetime import datetime, timezone
from .database import Base
from .engine.lifecycle import AppointmentStatus, NotificationStage
from .engine.sweep import NotificationKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Provider(Base):
    __tablename__ = "providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    # None = usa settings.TIMEZONE
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # {"monday": {"enabled": true, "start": "09:00", "end": "17:00"}, ...}
    working_hours: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    clients = relationship("Client", back_populates="provider", cascade="all, delete-orphan", passive_deletes=True)
    appointments = relationship("Appointment", back_populates="provider", cascade="all, delete-orphan", passive_deletes=True)


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("provider_id", "phone", name="uq_clients_provider_phone"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    provider_id: Mapped[int] = mapped_column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    consent_messages: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    provider = relationship("Provider", back_populates="clients")
    appointments = relationship("Appointment", back_populates="client")


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    provider_id: Mapped[int] = mapped_column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.pending, nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notification_stage: Mapped[NotificationStage] = mapped_column(
        Enum(NotificationStage, name="notification_stage"),
        default=NotificationStage.none, nullable=False,
    )
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    provider = relationship("Provider", back_populates="appointments")
    client = relationship("Client", back_populates="appointments")


class NotificationLog(Base):
    """Historial append-only de avisos de expiración (uno por etapa y cita)."""
    __tablename__ = "notification_log"
    __table_args__ = (
        UniqueConstraint("appointment_id", "stage", name="uq_notification_log_stage"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    appointment_id: Mapped[int] = mapped_column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    stage: Mapped[NotificationKind] = mapped_column(Enum(NotificationKind, name="notification_kind"), nullable=False)
    recipient: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    message: Mapped[str] = mapped_column(Text, default="")
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
