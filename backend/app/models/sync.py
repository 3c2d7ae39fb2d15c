"""Per-patient synchronization state with the external pharmacy platform."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.patient import Patient

SYNC_STATUSES = ("pending", "success", "failed")


class PatientPharmacySync(Base, TimestampMixin):
    """One row per patient; written by idempotent upserts keyed on ``patient_id``.

    A ``failed`` row may still hold the external id from an earlier success.
    """

    __tablename__ = "patient_pharmacy_sync"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    external_patient_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True
    )
    external_group_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_sync_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="pending",
        comment="pending|success|failed",
    )
    synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_medication_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    patient: Mapped["Patient"] = relationship(back_populates="pharmacy_sync")

    __table_args__ = (
        Index("ix_patient_pharmacy_sync_status", "last_sync_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<PatientPharmacySync(patient_id={self.patient_id}, "
            f"external_id={self.external_patient_id}, status={self.last_sync_status})>"
        )
