from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.patient import Patient

MEDICATION_STATUSES = ("active", "discontinued")


class Medication(Base, TimestampMixin):
    """Medication on a patient's adherence schedule."""

    __tablename__ = "medications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    strength: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    format: Mapped[str] = mapped_column(
        String(50), nullable=False, default="", comment="e.g., tablet, capsule"
    )
    dose_count: Mapped[int] = mapped_column(default=1, nullable=False)
    quantity: Mapped[int] = mapped_column(default=30, nullable=False)
    frequency: Mapped[int] = mapped_column(
        default=1, nullable=False, comment="Doses per day"
    )

    rx_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rx_filled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    rx_refills: Mapped[int] = mapped_column(default=0, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", comment="active|discontinued"
    )
    ndc_id: Mapped[str | None] = mapped_column(
        String(50), nullable=True, index=True, comment="External drug code (NDC)"
    )

    patient: Mapped["Patient"] = relationship(back_populates="medications")

    __table_args__ = (
        Index("ix_medications_patient_status", "patient_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Medication(id={self.id}, name='{self.name}', status={self.status})>"
