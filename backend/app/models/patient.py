from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.medication import Medication
    from app.models.pharmacy import Pharmacy
    from app.models.sync import PatientPharmacySync


class Patient(Base, TimestampMixin):
    """Patient demographics and contact details owned by the adherence app.

    Read-only to the pharmacy sync services.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(
        String(20), nullable=True, comment="M, F, or free text from intake"
    )

    phone1: Mapped[str | None] = mapped_column(
        String(50), nullable=True, comment="Primary (cell) number"
    )
    phone2: Mapped[str | None] = mapped_column(
        String(50), nullable=True, comment="Secondary (home) number"
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    street1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    street2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), default="US", nullable=True)

    assigned_pharmacy_id: Mapped[int | None] = mapped_column(
        ForeignKey("pharmacies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    assigned_pharmacy: Mapped[Optional["Pharmacy"]] = relationship(
        back_populates="patients"
    )
    medications: Mapped[list["Medication"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )
    pharmacy_sync: Mapped[Optional["PatientPharmacySync"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan", uselist=False
    )

    __table_args__ = (
        Index("ix_patients_last_first", "last_name", "first_name"),
    )

    @property
    def full_name(self) -> str:
        """Return the patient's full name."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.full_name}')>"
