from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.patient import Patient


class Pharmacy(Base, TimestampMixin):
    """Dispensing pharmacy a patient can be assigned to."""

    __tablename__ = "pharmacies"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    npi: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_partner: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Eligible for sync with the external pharmacy platform",
    )

    patients: Mapped[list["Patient"]] = relationship(back_populates="assigned_pharmacy")

    def __repr__(self) -> str:
        return f"<Pharmacy(id={self.id}, name='{self.name}', partner={self.is_partner})>"
