"""Read/write access to the internal records the sync services need."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Medication, Patient, Pharmacy

# Columns the medication sync may write.
MEDICATION_FIELDS = frozenset(
    {
        "name",
        "strength",
        "format",
        "dose_count",
        "quantity",
        "frequency",
        "rx_number",
        "rx_filled_date",
        "rx_refills",
        "status",
        "ndc_id",
    }
)


def _medication_values(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if key in MEDICATION_FIELDS}


class PatientRepository(Protocol):
    async def get_patient(self, patient_id: int):
        ...


class PharmacyRepository(Protocol):
    async def get_pharmacy(self, pharmacy_id: int):
        ...


class MedicationRepository(Protocol):
    async def list_active_medications(self, patient_id: int) -> list:
        ...

    async def insert_medication(self, patient_id: int, values: dict[str, Any]):
        ...

    async def update_medication(self, medication_id: int, values: dict[str, Any]) -> None:
        ...


class SQLPatientRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_patient(self, patient_id: int) -> Optional[Patient]:
        result = await self.db.execute(select(Patient).where(Patient.id == patient_id))
        return result.scalar_one_or_none()


class SQLPharmacyRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_pharmacy(self, pharmacy_id: int) -> Optional[Pharmacy]:
        result = await self.db.execute(select(Pharmacy).where(Pharmacy.id == pharmacy_id))
        return result.scalar_one_or_none()


class SQLMedicationRepository:
    """Medication repository backed by SQLAlchemy."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active_medications(self, patient_id: int) -> list[Medication]:
        result = await self.db.execute(
            select(Medication)
            .where(Medication.patient_id == patient_id)
            .where(Medication.status == "active")
            .order_by(Medication.id)
        )
        return list(result.scalars().all())

    async def insert_medication(self, patient_id: int, values: dict[str, Any]) -> Medication:
        medication = Medication(patient_id=patient_id, **_medication_values(values))
        async with self.db.begin_nested():
            self.db.add(medication)
            await self.db.flush()
        return medication

    async def update_medication(self, medication_id: int, values: dict[str, Any]) -> None:
        async with self.db.begin_nested():
            await self.db.execute(
                update(Medication)
                .where(Medication.id == medication_id)
                .values(**_medication_values(values))
            )


@dataclass
class InMemoryPatient:
    id: int
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    phone1: Optional[str] = None
    phone2: Optional[str] = None
    email: Optional[str] = None
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = "US"
    assigned_pharmacy_id: Optional[int] = None


@dataclass
class InMemoryPharmacy:
    id: int
    name: str
    is_partner: bool = False
    npi: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class InMemoryMedication:
    id: int
    patient_id: int
    name: str
    strength: str = ""
    format: str = ""
    dose_count: int = 1
    quantity: int = 30
    frequency: int = 1
    rx_number: Optional[str] = None
    rx_filled_date: Optional[date] = None
    rx_refills: int = 0
    status: str = "active"
    ndc_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryPatientRepository:
    """In-memory patients and pharmacies for tests and local demos."""

    def __init__(self):
        self.patients: dict[int, InMemoryPatient] = {}
        self.pharmacies: dict[int, InMemoryPharmacy] = {}

    def add_patient(self, patient: InMemoryPatient) -> InMemoryPatient:
        self.patients[patient.id] = patient
        return patient

    def add_pharmacy(self, pharmacy: InMemoryPharmacy) -> InMemoryPharmacy:
        self.pharmacies[pharmacy.id] = pharmacy
        return pharmacy

    async def get_patient(self, patient_id: int) -> Optional[InMemoryPatient]:
        return self.patients.get(patient_id)

    async def get_pharmacy(self, pharmacy_id: int) -> Optional[InMemoryPharmacy]:
        return self.pharmacies.get(pharmacy_id)


class InMemoryMedicationRepository:
    """In-memory medication repository for tests and local demos."""

    def __init__(self):
        self._medications: list[InMemoryMedication] = []
        self._next_id = 1

    def all(self, patient_id: Optional[int] = None) -> list[InMemoryMedication]:
        if patient_id is None:
            return list(self._medications)
        return [m for m in self._medications if m.patient_id == patient_id]

    async def list_active_medications(self, patient_id: int) -> list[InMemoryMedication]:
        return [
            m for m in self._medications if m.patient_id == patient_id and m.status == "active"
        ]

    async def insert_medication(
        self, patient_id: int, values: dict[str, Any]
    ) -> InMemoryMedication:
        values = {**_medication_values(values), "patient_id": patient_id}
        medication = InMemoryMedication(id=self._next_id, **values)
        self._medications.append(medication)
        self._next_id += 1
        return medication

    async def update_medication(self, medication_id: int, values: dict[str, Any]) -> None:
        for medication in self._medications:
            if medication.id == medication_id:
                for name, value in _medication_values(values).items():
                    setattr(medication, name, value)
                return
        raise LookupError(f"Medication {medication_id} not found")

    def clear(self) -> None:
        self._medications.clear()
        self._next_id = 1
