"""Shared API dependencies."""

from collections.abc import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.services.pharmacy.client import PharmacyClient, PharmacyClientConfig, RetryPolicy
from app.services.pharmacy.medication_sync import MedicationSyncService
from app.services.pharmacy.patient_sync import PatientSyncService
from app.services.pharmacy.repositories import (
    PatientRepository,
    SQLMedicationRepository,
    SQLPatientRepository,
    SQLPharmacyRepository,
)
from app.services.pharmacy.sync_state import SQLSyncStateStore, SyncStateStore


async def require_api_key(x_api_key: str | None = Header(None, alias="X-API-Key")):
    """Require the inbound API key when one is configured."""
    if not settings.api_key:
        return None
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return None


async def get_pharmacy_client() -> AsyncIterator[PharmacyClient]:
    client = PharmacyClient(
        PharmacyClientConfig.from_settings(settings),
        retry_policy=RetryPolicy.from_settings(settings),
    )
    try:
        yield client
    finally:
        client.close()


def get_patient_repo(db: AsyncSession = Depends(get_db)) -> PatientRepository:
    return SQLPatientRepository(db)


def get_sync_state_store(db: AsyncSession = Depends(get_db)) -> SyncStateStore:
    return SQLSyncStateStore(db)


def get_patient_sync_service(
    db: AsyncSession = Depends(get_db),
    client: PharmacyClient = Depends(get_pharmacy_client),
) -> PatientSyncService:
    return PatientSyncService(
        client=client,
        patients=SQLPatientRepository(db),
        pharmacies=SQLPharmacyRepository(db),
        sync_state=SQLSyncStateStore(db),
    )


def get_medication_sync_service(
    db: AsyncSession = Depends(get_db),
    client: PharmacyClient = Depends(get_pharmacy_client),
) -> MedicationSyncService:
    return MedicationSyncService(
        client=client,
        medications=SQLMedicationRepository(db),
        sync_state=SQLSyncStateStore(db),
    )
