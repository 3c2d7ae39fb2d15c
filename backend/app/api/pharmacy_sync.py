from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import (
    get_medication_sync_service,
    get_patient_repo,
    get_patient_sync_service,
    get_pharmacy_client,
    get_sync_state_store,
)
from app.schemas.pharmacy_sync import (
    ConnectionCheckResponse,
    MedicationSyncResponse,
    PatientSyncRequest,
    PatientSyncResponse,
    SyncStatusResponse,
)
from app.services.pharmacy.client import PharmacyClient
from app.services.pharmacy.connection import validate_pharmacy_connection
from app.services.pharmacy.medication_sync import MedicationSyncService
from app.services.pharmacy.patient_sync import PatientSyncService
from app.services.pharmacy.repositories import PatientRepository
from app.services.pharmacy.sync_state import SyncStateStore

router = APIRouter(prefix="/pharmacy-sync", tags=["Pharmacy Sync"])

_PATIENT_ERROR_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation": status.HTTP_400_BAD_REQUEST,
}
_MEDICATION_ERROR_STATUS = {
    "not_synced": status.HTTP_400_BAD_REQUEST,
}


@router.post("/patients/{patient_id}/sync", response_model=PatientSyncResponse)
async def sync_patient(
    patient_id: int,
    body: PatientSyncRequest | None = None,
    patients: PatientRepository = Depends(get_patient_repo),
    service: PatientSyncService = Depends(get_patient_sync_service),
):
    """Create the patient on the pharmacy platform and record the outcome."""
    patient = await patients.get_patient(patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")

    pharmacy_id = body.pharmacy_id if body else None
    if pharmacy_id is None:
        pharmacy_id = patient.assigned_pharmacy_id
    if pharmacy_id is None:
        raise HTTPException(
            status_code=400, detail="Patient must be assigned to a pharmacy"
        )

    result = await service.sync_patient(patient_id, pharmacy_id=pharmacy_id)
    if not result.success:
        raise HTTPException(
            status_code=_PATIENT_ERROR_STATUS.get(
                result.error_kind, status.HTTP_502_BAD_GATEWAY
            ),
            detail=result.error,
        )
    return PatientSyncResponse.model_validate(result)


@router.post(
    "/patients/{patient_id}/medications/sync",
    response_model=MedicationSyncResponse,
)
async def sync_medications(
    patient_id: int,
    service: MedicationSyncService = Depends(get_medication_sync_service),
):
    """Pull medications for an already-synced patient.

    Per-item failures come back in ``errors`` with a 200; only a pull that
    never started is an HTTP error.
    """
    result = await service.sync_medications_from_external(patient_id)
    if result.error_kind is not None:
        raise HTTPException(
            status_code=_MEDICATION_ERROR_STATUS.get(
                result.error_kind, status.HTTP_502_BAD_GATEWAY
            ),
            detail="; ".join(result.errors),
        )
    return MedicationSyncResponse.model_validate(result)


@router.get("/patients/{patient_id}/status", response_model=SyncStatusResponse)
async def get_sync_status(
    patient_id: int,
    store: SyncStateStore = Depends(get_sync_state_store),
):
    record = await store.get(patient_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No sync record for patient")
    return SyncStatusResponse.model_validate(record)


@router.get("/connection", response_model=ConnectionCheckResponse)
async def check_connection(client: PharmacyClient = Depends(get_pharmacy_client)):
    """Dry-run check of the pharmacy platform credentials and prescriber lookup."""
    result = await validate_pharmacy_connection(client)
    return ConnectionCheckResponse.model_validate(result)
