from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PatientSyncRequest(BaseModel):
    """Body for a patient sync; the assigned pharmacy is used when omitted."""

    pharmacy_id: Optional[int] = Field(default=None, ge=1)


class PatientSyncResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    external_patient_id: Optional[str] = None
    external_group_id: Optional[str] = None
    error: Optional[str] = None


class MedicationSyncResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    created: int = 0
    updated: int = 0
    errors: list[str] = Field(default_factory=list)


class SyncStatusResponse(BaseModel):
    """Stored sync state for one patient."""

    model_config = ConfigDict(from_attributes=True)

    patient_id: int
    external_patient_id: Optional[str] = None
    external_group_id: Optional[str] = None
    last_sync_status: str
    synced_at: Optional[datetime] = None
    error_message: Optional[str] = None
    last_medication_sync_at: Optional[datetime] = None


class ConnectionCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ok: bool
    base_url: str
    api_key_configured: bool
    doctor_count: int
    default_doctor_id: Optional[str] = None
    details: str
