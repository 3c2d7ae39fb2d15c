"""Pydantic schemas for API request/response validation."""

from app.schemas.pharmacy_sync import (
    ConnectionCheckResponse,
    MedicationSyncResponse,
    PatientSyncRequest,
    PatientSyncResponse,
    SyncStatusResponse,
)

__all__ = [
    # Pharmacy sync
    "PatientSyncRequest",
    "PatientSyncResponse",
    "MedicationSyncResponse",
    "SyncStatusResponse",
    "ConnectionCheckResponse",
]
