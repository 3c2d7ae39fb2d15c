"""Synchronization with the external pharmacy platform."""

from app.services.pharmacy.client import PharmacyClient, PharmacyClientConfig, RetryPolicy
from app.services.pharmacy.connection import ConnectionCheckResult, validate_pharmacy_connection
from app.services.pharmacy.errors import (
    PharmacyAuthError,
    PharmacyRequestError,
    PharmacySyncError,
    SyncValidationError,
)
from app.services.pharmacy.medication_sync import MedicationSyncResult, MedicationSyncService
from app.services.pharmacy.patient_sync import PatientSyncResult, PatientSyncService
from app.services.pharmacy.sync_state import (
    InMemorySyncStateStore,
    SQLSyncStateStore,
    SyncStateStore,
)

__all__ = [
    # Transport
    "PharmacyClient",
    "PharmacyClientConfig",
    "RetryPolicy",
    "ConnectionCheckResult",
    "validate_pharmacy_connection",
    # Errors
    "PharmacySyncError",
    "SyncValidationError",
    "PharmacyAuthError",
    "PharmacyRequestError",
    # Orchestrators
    "PatientSyncService",
    "PatientSyncResult",
    "MedicationSyncService",
    "MedicationSyncResult",
    # State
    "SyncStateStore",
    "SQLSyncStateStore",
    "InMemorySyncStateStore",
]
