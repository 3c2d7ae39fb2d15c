"""Business logic services for the pharmacy sync API.

This package intentionally avoids eager imports to prevent circular import
chains during application startup.
"""

from importlib import import_module

__all__ = [
    # Transport
    "PharmacyClient",
    "RetryPolicy",
    # Orchestrators
    "PatientSyncService",
    "MedicationSyncService",
    # State
    "SQLSyncStateStore",
    "InMemorySyncStateStore",
]

_LAZY_IMPORTS = {
    "PharmacyClient": ("app.services.pharmacy.client", "PharmacyClient"),
    "RetryPolicy": ("app.services.pharmacy.client", "RetryPolicy"),
    "PatientSyncService": ("app.services.pharmacy.patient_sync", "PatientSyncService"),
    "MedicationSyncService": (
        "app.services.pharmacy.medication_sync",
        "MedicationSyncService",
    ),
    "SQLSyncStateStore": ("app.services.pharmacy.sync_state", "SQLSyncStateStore"),
    "InMemorySyncStateStore": (
        "app.services.pharmacy.sync_state",
        "InMemorySyncStateStore",
    ),
}


def __getattr__(name: str):
    target = _LAZY_IMPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    return getattr(import_module(module_name), attr_name)
