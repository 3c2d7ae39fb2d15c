from app.models.base import Base, TimestampMixin
from app.models.medication import MEDICATION_STATUSES, Medication
from app.models.patient import Patient
from app.models.pharmacy import Pharmacy
from app.models.sync import SYNC_STATUSES, PatientPharmacySync

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Core Models
    "Patient",
    "Pharmacy",
    "Medication",
    "PatientPharmacySync",
    # Constants
    "MEDICATION_STATUSES",
    "SYNC_STATUSES",
]
