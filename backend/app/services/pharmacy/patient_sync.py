"""Create-or-update workflow for pushing one patient to the pharmacy platform."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from app.config import Settings, settings
from app.logging import bind_sync_patient
from app.services.pharmacy.client import PharmacyClient
from app.services.pharmacy.errors import (
    PharmacyAuthError,
    PharmacyRequestError,
    PharmacySyncError,
    SyncValidationError,
)
from app.services.pharmacy.mapper import (
    clean_phone,
    extract_external_patient_id,
    parse_date_of_birth,
    patient_to_external,
)
from app.services.pharmacy.repositories import PatientRepository, PharmacyRepository
from app.services.pharmacy.sync_state import SyncStateStore

logger = logging.getLogger(__name__)

PARTNER_PHARMACY_MESSAGE = "Patient must be assigned to partnered pharmacy"


@dataclass
class PatientSyncResult:
    """Outcome of one ``sync_patient`` call.

    ``error_kind`` is one of ``not_found``, ``validation``, ``auth``,
    ``request`` or ``error`` when ``success`` is false.
    """

    success: bool
    external_patient_id: str | None = None
    external_group_id: str | None = None
    error: str | None = None
    error_kind: str | None = None


def _error_kind(exc: BaseException) -> str:
    if isinstance(exc, SyncValidationError):
        return "validation"
    if isinstance(exc, PharmacyAuthError):
        return "auth"
    if isinstance(exc, PharmacyRequestError):
        return "request"
    return "error"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PatientSyncService:
    """Push an internal patient to the pharmacy platform and record the outcome."""

    def __init__(
        self,
        *,
        client: PharmacyClient,
        patients: PatientRepository,
        pharmacies: PharmacyRepository,
        sync_state: SyncStateStore,
        app_settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        source = app_settings or settings
        self.client = client
        self.patients = patients
        self.pharmacies = pharmacies
        self.sync_state = sync_state
        self.group_name = source.pharmacy_group_name
        self.delivery_method = source.pharmacy_delivery_method
        self.notify_method = source.pharmacy_notify_method
        self.race = source.pharmacy_default_race
        self.clock = clock

    async def _check_pharmacy(self, pharmacy_id: int | None) -> None:
        if pharmacy_id is None:
            return
        pharmacy = await self.pharmacies.get_pharmacy(pharmacy_id)
        if pharmacy is None or not getattr(pharmacy, "is_partner", False):
            raise SyncValidationError(PARTNER_PHARMACY_MESSAGE)

    @staticmethod
    def _check_patient_fields(patient: Any) -> None:
        missing = [
            name
            for name in ("first_name", "last_name", "date_of_birth")
            if not str(getattr(patient, name, None) or "").strip()
        ]
        if missing:
            raise SyncValidationError(
                f"Missing required patient fields: {', '.join(missing)}"
            )
        if parse_date_of_birth(patient.date_of_birth) is None:
            raise SyncValidationError(
                f"Invalid date of birth: {patient.date_of_birth!r}"
            )

    async def _resolve_external_id(self, patient: Any, body: Any) -> str | None:
        external_id = extract_external_patient_id(body)
        if external_id:
            return external_id

        logger.info("Create response carried no patient id; searching patient list")
        phone = clean_phone(patient.phone1) or clean_phone(patient.phone2) or None
        try:
            return await self.client.find_patient_id(
                patient.first_name,
                patient.last_name,
                phone=phone,
            )
        except PharmacySyncError as exc:
            logger.warning("Patient id lookup failed after create: %s", exc)
            return None

    async def _record_failure(self, patient_id: int, message: str) -> None:
        try:
            await self.sync_state.upsert(
                patient_id,
                last_sync_status="failed",
                error_message=message,
            )
        except Exception:
            logger.exception("Could not persist failed sync status")

    async def sync_patient(
        self,
        patient_id: int,
        pharmacy_id: int | None = None,
    ) -> PatientSyncResult:
        """Create the patient on the pharmacy platform.

        Every outcome is returned as a ``PatientSyncResult``; errors never
        propagate. Precondition failures make no network call. Each call
        issues a fresh create request, even for a patient synced before.
        """
        with bind_sync_patient(patient_id):
            patient = await self.patients.get_patient(patient_id)
            if patient is None:
                logger.warning("Sync requested for unknown patient")
                return PatientSyncResult(
                    success=False,
                    error=f"Patient {patient_id} not found",
                    error_kind="not_found",
                )

            try:
                await self._check_pharmacy(pharmacy_id)
                self._check_patient_fields(patient)
            except SyncValidationError as exc:
                logger.warning("Patient sync rejected: %s", exc)
                await self._record_failure(patient_id, str(exc))
                return PatientSyncResult(
                    success=False, error=str(exc), error_kind="validation"
                )

            try:
                payload = patient_to_external(
                    patient,
                    delivery_method=self.delivery_method,
                    notify_method=self.notify_method,
                    race=self.race,
                )
                body = await self.client.create_patient(payload)
                external_id = await self._resolve_external_id(patient, body)
            except Exception as exc:
                logger.error("Patient sync failed: %s", exc)
                await self._record_failure(patient_id, str(exc))
                return PatientSyncResult(
                    success=False, error=str(exc), error_kind=_error_kind(exc)
                )

            if not external_id:
                logger.warning(
                    "Patient created on pharmacy platform but no external id could be resolved"
                )

            try:
                await self.sync_state.upsert(
                    patient_id,
                    external_patient_id=external_id,
                    external_group_id=self.group_name,
                    last_sync_status="success",
                    synced_at=self.clock(),
                    error_message=None,
                )
            except Exception:
                # The external create already happened; report it.
                logger.exception("Could not persist successful sync status")

            logger.info("Patient synced (external_id=%s)", external_id)
            return PatientSyncResult(
                success=True,
                external_patient_id=external_id,
                external_group_id=self.group_name,
            )
