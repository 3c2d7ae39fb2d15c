"""Pull a synced patient's medications from the pharmacy platform."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.logging import bind_sync_patient
from app.services.pharmacy.client import PharmacyClient
from app.services.pharmacy.mapper import external_to_medication
from app.services.pharmacy.repositories import MedicationRepository
from app.services.pharmacy.sync_state import SyncStateStore

logger = logging.getLogger(__name__)

NOT_SYNCED_MESSAGE = "Patient not synced with pharmacy platform"


@dataclass
class MedicationSyncResult:
    """Outcome of a medication pull; per-item failures land in ``errors``.

    ``error_kind`` is ``not_synced`` or ``request`` when the pull never started.
    """

    success: bool
    created: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)
    error_kind: str | None = None


def _fallback_key(name: Any, strength: Any) -> str | None:
    if not name or not strength:
        return None
    return f"{name}_{strength}"


@dataclass
class _MedicationIndex:
    by_code: dict[str, Any] = field(default_factory=dict)
    by_name_strength: dict[str, Any] = field(default_factory=dict)
    ambiguous_keys: set[str] = field(default_factory=set)

    @classmethod
    def build(cls, medications: list[Any]) -> _MedicationIndex:
        index = cls()
        for medication in medications:
            if medication.ndc_id:
                index.by_code.setdefault(medication.ndc_id, medication)
            key = _fallback_key(medication.name, medication.strength)
            if key is None:
                continue
            if key in index.by_name_strength:
                index.ambiguous_keys.add(key)
            else:
                index.by_name_strength[key] = medication
        return index

    def match(self, values: dict[str, Any]) -> Any | None:
        code = values.get("ndc_id")
        if code and code in self.by_code:
            return self.by_code[code]
        key = _fallback_key(values.get("name"), values.get("strength"))
        if key is None or key not in self.by_name_strength:
            return None
        if key in self.ambiguous_keys:
            logger.warning(
                "Ambiguous name+strength match for %r; updating the oldest record", key
            )
        return self.by_name_strength[key]


def _item_label(item: Any, position: int) -> str:
    if isinstance(item, dict) and item.get("name"):
        return str(item["name"])
    return f"item {position}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MedicationSyncService:
    """Reconcile external medications into internal medication records."""

    def __init__(
        self,
        *,
        client: PharmacyClient,
        medications: MedicationRepository,
        sync_state: SyncStateStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.medications = medications
        self.sync_state = sync_state
        self.clock = clock

    async def _touch_sync_time(self, patient_id: int) -> None:
        try:
            await self.sync_state.upsert(patient_id, last_medication_sync_at=self.clock())
        except Exception:
            logger.exception("Could not update last medication sync time")

    async def sync_medications_from_external(self, patient_id: int) -> MedicationSyncResult:
        """Create or update internal medications from the external list.

        Matches on drug code first, then on ``name_strength``. One bad item
        never aborts the rest.
        """
        with bind_sync_patient(patient_id):
            record = await self.sync_state.get(patient_id)
            external_id = getattr(record, "external_patient_id", None)
            if not external_id:
                logger.info("Medication sync skipped: patient not synced")
                return MedicationSyncResult(
                    success=False, errors=[NOT_SYNCED_MESSAGE], error_kind="not_synced"
                )

            try:
                external_medications = await self.client.list_medications(external_id)
                existing = await self.medications.list_active_medications(patient_id)
            except Exception as exc:
                logger.error("Medication sync failed: %s", exc)
                return MedicationSyncResult(
                    success=False, errors=[str(exc)], error_kind="request"
                )

            index = _MedicationIndex.build(existing)
            result = MedicationSyncResult(success=False)
            for position, item in enumerate(external_medications):
                try:
                    values = external_to_medication(item, patient_id)
                    match = index.match(values)
                    if match is not None:
                        await self.medications.update_medication(match.id, values)
                        result.updated += 1
                    else:
                        await self.medications.insert_medication(patient_id, values)
                        result.created += 1
                except Exception as exc:
                    label = _item_label(item, position)
                    logger.warning("Medication %s not synced: %s", label, exc)
                    result.errors.append(f"{label}: {exc}")

            await self._touch_sync_time(patient_id)
            result.success = not result.errors
            logger.info(
                "Medication sync finished (created=%d, updated=%d, errors=%d)",
                result.created,
                result.updated,
                len(result.errors),
            )
            return result
