"""Durable per-patient sync state.

Every write is an upsert keyed on ``patient_id`` that touches only the columns
passed in, so a failed sync can record its status without erasing an external
id learned earlier.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import SYNC_STATUSES, PatientPharmacySync

UPSERT_COLUMNS = frozenset(
    {
        "external_patient_id",
        "external_group_id",
        "last_sync_status",
        "synced_at",
        "error_message",
        "last_medication_sync_at",
    }
)


def _check_values(values: dict[str, Any]) -> None:
    unknown = set(values) - UPSERT_COLUMNS
    if unknown:
        raise ValueError(f"Unknown sync state fields: {', '.join(sorted(unknown))}")
    status = values.get("last_sync_status")
    if status is not None and status not in SYNC_STATUSES:
        raise ValueError(f"Invalid sync status: {status}")


class SyncStateStore(Protocol):
    async def get(self, patient_id: int):
        ...

    async def upsert(self, patient_id: int, **values: Any) -> None:
        ...


class SQLSyncStateStore:
    """Sync state backed by the ``patient_pharmacy_sync`` table (PostgreSQL)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, patient_id: int) -> Optional[PatientPharmacySync]:
        result = await self.db.execute(
            select(PatientPharmacySync).where(
                PatientPharmacySync.patient_id == patient_id
            ).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert(self, patient_id: int, **values: Any) -> None:
        _check_values(values)
        stmt = insert(PatientPharmacySync).values(patient_id=patient_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PatientPharmacySync.patient_id],
            set_={**values, "updated_at": func.now()},
        )
        # Savepoint keeps a failed write from poisoning the caller's transaction.
        async with self.db.begin_nested():
            await self.db.execute(stmt)
        # Committed at once so the state outlives a request that later errors.
        await self.db.commit()


@dataclass
class InMemorySyncRecord:
    patient_id: int
    external_patient_id: Optional[str] = None
    external_group_id: Optional[str] = None
    last_sync_status: str = "pending"
    synced_at: Optional[datetime] = None
    error_message: Optional[str] = None
    last_medication_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InMemorySyncStateStore:
    """In-memory sync state for tests and local demos."""

    def __init__(self):
        self._records: dict[int, InMemorySyncRecord] = {}
        self.writes: list[tuple[int, dict[str, Any]]] = []

    async def get(self, patient_id: int) -> Optional[InMemorySyncRecord]:
        return self._records.get(patient_id)

    async def upsert(self, patient_id: int, **values: Any) -> None:
        _check_values(values)
        now = datetime.now(timezone.utc)
        record = self._records.get(patient_id)
        if record is None:
            record = InMemorySyncRecord(patient_id=patient_id, created_at=now)
            self._records[patient_id] = record
        for name, value in values.items():
            setattr(record, name, value)
        record.updated_at = now
        self.writes.append((patient_id, dict(values)))

    def snapshot(self, patient_id: int) -> dict[str, Any]:
        record = self._records[patient_id]
        return {f.name: getattr(record, f.name) for f in fields(record)}

    def clear(self) -> None:
        self._records.clear()
        self.writes.clear()
