import os
from datetime import UTC, date, datetime

import pytest

from app.services.pharmacy.sync_state import InMemorySyncStateStore

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest.mark.anyio
async def test_upsert_creates_then_updates_single_record():
    store = InMemorySyncStateStore()

    await store.upsert(1, last_sync_status="pending")
    await store.upsert(1, last_sync_status="success", external_patient_id="ext-1")

    record = await store.get(1)
    assert record.last_sync_status == "success"
    assert record.external_patient_id == "ext-1"
    assert len(store.writes) == 2
    assert await store.get(2) is None


@pytest.mark.anyio
async def test_upsert_touches_only_supplied_fields():
    store = InMemorySyncStateStore()
    await store.upsert(
        1,
        external_patient_id="ext-1",
        external_group_id="Group",
        last_sync_status="success",
    )

    await store.upsert(1, last_sync_status="failed", error_message="timeout")

    snapshot = store.snapshot(1)
    assert snapshot["external_patient_id"] == "ext-1"
    assert snapshot["external_group_id"] == "Group"
    assert snapshot["last_sync_status"] == "failed"
    assert snapshot["error_message"] == "timeout"


@pytest.mark.anyio
async def test_upsert_rejects_unknown_fields_and_statuses():
    store = InMemorySyncStateStore()

    with pytest.raises(ValueError, match="Unknown sync state fields"):
        await store.upsert(1, patient_name="Ada")
    with pytest.raises(ValueError, match="Invalid sync status"):
        await store.upsert(1, last_sync_status="done")


@pytest.mark.anyio
@pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")
async def test_sql_store_upsert_round_trip():
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from app.models import Base, Patient
    from app.services.pharmacy.repositories import SQLMedicationRepository
    from app.services.pharmacy.sync_state import SQLSyncStateStore

    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_maker() as session:
            patient = Patient(first_name="Ada", last_name="Lovelace", date_of_birth=date(1950, 12, 10))
            session.add(patient)
            await session.commit()

            store = SQLSyncStateStore(session)
            synced_at = datetime(2026, 10, 1, tzinfo=UTC)
            await store.upsert(
                patient.id,
                external_patient_id="ext-1",
                last_sync_status="success",
                synced_at=synced_at,
            )
            await store.upsert(patient.id, last_sync_status="failed", error_message="boom")

            record = await store.get(patient.id)
            assert record.last_sync_status == "failed"
            assert record.external_patient_id == "ext-1"
            assert record.synced_at == synced_at
            assert record.error_message == "boom"

            medications = SQLMedicationRepository(session)
            created = await medications.insert_medication(
                patient.id, {"name": "Metformin", "strength": "500mg", "bogus": 1}
            )
            await medications.update_medication(created.id, {"quantity": 60})
            await session.commit()
            active = await medications.list_active_medications(patient.id)
            assert [m.name for m in active] == ["Metformin"]
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
