from datetime import UTC, date, datetime

import pytest

from app.services.pharmacy.patient_sync import PatientSyncService
from app.services.pharmacy.repositories import InMemoryPatient


@pytest.mark.anyio
async def test_sync_patient_success_records_external_id(
    patient_sync_service, fake_session, sync_state_store
):
    fake_session.reply("POST", "/patients", 201, {"id": "ext-100"})

    result = await patient_sync_service.sync_patient(1, pharmacy_id=1)

    assert result.success is True
    assert result.external_patient_id == "ext-100"
    assert result.external_group_id == "TestGroup"
    assert result.error is None

    sent = fake_session.calls_to("POST", "/patients")[0]["json"]
    assert sent["patient"]["first_name"] == "Ada"
    assert sent["patient"]["dob"] == "1950-12-10"
    assert sent["phone_numbers"] == [{"phone_type": "cell", "number": "5551234567"}]

    record = await sync_state_store.get(1)
    assert record.last_sync_status == "success"
    assert record.external_patient_id == "ext-100"
    assert record.external_group_id == "TestGroup"
    assert record.error_message is None
    assert record.synced_at is not None


@pytest.mark.anyio
async def test_missing_date_of_birth_fails_without_network_calls(
    patient_sync_service, patient_repository, fake_session, sync_state_store
):
    patient_repository.add_patient(
        InMemoryPatient(id=2, first_name="Grace", last_name="Hopper", date_of_birth=None)
    )

    result = await patient_sync_service.sync_patient(2)

    assert result.success is False
    assert result.error_kind == "validation"
    assert "date_of_birth" in result.error
    assert fake_session.calls == []
    record = await sync_state_store.get(2)
    assert record.last_sync_status == "failed"


@pytest.mark.anyio
async def test_invalid_date_of_birth_fails_without_network_calls(
    patient_sync_service, patient_repository, fake_session
):
    patient_repository.add_patient(
        InMemoryPatient(id=3, first_name="Alan", last_name="Turing", date_of_birth="1912-13-40")
    )

    result = await patient_sync_service.sync_patient(3)

    assert result.success is False
    assert "Invalid date of birth" in result.error
    assert fake_session.calls == []


@pytest.mark.anyio
async def test_non_partner_pharmacy_is_rejected_without_network_calls(
    patient_sync_service, fake_session
):
    result = await patient_sync_service.sync_patient(1, pharmacy_id=2)

    assert result.success is False
    assert "partnered pharmacy" in result.error
    assert fake_session.calls == []


@pytest.mark.anyio
async def test_unknown_pharmacy_is_rejected(patient_sync_service, fake_session):
    result = await patient_sync_service.sync_patient(1, pharmacy_id=404)

    assert result.success is False
    assert "partnered pharmacy" in result.error
    assert fake_session.calls == []


@pytest.mark.anyio
async def test_unknown_patient_writes_no_sync_record(
    patient_sync_service, fake_session, sync_state_store
):
    result = await patient_sync_service.sync_patient(999)

    assert result.success is False
    assert result.error_kind == "not_found"
    assert fake_session.calls == []
    assert sync_state_store.writes == []


@pytest.mark.anyio
async def test_missing_id_triggers_exactly_one_fallback_lookup(
    patient_sync_service, fake_session, sync_state_store
):
    fake_session.reply("POST", "/patients", 200, {"message": "Patient created"})
    fake_session.reply(
        "GET",
        "/patient/getall",
        200,
        [{"firstName": "Ada", "lastName": "Lovelace", "phone": "5551234567", "patientId": 77}],
    )

    result = await patient_sync_service.sync_patient(1)

    assert result.success is True
    assert result.external_patient_id == "77"
    assert len(fake_session.calls_to("GET", "/patient/getall")) == 1
    assert (await sync_state_store.get(1)).external_patient_id == "77"


@pytest.mark.anyio
async def test_reconciliation_miss_still_reports_success(
    patient_sync_service, fake_session, sync_state_store
):
    fake_session.reply("POST", "/patients", 200, text="OK")
    fake_session.reply("GET", "/patient/getall", 200, [])

    result = await patient_sync_service.sync_patient(1)

    assert result.success is True
    assert result.external_patient_id is None
    record = await sync_state_store.get(1)
    assert record.last_sync_status == "success"
    assert record.external_patient_id is None


@pytest.mark.anyio
async def test_lookup_failure_after_create_still_reports_success(
    patient_sync_service, fake_session, sync_state_store
):
    fake_session.reply("POST", "/patients", 201, {"message": "Patient created"})
    fake_session.reply("GET", "/patient/getall", 500, text="boom")

    result = await patient_sync_service.sync_patient(1)

    assert result.success is True
    assert result.external_patient_id is None
    assert result.error is None
    assert len(fake_session.calls_to("POST", "/patients")) == 1
    record = await sync_state_store.get(1)
    assert record.last_sync_status == "success"
    assert record.external_patient_id is None
    assert record.error_message is None


@pytest.mark.anyio
async def test_blank_name_fails_without_network_calls(
    patient_sync_service, patient_repository, fake_session, sync_state_store
):
    patient_repository.add_patient(
        InMemoryPatient(id=4, first_name="   ", last_name="Hopper", date_of_birth="1906-12-09")
    )

    result = await patient_sync_service.sync_patient(4)

    assert result.success is False
    assert result.error_kind == "validation"
    assert "first_name" in result.error
    assert fake_session.calls == []
    assert (await sync_state_store.get(4)).last_sync_status == "failed"


@pytest.mark.anyio
async def test_auth_failure_is_recorded_and_not_retried(
    patient_sync_service, fake_session, sync_state_store, sleeps
):
    fake_session.reply("POST", "/patients", 401, text="invalid api key")

    result = await patient_sync_service.sync_patient(1)

    assert result.success is False
    assert result.error_kind == "auth"
    assert "401" in result.error
    assert len(fake_session.calls) == 1
    assert sleeps == []
    record = await sync_state_store.get(1)
    assert record.last_sync_status == "failed"
    assert "invalid api key" in record.error_message


@pytest.mark.anyio
async def test_failed_sync_keeps_previous_external_id(
    patient_sync_service, fake_session, sync_state_store
):
    await sync_state_store.upsert(
        1, external_patient_id="ext-old", last_sync_status="success"
    )
    fake_session.reply("POST", "/patients", 503, text="maintenance")

    result = await patient_sync_service.sync_patient(1)

    assert result.success is False
    assert result.error_kind == "request"
    assert len(fake_session.calls) == 3
    record = await sync_state_store.get(1)
    assert record.last_sync_status == "failed"
    assert record.external_patient_id == "ext-old"
    assert "maintenance" in record.error_message


@pytest.mark.anyio
async def test_repeat_sync_issues_a_new_create(patient_sync_service, fake_session):
    fake_session.reply("POST", "/patients", 201, {"id": "ext-1"})

    await patient_sync_service.sync_patient(1)
    await patient_sync_service.sync_patient(1)

    assert len(fake_session.calls_to("POST", "/patients")) == 2


@pytest.mark.anyio
async def test_success_persistence_failure_still_reports_success(
    pharmacy_client, patient_repository, fake_session, test_settings
):
    class _BrokenStore:
        async def get(self, patient_id):
            return None

        async def upsert(self, patient_id, **values):
            raise RuntimeError("database unavailable")

    service = PatientSyncService(
        client=pharmacy_client,
        patients=patient_repository,
        pharmacies=patient_repository,
        sync_state=_BrokenStore(),
        app_settings=test_settings,
    )
    fake_session.reply("POST", "/patients", 201, {"patientId": "ext-9"})

    result = await service.sync_patient(1)

    assert result.success is True
    assert result.external_patient_id == "ext-9"


@pytest.mark.anyio
async def test_sync_uses_injected_clock(
    pharmacy_client, patient_repository, sync_state_store, fake_session, test_settings
):
    fixed = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
    service = PatientSyncService(
        client=pharmacy_client,
        patients=patient_repository,
        pharmacies=patient_repository,
        sync_state=sync_state_store,
        app_settings=test_settings,
        clock=lambda: fixed,
    )
    fake_session.reply("POST", "/patients", 201, {"data": {"id": "ext-5"}})

    result = await service.sync_patient(1)

    assert result.external_patient_id == "ext-5"
    assert (await sync_state_store.get(1)).synced_at == fixed


@pytest.mark.anyio
async def test_birth_date_as_string_is_accepted(
    patient_sync_service, patient_repository, fake_session
):
    patient_repository.add_patient(
        InMemoryPatient(id=5, first_name="Katherine", last_name="Johnson", date_of_birth="1918-08-26")
    )
    fake_session.reply("POST", "/patients", 201, {"id": "ext-kj"})

    result = await patient_sync_service.sync_patient(5)

    assert result.success is True
    sent = fake_session.calls_to("POST", "/patients")[0]["json"]
    assert sent["patient"]["dob"] == date(1918, 8, 26).isoformat()
    assert sent["addresses"] == []
