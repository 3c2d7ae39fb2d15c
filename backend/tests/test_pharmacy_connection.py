from dataclasses import replace
from types import SimpleNamespace

import pytest

from app.services.pharmacy.client import PharmacyClient
from app.services.pharmacy.connection import validate_pharmacy_connection
from scripts import check_pharmacy_connection


@pytest.mark.anyio
async def test_connection_check_without_key_makes_no_calls(
    pharmacy_config, retry_policy, fake_session
):
    client = PharmacyClient(
        replace(pharmacy_config, api_key=None),
        retry_policy=retry_policy,
        session=fake_session,
    )

    result = await validate_pharmacy_connection(client)

    assert result.ok is False
    assert result.api_key_configured is False
    assert fake_session.calls == []


@pytest.mark.anyio
async def test_connection_check_without_doctors_is_not_ok(pharmacy_client, fake_session):
    fake_session.reply("GET", "/doctor/GetAll", 200, {"results": []})

    result = await validate_pharmacy_connection(pharmacy_client)

    assert result.ok is False
    assert result.doctor_count == 0
    assert "no prescriber" in result.details


@pytest.mark.anyio
async def test_connection_check_reuses_doctor_list_for_default(pharmacy_client, fake_session):
    fake_session.reply("GET", "/doctor/GetAll", 200, [{"name": "Dr. Nobody"}])

    result = await validate_pharmacy_connection(pharmacy_client)

    assert result.ok is False
    assert result.doctor_count == 1
    assert result.default_doctor_id is None
    assert "missing doctorId" in result.details
    assert len(fake_session.calls_to("GET", "/doctor/GetAll")) == 1


@pytest.mark.anyio
async def test_connection_check_prefers_configured_doctor(
    pharmacy_config, retry_policy, fake_session
):
    client = PharmacyClient(
        replace(pharmacy_config, default_doctor_id="fixed-7"),
        retry_policy=retry_policy,
        session=fake_session,
    )
    fake_session.reply("GET", "/doctor/GetAll", 200, [{"doctorId": 1}, {"doctorId": 2}])

    result = await validate_pharmacy_connection(client)

    assert result.ok is True
    assert result.doctor_count == 2
    assert result.default_doctor_id == "fixed-7"


def _response(status_code, payload=None, text=""):
    return SimpleNamespace(
        status_code=status_code,
        text=text,
        json=lambda: payload,
    )


def test_cli_reports_pass(monkeypatch, capsys):
    seen = []

    def _fake_get(url, headers, timeout, verify):
        seen.append((url, headers))
        if url.endswith("/connection"):
            return _response(
                200,
                {
                    "ok": True,
                    "base_url": "https://rx.test",
                    "doctor_count": 3,
                    "default_doctor_id": "31",
                    "details": "Pharmacy connectivity check passed.",
                },
            )
        return _response(
            200,
            {"last_sync_status": "failed", "external_patient_id": "ext-1", "error_message": "timeout"},
        )

    monkeypatch.setattr(check_pharmacy_connection.requests, "get", _fake_get)

    exit_code = check_pharmacy_connection.main(["--api-key", "k", "--patient-id", "5"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "[PASS]" in out
    assert "default_doctor=31" in out
    assert "status=failed" in out
    assert "last error: timeout" in out
    assert seen[0][0] == "http://localhost:8000/api/v1/pharmacy-sync/connection"
    assert seen[0][1]["X-API-Key"] == "k"
    assert seen[1][0].endswith("/pharmacy-sync/patients/5/status")


def test_cli_exit_code_on_http_error(monkeypatch, capsys):
    monkeypatch.setattr(
        check_pharmacy_connection.requests,
        "get",
        lambda url, headers, timeout, verify: _response(401, text="Invalid API key"),
    )

    exit_code = check_pharmacy_connection.main([])

    assert exit_code == 2
    assert "HTTP 401" in capsys.readouterr().err
