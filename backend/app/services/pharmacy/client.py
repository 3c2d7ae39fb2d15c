"""HTTP transport for the external pharmacy platform.

The platform authenticates callers with a pre-shared key in the ``api-key``
header. Calls are made with ``requests`` on a worker thread so the event loop
stays free while the third-party API is slow. Retry decisions belong to the
caller: ``send`` never retries, ``send_with_retry`` applies a ``RetryPolicy``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar
from urllib.parse import quote

import requests

from app.config import Settings, settings
from app.services.pharmacy.errors import (
    PharmacyAuthError,
    PharmacyRequestError,
    PharmacySyncError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BODY_SNIPPET_CHARS = 400


@dataclass(frozen=True)
class PharmacyClientConfig:
    """Resolved runtime configuration for the pharmacy API endpoint."""

    base_url: str
    api_key: str | None
    referer: str
    timeout_seconds: float = 30.0
    verify_ssl: bool = True
    default_doctor_id: str | None = None

    @classmethod
    def from_settings(cls, app_settings: Settings | None = None) -> PharmacyClientConfig:
        source = app_settings or settings
        return cls(
            base_url=source.pharmacy_api_base_url.rstrip("/"),
            api_key=source.pharmacy_api_key,
            referer=source.pharmacy_api_referer,
            timeout_seconds=source.pharmacy_request_timeout_seconds,
            verify_ssl=source.pharmacy_verify_ssl,
            default_doctor_id=source.pharmacy_default_doctor_id,
        )


def is_retryable_error(exc: BaseException) -> bool:
    """Default transient-vs-fatal classification.

    Network errors, timeouts and non-401 error statuses are transient.
    Authentication and validation failures are not.
    """
    return isinstance(exc, PharmacyRequestError)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: ``base_delay_seconds * 2**attempt`` between attempts."""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    is_retryable: Callable[[BaseException], bool] = is_retryable_error
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds * (2**attempt)

    @classmethod
    def from_settings(cls, app_settings: Settings | None = None) -> RetryPolicy:
        source = app_settings or settings
        return cls(
            max_attempts=source.pharmacy_retry_max_attempts,
            base_delay_seconds=source.pharmacy_retry_base_delay_seconds,
        )


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "request",
) -> T:
    """Run ``fn`` until it succeeds, a non-retryable error occurs, or attempts run out.

    The last error is re-raised unchanged.
    """
    max_attempts = max(1, policy.max_attempts)
    for attempt in range(max_attempts):
        try:
            return await fn()
        except Exception as exc:
            if not policy.is_retryable(exc) or attempt >= max_attempts - 1:
                raise
            wait_seconds = policy.delay_for(attempt)
            logger.warning(
                "Pharmacy %s failed (%s); retry attempt %d/%d after %.2fs",
                description,
                exc,
                attempt + 1,
                max_attempts,
                wait_seconds,
            )
            await policy.sleep(wait_seconds)
    raise AssertionError("unreachable")  # pragma: no cover


def _digits(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def _extract_results(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        payload = payload["results"]
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def _record_phones(record: dict[str, Any]) -> set[str]:
    phones = {_digits(record.get("phone")), _digits(record.get("phoneNumber"))}
    numbers = record.get("phone_numbers")
    if isinstance(numbers, list):
        for entry in numbers:
            if isinstance(entry, dict):
                phones.add(_digits(entry.get("number")))
    phones.discard("")
    return phones


def _record_name(record: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().casefold()
    return ""


def _record_patient_id(record: dict[str, Any]) -> str | None:
    for key in ("patientId", "patient_id", "id"):
        value = record.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


class PharmacyClient:
    """Authenticated client for the pharmacy platform's REST API."""

    def __init__(
        self,
        config: PharmacyClientConfig,
        *,
        retry_policy: RetryPolicy | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy()
        self._session = session or requests.Session()
        if not config.base_url or not config.api_key:
            logger.warning("Pharmacy API endpoint or key not configured")

    def close(self) -> None:
        self._session.close()

    def _build_request_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Referer": self.config.referer,
        }
        if self.config.api_key:
            headers["api-key"] = self.config.api_key
        return headers

    def _request(self, method: str, path: str, body: Any | None) -> Any:
        url = f"{self.config.base_url}/{path.lstrip('/')}"
        try:
            response = self._session.request(
                method,
                url,
                headers=self._build_request_headers(),
                json=body if method in {"POST", "PUT"} else None,
                timeout=self.config.timeout_seconds,
                verify=self.config.verify_ssl,
            )
        except requests.RequestException as exc:
            raise PharmacyRequestError(0, str(exc), path=path) from exc

        snippet = response.text.strip().replace("\n", " ")[:_BODY_SNIPPET_CHARS]
        if response.status_code == 401:
            logger.error("Pharmacy API rejected credentials for %s %s", method, path)
            raise PharmacyAuthError(snippet)
        if not 200 <= response.status_code < 300:
            raise PharmacyRequestError(response.status_code, snippet, path=path)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def send(self, path: str, method: str = "GET", body: Any | None = None) -> Any:
        """Issue one request and return the decoded body.

        JSON bodies are decoded; a non-JSON success body is returned as text and
        an empty one as ``None``.

        Raises:
            PharmacyAuthError: on HTTP 401.
            PharmacyRequestError: on any other non-2xx status or transport failure.
        """
        return await asyncio.to_thread(self._request, method.upper(), path, body)

    async def send_with_retry(
        self,
        path: str,
        method: str = "GET",
        body: Any | None = None,
    ) -> Any:
        return await call_with_retry(
            lambda: self.send(path, method, body),
            self.retry_policy,
            description=f"{method.upper()} {path}",
        )

    async def create_patient(self, payload: dict[str, Any]) -> Any:
        """POST /patients. Returns the raw decoded body; id extraction is the caller's job."""
        return await self.send_with_retry("/patients", "POST", payload)

    async def list_patients(self) -> list[dict[str, Any]]:
        payload = await self.send_with_retry("/patient/getall")
        return _extract_results(payload)

    async def find_patient_id(
        self,
        first_name: str,
        last_name: str,
        phone: str | None = None,
    ) -> str | None:
        """Linear search of the patient list by name, and by phone when one is given."""
        wanted_first = (first_name or "").strip().casefold()
        wanted_last = (last_name or "").strip().casefold()
        wanted_phone = _digits(phone)

        for record in await self.list_patients():
            if _record_name(record, "first_name", "firstName") != wanted_first:
                continue
            if _record_name(record, "last_name", "lastName") != wanted_last:
                continue
            if wanted_phone and wanted_phone not in _record_phones(record):
                continue
            patient_id = _record_patient_id(record)
            if patient_id:
                return patient_id
        return None

    async def list_doctors(self) -> list[dict[str, Any]]:
        payload = await self.send_with_retry("/doctor/GetAll")
        return _extract_results(payload)

    async def get_default_doctor_id(
        self, doctors: list[dict[str, Any]] | None = None
    ) -> str:
        """Prescriber id for requests that need one; the configured id wins.

        Pass an already fetched doctor list to skip the extra request.
        """
        if self.config.default_doctor_id:
            return self.config.default_doctor_id
        if doctors is None:
            doctors = await self.list_doctors()
        if not doctors:
            raise PharmacySyncError("No doctors available in pharmacy system")
        doctor_id = doctors[0].get("doctorId")
        if not doctor_id:
            raise PharmacySyncError("Doctor data missing doctorId field")
        return str(doctor_id)

    async def list_medications(self, external_patient_id: str) -> list[dict[str, Any]]:
        payload = await self.send_with_retry(
            f"/prescription/getall?patientId={quote(str(external_patient_id))}"
        )
        if isinstance(payload, dict) and payload and "results" not in payload:
            return [payload]
        return _extract_results(payload)


__all__ = [
    "PharmacyClient",
    "PharmacyClientConfig",
    "RetryPolicy",
    "call_with_retry",
    "is_retryable_error",
]
