"""Dry-run connectivity check against the pharmacy platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.services.pharmacy.client import PharmacyClient
from app.services.pharmacy.errors import PharmacySyncError

logger = logging.getLogger(__name__)


@dataclass
class ConnectionCheckResult:
    """Dry-run validation result for pharmacy platform connectivity."""

    ok: bool
    base_url: str
    api_key_configured: bool
    doctor_count: int
    default_doctor_id: str | None
    details: str


async def validate_pharmacy_connection(client: PharmacyClient) -> ConnectionCheckResult:
    """Call ``GET /doctor/GetAll`` and resolve the default prescriber without writing anything."""
    config = client.config
    if not config.api_key:
        return ConnectionCheckResult(
            ok=False,
            base_url=config.base_url,
            api_key_configured=False,
            doctor_count=0,
            default_doctor_id=None,
            details="Pharmacy API key is not configured.",
        )

    try:
        doctors = await client.list_doctors()
    except Exception as exc:
        logger.warning("Pharmacy connectivity check failed: %s", exc)
        return ConnectionCheckResult(
            ok=False,
            base_url=config.base_url,
            api_key_configured=True,
            doctor_count=0,
            default_doctor_id=None,
            details=f"Pharmacy connectivity check failed: {exc}",
        )

    try:
        default_doctor_id = await client.get_default_doctor_id(doctors)
    except PharmacySyncError as exc:
        default_doctor_id = None
        details = f"Connected, but no prescriber id is available: {exc}"
    else:
        details = "Pharmacy connectivity check passed."
    return ConnectionCheckResult(
        ok=default_doctor_id is not None,
        base_url=config.base_url,
        api_key_configured=True,
        doctor_count=len(doctors),
        default_doctor_id=default_doctor_id,
        details=details,
    )
