"""Pure transforms between internal records and the pharmacy platform's schema.

Nothing here performs I/O. Internal records are read by attribute, so ORM
instances and plain namespaces both work. External payloads are plain dicts.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

DEFAULT_GENDER = "M"
VALID_GENDERS = frozenset({"M", "F"})
DEFAULT_DELIVERY_METHOD = "Pick Up"
DEFAULT_NOTIFY_METHOD = "Text"
DEFAULT_RACE = "Unknown"
DEFAULT_COUNTRY = "US"
ADDRESS_TYPE = "home"

DEFAULT_QUANTITY = 30
DEFAULT_FREQUENCY = 1
DEFAULT_DOSE_COUNT = 1
ACTIVE_EXTERNAL_STATUSES = frozenset({"active", "filled"})

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def clean_phone(value: Any) -> str:
    """Strip everything but digits."""
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def normalize_gender(value: Any) -> str:
    """Return ``M`` or ``F``; anything else, including absence, becomes ``M``."""
    candidate = (_text(value) or "").upper()
    return candidate if candidate in VALID_GENDERS else DEFAULT_GENDER


def parse_date_of_birth(value: Any) -> date | None:
    """Parse a calendar date, returning ``None`` when it is absent or invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value)
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS[1:]:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _phone_entries(patient: Any) -> list[dict[str, str]]:
    entries: list[dict[str, str]] = []
    for attr, phone_type in (("phone1", "cell"), ("phone2", "home")):
        number = clean_phone(getattr(patient, attr, None))
        if number:
            entries.append({"phone_type": phone_type, "number": number})
    return entries


def _address_entries(patient: Any) -> list[dict[str, str]]:
    street = _text(getattr(patient, "street1", None))
    city = _text(getattr(patient, "city", None))
    state = _text(getattr(patient, "state", None))
    postal_code = _text(getattr(patient, "postal_code", None))
    if not (street and city and state and postal_code):
        return []
    return [
        {
            "street": street,
            "city": city,
            "state": state,
            "zip": postal_code,
            "type_": ADDRESS_TYPE,
        }
    ]


def patient_to_external(
    patient: Any,
    *,
    delivery_method: str = DEFAULT_DELIVERY_METHOD,
    notify_method: str = DEFAULT_NOTIFY_METHOD,
    race: str = DEFAULT_RACE,
) -> dict[str, Any]:
    """Build the ``POST /patients`` body for an internal patient record."""
    dob = parse_date_of_birth(getattr(patient, "date_of_birth", None))
    return {
        "patient": {
            "first_name": _text(getattr(patient, "first_name", None)),
            "last_name": _text(getattr(patient, "last_name", None)),
            "dob": dob.isoformat() if dob else None,
            "gender": normalize_gender(getattr(patient, "gender", None)),
            "delivery_method": delivery_method,
            "notify_method": notify_method,
            "race": race,
        },
        "phone_numbers": _phone_entries(patient),
        "addresses": _address_entries(patient),
        "allergies": [],
    }


def external_to_patient(payload: dict[str, Any]) -> dict[str, Any]:
    """Map an external patient back to internal field names.

    Accepts both the nested request shape (``{"patient": {...}, ...}``) and the
    flat camelCase records the platform lists. Only fields that carry a value
    are returned.
    """
    core = payload.get("patient") if isinstance(payload.get("patient"), dict) else payload

    phones: dict[str, str] = {}
    numbers = payload.get("phone_numbers")
    if isinstance(numbers, list):
        for entry in numbers:
            if not isinstance(entry, dict):
                continue
            number = clean_phone(entry.get("number"))
            phone_type = (_text(entry.get("phone_type")) or "cell").lower()
            if number:
                phones.setdefault(phone_type, number)
    flat_phone = clean_phone(_first(core, "phone", "phoneNumber"))
    if flat_phone:
        phones.setdefault("cell", flat_phone)

    address: dict[str, Any] = {}
    addresses = payload.get("addresses")
    if isinstance(addresses, list) and addresses and isinstance(addresses[0], dict):
        address = addresses[0]
    elif isinstance(core.get("address"), dict):
        address = core["address"]

    gender = _text(core.get("gender"))
    mapped: dict[str, Any] = {
        "first_name": _text(_first(core, "first_name", "firstName")),
        "last_name": _text(_first(core, "last_name", "lastName")),
        "date_of_birth": parse_date_of_birth(_first(core, "dob", "dateOfBirth")),
        "gender": normalize_gender(gender) if gender else None,
        "email": _text(core.get("email")),
        "phone1": phones.get("cell"),
        "phone2": phones.get("home"),
        "street1": _text(_first(address, "street", "street1")),
        "street2": _text(address.get("street2")),
        "city": _text(address.get("city")),
        "state": _text(address.get("state")),
        "postal_code": _text(_first(address, "zip", "postalCode")),
    }
    if address:
        mapped["country"] = _text(address.get("country")) or DEFAULT_COUNTRY
    return {key: value for key, value in mapped.items() if value is not None}


def external_drug_code(payload: dict[str, Any]) -> str | None:
    return _text(_first(payload, "ndc", "drugCode", "drug_code"))


def map_medication_status(status: Any) -> str:
    normalized = (_text(status) or "").lower()
    return "active" if normalized in ACTIVE_EXTERNAL_STATUSES else "discontinued"


def external_to_medication(payload: dict[str, Any], patient_id: int) -> dict[str, Any]:
    """Map one external medication to internal medication columns.

    Raises:
        ValueError: when the external record has no medication name.
    """
    name = _text(payload.get("name"))
    if not name:
        raise ValueError("medication name is missing")
    return {
        "patient_id": patient_id,
        "name": name,
        "strength": _text(payload.get("strength")) or "",
        "format": _text(payload.get("format")) or "",
        "dose_count": DEFAULT_DOSE_COUNT,
        "quantity": _positive_int(payload.get("quantity"), DEFAULT_QUANTITY),
        "frequency": _positive_int(payload.get("frequency"), DEFAULT_FREQUENCY),
        "rx_number": _text(_first(payload, "rxNumber", "rx_number")),
        "rx_filled_date": parse_date_of_birth(_first(payload, "rxFilledDate", "rx_filled_date")),
        "rx_refills": _positive_int(_first(payload, "rxRefills", "rx_refills"), 0),
        "status": map_medication_status(payload.get("status")),
        "ndc_id": external_drug_code(payload),
    }


def _id_at(*path: str) -> Callable[[Any], str | None]:
    def extract(body: Any) -> str | None:
        node = body
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        if isinstance(node, bool) or node is None:
            return None
        return _text(node)

    return extract


# Tried in order; the platform does not use one consistent field name.
PATIENT_ID_EXTRACTORS: tuple[Callable[[Any], str | None], ...] = (
    _id_at("id"),
    _id_at("patient_id"),
    _id_at("patientId"),
    _id_at("data", "id"),
)


def extract_external_patient_id(body: Any) -> str | None:
    """Return the first id any extractor finds in a create-patient response."""
    for extractor in PATIENT_ID_EXTRACTORS:
        patient_id = extractor(body)
        if patient_id:
            return patient_id
    return None
