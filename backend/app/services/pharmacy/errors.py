"""Error taxonomy for the external pharmacy integration."""


class PharmacySyncError(Exception):
    """Base class for all pharmacy sync failures."""


class SyncValidationError(PharmacySyncError):
    """A precondition failed before any network call was made. Never retried."""


class PharmacyAuthError(PharmacySyncError):
    """The external platform rejected our credentials (HTTP 401). Never retried."""

    def __init__(self, body: str) -> None:
        self.status_code = 401
        self.body = body
        super().__init__(f"Pharmacy API authentication failed (401): {body}")


class PharmacyRequestError(PharmacySyncError):
    """Network failure, timeout, non-2xx or unparseable response.

    ``status_code`` is ``0`` when no HTTP response was received.
    """

    def __init__(self, status_code: int, body: str, *, path: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        self.path = path
        where = f" for {path}" if path else ""
        if status_code:
            message = f"Pharmacy API error {status_code}{where}: {body}"
        else:
            message = f"Pharmacy API request failed{where}: {body}"
        super().__init__(message)
