"""Error taxonomy for provider configuration.

Every failure that can reach an HTTP caller is one of these. Each carries
the status code and a stable ``kind`` string so clients can tell
"never configured" from "configured but unreadable" from "key rejected".
"""

from __future__ import annotations


class ProviderHubError(Exception):
    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ProviderHubError):
    """Malformed input: unknown provider id, empty key, bad settings."""

    status_code = 400
    kind = "validation_error"


class KeyRejectedError(ProviderHubError):
    """The provider refused the key during a live test call."""

    status_code = 400
    kind = "key_rejected"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class NotFoundError(ProviderHubError):
    status_code = 404
    kind = "not_found"


class EncryptionError(ProviderHubError):
    """Encryption is not possible (no password configured)."""

    status_code = 500
    kind = "encryption_unavailable"


class DecryptionError(ProviderHubError):
    """Stored ciphertext cannot be read with the current password.

    Either the password was rotated outside the service or the row is
    corrupted; the key has to be entered again.
    """

    status_code = 409
    kind = "decryption_failed"


class StorageError(ProviderHubError):
    status_code = 503
    kind = "storage_unavailable"


class UpstreamError(ProviderHubError):
    """The provider could not be reached for a non-validation call."""

    status_code = 502
    kind = "provider_unavailable"
