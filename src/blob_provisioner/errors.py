"""Error taxonomy for storage provisioning.

Each error names the step that failed. The underlying provider exception is
always chained (``raise ... from exc``) so callers can inspect it.
"""

from __future__ import annotations


class ProvisioningError(Exception):
    """Base class for every error raised by this package."""


class AuthenticationError(ProvisioningError):
    """The identity provider rejected the request or the certificate was unreadable."""


class AccountCreationError(ProvisioningError):
    pass


class NameUnavailableError(AccountCreationError):
    def __init__(self, account_name: str, reason: str | None = None, message: str | None = None) -> None:
        self.account_name = account_name
        self.reason = reason
        self.provider_message = message
        detail = f"storage account name [{account_name}] not available"
        if reason:
            detail += f" (reason: {reason})"
        if message:
            detail += f": {message}"
        super().__init__(detail)


class SubmissionError(AccountCreationError):
    pass


class OperationTimeoutOrFailureError(AccountCreationError):
    def __init__(self, message: str, *, state: str | None = None) -> None:
        self.state = state
        super().__init__(message)


class KeyRetrievalError(ProvisioningError):
    pass


class KeyListError(KeyRetrievalError):
    pass


class NoKeysAvailableError(KeyRetrievalError):
    pass


class URLConstructionError(ProvisioningError):
    pass


class DataUploadError(ProvisioningError):
    pass


class ContainerCreateError(DataUploadError):
    pass


class FileOpenError(DataUploadError):
    pass


class UploadError(DataUploadError):
    pass


class CancelledError(ProvisioningError):
    """The caller's context was cancelled or its deadline passed."""


__all__ = [
    "AccountCreationError",
    "AuthenticationError",
    "CancelledError",
    "ContainerCreateError",
    "DataUploadError",
    "FileOpenError",
    "KeyListError",
    "KeyRetrievalError",
    "NameUnavailableError",
    "NoKeysAvailableError",
    "OperationTimeoutOrFailureError",
    "ProvisioningError",
    "SubmissionError",
    "URLConstructionError",
    "UploadError",
]
