"""Storage account management and blob data-plane helpers."""

from .accounts import (
    StorageAccountDescriptor,
    create_storage_account,
    get_storage_account_key,
    get_storage_accounts_client,
    storage_account_exists,
)
from .dataplane import build_container_url, get_dataplane_url
from .lro import OperationState, ProvisioningOperation
from .retry import create_storage_account_with_retry
from .upload import ensure_container, upload_data_to_container

__all__ = [
    "OperationState",
    "ProvisioningOperation",
    "StorageAccountDescriptor",
    "build_container_url",
    "create_storage_account",
    "create_storage_account_with_retry",
    "ensure_container",
    "get_dataplane_url",
    "get_storage_account_key",
    "get_storage_accounts_client",
    "storage_account_exists",
    "upload_data_to_container",
]
