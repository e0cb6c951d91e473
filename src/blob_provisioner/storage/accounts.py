"""Storage account management: client factory, account creation and key retrieval."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.mgmt.core.tools import parse_resource_id
from azure.mgmt.storage import StorageManagementClient
from azure.mgmt.storage.models import (
    Sku,
    StorageAccount,
    StorageAccountCheckNameAvailabilityParameters,
    StorageAccountCreateParameters,
)

from blob_provisioner.context import OperationContext, ensure_context
from blob_provisioner.errors import (
    KeyListError,
    NameUnavailableError,
    NoKeysAvailableError,
    SubmissionError,
)
from blob_provisioner.iam import StaticTokenCredential, get_resource_management_token, management_scope
from blob_provisioner.settings import AccountSettings, PollingSettings
from blob_provisioner.storage.lro import ProvisioningOperation

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Cannot create storage account, reason: "
STORAGE_ACCOUNT_RESOURCE_TYPE = "Microsoft.Storage/storageAccounts"


def _enum_value(value):
    # SDK enums subclass str; str() on them yields "Reason.ALREADY_EXISTS".
    return getattr(value, "value", value)


@dataclass(frozen=True)
class StorageAccountDescriptor:
    """In-memory projection of a provisioned storage account."""

    name: str
    resource_group: str
    location: str
    sku: Optional[str]
    subscription_id: Optional[str]
    id: Optional[str] = None
    provisioning_state: Optional[str] = None
    primary_blob_endpoint: Optional[str] = None

    @classmethod
    def from_account(cls, account: StorageAccount, *, resource_group: str) -> "StorageAccountDescriptor":
        subscription_id = None
        if account.id:
            parts = parse_resource_id(account.id)
            subscription_id = parts.get("subscription")
            resource_group = parts.get("resource_group") or resource_group

        endpoints = getattr(account, "primary_endpoints", None)
        state = getattr(account, "provisioning_state", None)
        return cls(
            name=account.name,
            resource_group=resource_group,
            location=account.location,
            sku=_enum_value(account.sku.name) if account.sku else None,
            subscription_id=subscription_id,
            id=account.id,
            provisioning_state=_enum_value(state),
            primary_blob_endpoint=endpoints.blob if endpoints else None,
        )


def get_storage_accounts_client(
    tenant_id: str,
    client_id: str,
    client_secret: Optional[str],
    arm_endpoint: str,
    cert_path: Optional[str],
    subscription_id: str,
    *,
    authority: Optional[str] = None,
    context: Optional[OperationContext] = None,
) -> StorageManagementClient:
    """Return a StorageManagementClient bound to ``arm_endpoint`` and ``subscription_id``.

    A single bearer token is acquired up front and reused for the client's
    lifetime. ``AuthenticationError`` propagates to the caller.
    """
    token = get_resource_management_token(
        tenant_id,
        client_id,
        client_secret,
        arm_endpoint,
        cert_path,
        authority=authority,
        context=context,
    )
    return StorageManagementClient(
        credential=StaticTokenCredential(token),
        subscription_id=subscription_id,
        base_url=arm_endpoint,
        credential_scopes=[management_scope(arm_endpoint)],
    )


def check_name_availability(
    client: StorageManagementClient,
    account_name: str,
    *,
    context: Optional[OperationContext] = None,
) -> None:
    """Raise NameUnavailableError unless the provider reports ``account_name`` as free."""
    context = ensure_context(context)
    context.check("name availability check")

    try:
        result = client.storage_accounts.check_name_availability(
            StorageAccountCheckNameAvailabilityParameters(name=account_name, type=STORAGE_ACCOUNT_RESOURCE_TYPE),
            **context.call_options(),
        )
    except AzureError as exc:
        raise SubmissionError(f"{ERROR_PREFIX}name availability check failed: {exc}") from exc

    if result.name_available is not True:
        raise NameUnavailableError(
            account_name,
            reason=_enum_value(result.reason),
            message=result.message,
        )


def create_storage_account(
    client: StorageManagementClient,
    account_name: str,
    resource_group: str,
    location: str,
    *,
    settings: Optional[AccountSettings] = None,
    polling: Optional[PollingSettings] = None,
    context: Optional[OperationContext] = None,
) -> StorageAccountDescriptor:
    """Check the name, submit the create request and wait for it to finish.

    Raises:
        NameUnavailableError: the provider reports the name as taken or invalid.
        SubmissionError: the name check or create request was rejected.
        OperationTimeoutOrFailureError: the long-running create failed or the wait timed out.
        CancelledError: ``context`` was cancelled at any point.
    """
    settings = settings or AccountSettings()
    context = ensure_context(context)

    logger.info("checking storage account name account=%s", account_name)
    check_name_availability(client, account_name, context=context)

    context.check("storage account create")
    parameters = StorageAccountCreateParameters(
        sku=Sku(name=settings.sku_name),
        kind=settings.kind,
        location=location,
    )
    logger.info(
        "creating storage account account=%s resource_group=%s location=%s sku=%s",
        account_name,
        resource_group,
        location,
        settings.sku_name,
    )
    try:
        poller = client.storage_accounts.begin_create(
            resource_group,
            account_name,
            parameters,
            **context.call_options(),
        )
    except AzureError as exc:
        raise SubmissionError(f"{ERROR_PREFIX}{exc}") from exc

    operation = ProvisioningOperation(
        poller,
        description=f"create storage account {account_name}",
        polling=polling,
        context=context,
    )
    account = operation.wait()

    descriptor = StorageAccountDescriptor.from_account(account, resource_group=resource_group)
    logger.info("storage account ready account=%s state=%s", descriptor.name, descriptor.provisioning_state)
    return descriptor


def storage_account_exists(
    client: StorageManagementClient,
    resource_group: str,
    account_name: str,
    *,
    context: Optional[OperationContext] = None,
) -> bool:
    """Return whether ``account_name`` is present in ``resource_group``.

    Any provider error other than not-found propagates.
    """
    context = ensure_context(context)
    context.check("storage account lookup")

    try:
        client.storage_accounts.get_properties(resource_group, account_name, **context.call_options())
    except ResourceNotFoundError:
        return False
    return True


def get_storage_account_key(
    client: StorageManagementClient,
    resource_group: str,
    account_name: str,
    *,
    context: Optional[OperationContext] = None,
) -> str:
    """Return the value of the account's first access key."""
    context = ensure_context(context)
    context.check("list storage account keys")

    try:
        result = client.storage_accounts.list_keys(resource_group, account_name, **context.call_options())
    except AzureError as exc:
        raise KeyListError(f"cannot list storage account keys: {exc}") from exc

    keys = (result.keys_property if result is not None else None) or []
    if not keys or not keys[0].value:
        raise NoKeysAvailableError(f"storage account [{account_name}] returned no access keys")

    logger.debug("retrieved access key account=%s key_name=%s", account_name, keys[0].key_name)
    return keys[0].value
