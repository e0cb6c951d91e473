from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlparse

from azure.core.credentials import AzureNamedKeyCredential
from azure.mgmt.storage import StorageManagementClient
from azure.storage.blob import ContainerClient

from blob_provisioner.context import OperationContext, ensure_context
from blob_provisioner.errors import URLConstructionError
from blob_provisioner.settings import TransferSettings
from blob_provisioner.storage.accounts import get_storage_account_key

logger = logging.getLogger(__name__)

_DNS_LABEL = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$", re.IGNORECASE)


def _valid_hostname(host: str) -> bool:
    if not host or len(host) > 253:
        return False
    return all(_DNS_LABEL.match(label) for label in host.split("."))


def build_container_url(storage_endpoint_suffix: str, account_name: str, container_name: str) -> str:
    """Compose ``https://{account}.blob.{suffix}/{container}`` and validate it."""
    url = f"https://{account_name}.blob.{storage_endpoint_suffix}/{container_name}"

    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError as exc:
        raise URLConstructionError(f"cannot create container URL {url!r}: {exc}") from exc

    expected_host = f"{account_name}.blob.{storage_endpoint_suffix}".lower()
    if parsed.scheme != "https" or port is not None or (parsed.hostname or "") != expected_host:
        raise URLConstructionError(f"cannot create container URL {url!r}: unexpected host or scheme")
    if not _valid_hostname(parsed.hostname or ""):
        raise URLConstructionError(f"cannot create container URL {url!r}: invalid host name")
    if (
        not container_name
        or "/" in container_name
        or parsed.path != f"/{container_name}"
        or parsed.query
        or parsed.fragment
    ):
        raise URLConstructionError(f"cannot create container URL {url!r}: invalid container path")
    if any(ch.isspace() for ch in url):
        raise URLConstructionError(f"cannot create container URL {url!r}: contains whitespace")

    return url


def get_dataplane_url(
    client: StorageManagementClient,
    storage_endpoint_suffix: str,
    account_name: str,
    resource_group: str,
    container_name: str,
    *,
    transfer: Optional[TransferSettings] = None,
    context: Optional[OperationContext] = None,
) -> ContainerClient:
    """Return a shared-key authenticated ContainerClient for ``container_name``.

    The access key only lives inside the returned client's credential.
    """
    transfer = transfer or TransferSettings()
    context = ensure_context(context)

    container_url = build_container_url(storage_endpoint_suffix, account_name, container_name)
    credential = AzureNamedKeyCredential(
        account_name,
        get_storage_account_key(client, resource_group, account_name, context=context),
    )

    logger.info("built container handle url=%s", container_url)
    return ContainerClient.from_container_url(
        container_url,
        credential=credential,
        max_block_size=transfer.block_size,
        max_single_put_size=transfer.max_single_put_size,
    )
