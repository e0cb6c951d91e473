from __future__ import annotations

import logging
import os
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import ContainerClient

from blob_provisioner.context import OperationContext, ensure_context
from blob_provisioner.errors import ContainerCreateError, FileOpenError, UploadError
from blob_provisioner.settings import CONTAINER_EXISTS_REUSE, TransferSettings

logger = logging.getLogger(__name__)


def ensure_container(
    container_client: ContainerClient,
    *,
    transfer: Optional[TransferSettings] = None,
    context: Optional[OperationContext] = None,
) -> bool:
    """Create the container privately; return False when an existing one is reused."""
    transfer = transfer or TransferSettings()
    context = ensure_context(context)
    context.check("create container")

    try:
        container_client.create_container(metadata={}, public_access=None, **context.call_options())
    except ResourceExistsError as exc:
        if transfer.container_exists != CONTAINER_EXISTS_REUSE:
            raise ContainerCreateError(f"cannot create container: {exc}") from exc
        logger.warning("container already exists, reusing container=%s", container_client.container_name)
        return False
    except AzureError as exc:
        raise ContainerCreateError(f"cannot create container: {exc}") from exc

    logger.info("created container container=%s", container_client.container_name)
    return True


def upload_data_to_container(
    container_client: ContainerClient,
    blob_name: str,
    file_path: str | os.PathLike,
    *,
    transfer: Optional[TransferSettings] = None,
    context: Optional[OperationContext] = None,
) -> None:
    """Create the container, then upload ``file_path`` as the block blob ``blob_name``.

    Large files are split by the SDK into ``block_size`` blocks (configured on
    the container handle) sent with up to ``max_concurrency`` parallel requests.
    A failed upload is not resumed; call again to start over.
    """
    transfer = transfer or TransferSettings()
    context = ensure_context(context)

    ensure_container(container_client, transfer=transfer, context=context)

    try:
        data = open(file_path, "rb")
    except OSError as exc:
        raise FileOpenError(f"cannot read blob file: {exc}") from exc

    with data:
        try:
            length = os.fstat(data.fileno()).st_size
        except OSError as exc:
            raise FileOpenError(f"cannot read blob file: {exc}") from exc

        context.check("upload blob")
        blob_client = container_client.get_blob_client(blob_name)
        logger.info(
            "uploading file=%s blob=%s bytes=%d max_concurrency=%d",
            file_path,
            blob_name,
            length,
            transfer.max_concurrency,
        )
        try:
            blob_client.upload_blob(
                data,
                blob_type="BlockBlob",
                length=length,
                overwrite=True,
                max_concurrency=transfer.max_concurrency,
                **context.call_options(),
            )
        except (AzureError, OSError) as exc:
            raise UploadError(f"cannot upload blob [{blob_name}]: {exc}") from exc

    logger.info("uploaded blob=%s bytes=%d", blob_name, length)
