"""
# Example local run:
#   python -m blob_provisioner.ops.run_provision --config config/provision.yaml --file data/sample.csv
#   python -m blob_provisioner.ops.run_provision --config config/provision.yaml --file data/sample.csv --skip-create
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from blob_provisioner.context import OperationContext
from blob_provisioner.errors import CancelledError, ProvisioningError
from blob_provisioner.settings import ProvisionSettings, load_settings
from blob_provisioner.storage import (
    create_storage_account_with_retry,
    get_dataplane_url,
    get_storage_accounts_client,
    upload_data_to_container,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create an Azure storage account and upload a local file into one of its blob containers."
    )
    parser.add_argument(
        "--config",
        default="config/provision.yaml",
        help="Path to YAML config file (default: config/provision.yaml).",
    )
    parser.add_argument("--file", required=True, help="Local file to upload.")
    parser.add_argument("--blob-name", default=None, help="Destination blob name (default: the file name).")
    parser.add_argument("--container", default=None, help="Override the configured container name.")
    parser.add_argument(
        "--skip-create",
        action="store_true",
        help="Use an existing storage account instead of creating one.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Python logging level (default: WARNING).")
    return parser.parse_args(argv)


def run(
    settings: ProvisionSettings,
    file_path: str,
    blob_name: str,
    *,
    skip_create: bool,
    context: OperationContext,
) -> None:
    identity = settings.identity
    client = get_storage_accounts_client(
        identity.tenant_id,
        identity.client_id,
        identity.client_secret,
        identity.arm_endpoint,
        identity.cert_path,
        settings.subscription_id,
        authority=identity.authority,
        context=context,
    )

    if skip_create:
        print(f"using existing storage account={settings.account_name}")
    else:
        print(f"creating storage account={settings.account_name} resource_group={settings.resource_group}")
        account = create_storage_account_with_retry(
            client,
            settings.account_name,
            settings.resource_group,
            settings.location,
            settings=settings.account,
            polling=settings.polling,
            retry=settings.retry,
            context=context,
        )
        print(f"created storage account={account.name} state={account.provisioning_state} sku={account.sku}")

    container_client = get_dataplane_url(
        client,
        settings.endpoint_suffix,
        settings.account_name,
        settings.resource_group,
        settings.container_name,
        transfer=settings.transfer,
        context=context,
    )
    upload_data_to_container(container_client, blob_name, file_path, transfer=settings.transfer, context=context)
    print(f"uploaded file={file_path} container={settings.container_name} blob={blob_name}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    settings = load_settings(args.config)
    if args.container:
        settings = dataclasses.replace(settings, container_name=args.container)
    blob_name = args.blob_name or Path(args.file).name

    context = OperationContext()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: context.cancel())
    try:
        run(settings, args.file, blob_name, skip_create=args.skip_create, context=context)
    except CancelledError as exc:
        print(f"cancelled: {exc}", file=sys.stderr)
        return EXIT_CANCELLED
    except ProvisioningError as exc:
        print(f"failed: {type(exc).__name__}: {exc}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
