"""Configuration for storage provisioning.

Values come from a YAML file (``config/provision.yaml`` by default) and the
environment; environment variables win. Call ``load_dotenv()`` before
``load_settings`` to pick up a local ``.env``.

Environment variables:
- AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET: service principal
- AZURE_CLIENT_CERTIFICATE_PATH: PEM/PKCS12 certificate, used instead of the secret
- AZURE_RESOURCE_MANAGER_ENDPOINT: ARM endpoint (default https://management.azure.com)
- AZURE_AUTHORITY_HOST: Entra authority host (default: public cloud)
- AZURE_SUBSCRIPTION_ID, AZURE_RESOURCE_GROUP, AZURE_LOCATION
- AZURE_STORAGE_ACCOUNT, AZURE_STORAGE_CONTAINER
- AZURE_STORAGE_ENDPOINT_SUFFIX (default core.windows.net)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Optional

import yaml

DEFAULT_ARM_ENDPOINT = "https://management.azure.com"
DEFAULT_ENDPOINT_SUFFIX = "core.windows.net"

CONTAINER_EXISTS_FAIL = "fail"
CONTAINER_EXISTS_REUSE = "reuse"

MiB = 1024 * 1024


@dataclass(frozen=True)
class AccountSettings:
    sku_name: str = "Standard_LRS"
    kind: str = "StorageV2"


@dataclass(frozen=True)
class TransferSettings:
    """Block upload tuning and the policy for a container that already exists."""

    block_size: int = 4 * MiB
    max_single_put_size: int = 4 * MiB
    max_concurrency: int = 16
    container_exists: str = CONTAINER_EXISTS_FAIL

    def __post_init__(self) -> None:
        if self.block_size <= 0:
            raise ValueError("block_size must be positive.")
        if self.max_single_put_size <= 0:
            raise ValueError("max_single_put_size must be positive.")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        if self.container_exists not in (CONTAINER_EXISTS_FAIL, CONTAINER_EXISTS_REUSE):
            raise ValueError(
                f"container_exists must be '{CONTAINER_EXISTS_FAIL}' or '{CONTAINER_EXISTS_REUSE}', "
                f"got '{self.container_exists}'."
            )


@dataclass(frozen=True)
class PollingSettings:
    poll_interval: float = 5.0
    # None waits until the provider finishes
    operation_timeout: Optional[float] = 900.0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive.")
        if self.operation_timeout is not None and self.operation_timeout < 0:
            raise ValueError("operation_timeout must not be negative.")


@dataclass(frozen=True)
class RetrySettings:
    attempts: int = 3
    wait_min: float = 1.0
    wait_max: float = 30.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1.")


@dataclass(frozen=True)
class ServicePrincipal:
    tenant_id: str
    client_id: str
    client_secret: Optional[str] = field(default=None, repr=False)
    cert_path: Optional[str] = None
    arm_endpoint: str = DEFAULT_ARM_ENDPOINT
    authority: Optional[str] = None

    @classmethod
    def from_env(cls, config: Optional[dict] = None) -> "ServicePrincipal":
        identity_cfg = (config or {}).get("identity", {})
        tenant_id = os.getenv("AZURE_TENANT_ID") or identity_cfg.get("tenant_id")
        client_id = os.getenv("AZURE_CLIENT_ID") or identity_cfg.get("client_id")
        client_secret = os.getenv("AZURE_CLIENT_SECRET")
        cert_path = os.getenv("AZURE_CLIENT_CERTIFICATE_PATH") or identity_cfg.get("cert_path")
        arm_endpoint = (
            os.getenv("AZURE_RESOURCE_MANAGER_ENDPOINT") or identity_cfg.get("arm_endpoint") or DEFAULT_ARM_ENDPOINT
        )
        authority = os.getenv("AZURE_AUTHORITY_HOST") or identity_cfg.get("authority")

        if not tenant_id:
            raise ValueError("Tenant id missing. Set AZURE_TENANT_ID or config.identity.tenant_id.")
        if not client_id:
            raise ValueError("Client id missing. Set AZURE_CLIENT_ID or config.identity.client_id.")
        if not client_secret and not cert_path:
            raise ValueError(
                "Service principal auth requires AZURE_CLIENT_SECRET or AZURE_CLIENT_CERTIFICATE_PATH."
            )

        return cls(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            cert_path=cert_path,
            arm_endpoint=arm_endpoint,
            authority=authority,
        )


@dataclass(frozen=True)
class ProvisionSettings:
    identity: ServicePrincipal
    subscription_id: str
    resource_group: str
    account_name: str
    location: str
    container_name: str
    endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX
    account: AccountSettings = field(default_factory=AccountSettings)
    transfer: TransferSettings = field(default_factory=TransferSettings)
    polling: PollingSettings = field(default_factory=PollingSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)


def load_config(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not data:
        raise ValueError(f"Config file {path} is empty.")
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level.")
    return data


def _require(env_var: str, azure_cfg: dict, key: str, label: str) -> str:
    value = os.getenv(env_var) or azure_cfg.get(key)
    if not value:
        raise ValueError(f"{label} missing. Set {env_var} or config.azure.{key}.")
    return str(value)


def _section(cls, config: dict, name: str):
    values = config.get(name) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping.")
    unknown = sorted(set(values) - {f.name for f in fields(cls)})
    if unknown:
        raise ValueError(f"Config section '{name}' has unknown keys: {', '.join(unknown)}.")
    return cls(**values)


def resolve_settings(config: dict) -> ProvisionSettings:
    """Build ``ProvisionSettings`` from a parsed config mapping plus the environment."""
    azure_cfg = config.get("azure", {})

    return ProvisionSettings(
        identity=ServicePrincipal.from_env(config),
        subscription_id=_require("AZURE_SUBSCRIPTION_ID", azure_cfg, "subscription_id", "Subscription id"),
        resource_group=_require("AZURE_RESOURCE_GROUP", azure_cfg, "resource_group", "Resource group"),
        account_name=_require("AZURE_STORAGE_ACCOUNT", azure_cfg, "storage_account", "Storage account name"),
        location=_require("AZURE_LOCATION", azure_cfg, "location", "Location"),
        container_name=_require("AZURE_STORAGE_CONTAINER", azure_cfg, "container", "Storage container"),
        endpoint_suffix=os.getenv("AZURE_STORAGE_ENDPOINT_SUFFIX")
        or azure_cfg.get("endpoint_suffix")
        or DEFAULT_ENDPOINT_SUFFIX,
        account=_section(AccountSettings, config, "account"),
        transfer=_section(TransferSettings, config, "transfer"),
        polling=_section(PollingSettings, config, "polling"),
        retry=_section(RetrySettings, config, "retry"),
    )


def load_settings(path: str) -> ProvisionSettings:
    return resolve_settings(load_config(path))
