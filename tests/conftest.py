from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from azure.mgmt.storage.models import (
    CheckNameAvailabilityResult,
    StorageAccount,
    StorageAccountListKeysResult,
)

AZURE_ENV_VARS = [
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_RESOURCE_MANAGER_ENDPOINT",
    "AZURE_AUTHORITY_HOST",
    "AZURE_SUBSCRIPTION_ID",
    "AZURE_RESOURCE_GROUP",
    "AZURE_LOCATION",
    "AZURE_STORAGE_ACCOUNT",
    "AZURE_STORAGE_CONTAINER",
    "AZURE_STORAGE_ENDPOINT_SUFFIX",
]


@pytest.fixture(autouse=True)
def clean_azure_env(monkeypatch):
    for name in AZURE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakePoller:
    """Stand-in for azure.core.polling.LROPoller driven by a poll counter."""

    def __init__(self, result=None, *, error=None, done_after=0, on_poll=None):
        self._result = result
        self._error = error
        self.done_after = done_after
        self.on_poll = on_poll
        self.polls = 0
        self.result_calls = 0

    def done(self):
        self.polls += 1
        if self.on_poll:
            self.on_poll(self.polls)
        return self.done_after is not None and self.polls > self.done_after

    def status(self):
        return "Succeeded" if self.done_after is not None and self.polls > self.done_after else "InProgress"

    def result(self, timeout=None):
        self.result_calls += 1
        if self._error is not None:
            raise self._error
        return self._result


@pytest.fixture
def fake_poller():
    return FakePoller


def make_account(name="acct1", resource_group="rg1", subscription="sub-1", location="eastus"):
    return StorageAccount(
        {
            "id": (
                f"/subscriptions/{subscription}/resourceGroups/{resource_group}"
                f"/providers/Microsoft.Storage/storageAccounts/{name}"
            ),
            "name": name,
            "location": location,
            "sku": {"name": "Standard_LRS"},
            "kind": "StorageV2",
            "properties": {
                "provisioningState": "Succeeded",
                "primaryEndpoints": {"blob": f"https://{name}.blob.core.windows.net/"},
            },
        }
    )


def name_check_result(available=True, reason=None, message=None):
    body = {"nameAvailable": available}
    if reason is not None:
        body["reason"] = reason
    if message is not None:
        body["message"] = message
    return CheckNameAvailabilityResult(body)


def list_keys_result(*keys):
    return StorageAccountListKeysResult(
        {"keys": [{"keyName": key_name, "value": value, "permissions": "FULL"} for key_name, value in keys]}
    )


@pytest.fixture
def storage_account():
    return make_account()


@pytest.fixture
def mgmt_client():
    client = MagicMock()
    client.storage_accounts.check_name_availability.return_value = name_check_result()
    client.storage_accounts.list_keys.return_value = list_keys_result(
        ("key1", "primary-secret"), ("key2", "secondary-secret")
    )
    return client


@pytest.fixture
def name_check():
    return name_check_result


@pytest.fixture
def key_list():
    return list_keys_result
