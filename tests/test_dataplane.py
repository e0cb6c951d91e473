from unittest.mock import patch

import pytest
from azure.core.credentials import AzureNamedKeyCredential
from azure.storage.blob import ContainerClient

from blob_provisioner.errors import KeyRetrievalError, NoKeysAvailableError, URLConstructionError
from blob_provisioner.settings import TransferSettings
from blob_provisioner.storage.dataplane import build_container_url, get_dataplane_url


def test_container_url_for_public_cloud():
    assert build_container_url("core.windows.net", "acct1", "data") == "https://acct1.blob.core.windows.net/data"


def test_container_url_for_sovereign_suffix():
    assert build_container_url("core.usgovcloudapi.net", "acct1", "logs") == (
        "https://acct1.blob.core.usgovcloudapi.net/logs"
    )


@pytest.mark.parametrize(
    "suffix, account, container",
    [
        ("core windows.net", "acct1", "data"),
        ("core.windows.net", "", "data"),
        ("core.windows.net", "acct:1", "data"),
        ("core.windows.net", "acct1", ""),
        ("core.windows.net", "acct1", "data/nested"),
        ("core.windows.net", "acct1", "data?comp=list"),
        ("core.windows.net", "acct1", "data#frag"),
        ("core.windows.net/extra", "acct1", "data"),
        ("core.windows.net", "acct_1", "data"),
    ],
)
def test_invalid_container_url(suffix, account, container):
    with pytest.raises(URLConstructionError):
        build_container_url(suffix, account, container)


def test_builds_shared_key_container_client(mgmt_client):
    container = get_dataplane_url(mgmt_client, "core.windows.net", "acct1", "rg1", "data")

    assert isinstance(container, ContainerClient)
    assert container.url == "https://acct1.blob.core.windows.net/data"
    assert container.account_name == "acct1"
    assert container.container_name == "data"
    assert mgmt_client.storage_accounts.list_keys.call_args.args == ("rg1", "acct1")


def test_transfer_sizes_are_applied_to_client(mgmt_client):
    transfer = TransferSettings(block_size=8 * 1024 * 1024, max_single_put_size=1024 * 1024)
    with patch("blob_provisioner.storage.dataplane.ContainerClient") as container_cls:
        get_dataplane_url(mgmt_client, "core.windows.net", "acct1", "rg1", "data", transfer=transfer)

    args, kwargs = container_cls.from_container_url.call_args
    assert args == ("https://acct1.blob.core.windows.net/data",)
    assert kwargs["max_block_size"] == 8 * 1024 * 1024
    assert kwargs["max_single_put_size"] == 1024 * 1024
    assert isinstance(kwargs["credential"], AzureNamedKeyCredential)
    assert kwargs["credential"].named_key.name == "acct1"
    assert kwargs["credential"].named_key.key == "primary-secret"


def test_key_failure_propagates(mgmt_client, key_list):
    mgmt_client.storage_accounts.list_keys.return_value = key_list()
    with patch("blob_provisioner.storage.dataplane.ContainerClient") as container_cls:
        with pytest.raises(KeyRetrievalError) as excinfo:
            get_dataplane_url(mgmt_client, "core.windows.net", "acct1", "rg1", "data")
    assert isinstance(excinfo.value, NoKeysAvailableError)
    container_cls.from_container_url.assert_not_called()


def test_invalid_url_never_fetches_key(mgmt_client):
    with pytest.raises(URLConstructionError):
        get_dataplane_url(mgmt_client, "core.windows.net", "acct1", "rg1", "bad container")
    mgmt_client.storage_accounts.list_keys.assert_not_called()
