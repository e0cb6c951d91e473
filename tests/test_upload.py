from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceExistsError, ServiceRequestError

from blob_provisioner.context import OperationContext
from blob_provisioner.errors import (
    CancelledError,
    ContainerCreateError,
    DataUploadError,
    FileOpenError,
    UploadError,
)
from blob_provisioner.settings import TransferSettings
from blob_provisioner.storage.upload import ensure_container, upload_data_to_container


@pytest.fixture
def container_client():
    client = MagicMock()
    client.container_name = "data"
    return client


@pytest.fixture
def local_file(tmp_path):
    path = tmp_path / "sample.csv"
    path.write_bytes(b"team_id,season\n1610612744,2023-24\n")
    return path


def _capture_upload(container_client):
    captured = {}

    def fake_upload(data, **kwargs):
        captured["body"] = data.read()
        captured["kwargs"] = kwargs

    container_client.get_blob_client.return_value.upload_blob.side_effect = fake_upload
    return captured


def test_creates_private_container_and_uploads(container_client, local_file):
    captured = _capture_upload(container_client)

    upload_data_to_container(container_client, "runs/sample.csv", local_file)

    create_kwargs = container_client.create_container.call_args.kwargs
    assert create_kwargs["metadata"] == {}
    assert create_kwargs["public_access"] is None
    container_client.get_blob_client.assert_called_once_with("runs/sample.csv")

    assert captured["body"] == local_file.read_bytes()
    kwargs = captured["kwargs"]
    assert kwargs["blob_type"] == "BlockBlob"
    assert kwargs["length"] == len(local_file.read_bytes())
    assert kwargs["overwrite"] is True
    assert kwargs["max_concurrency"] == 16
    assert callable(kwargs["raw_request_hook"])


def test_custom_parallelism(container_client, local_file):
    captured = _capture_upload(container_client)
    upload_data_to_container(
        container_client, "sample.csv", local_file, transfer=TransferSettings(max_concurrency=4)
    )
    assert captured["kwargs"]["max_concurrency"] == 4


def test_existing_container_fails_by_default(container_client, local_file):
    container_client.create_container.side_effect = ResourceExistsError("The specified container already exists.")

    with pytest.raises(ContainerCreateError, match="cannot create container"):
        upload_data_to_container(container_client, "sample.csv", local_file)

    container_client.get_blob_client.assert_not_called()


def test_existing_container_reused_when_configured(container_client, local_file):
    container_client.create_container.side_effect = ResourceExistsError("The specified container already exists.")
    captured = _capture_upload(container_client)

    upload_data_to_container(
        container_client, "sample.csv", local_file, transfer=TransferSettings(container_exists="reuse")
    )

    assert captured["body"] == local_file.read_bytes()


def test_ensure_container_reports_reuse(container_client):
    assert ensure_container(container_client) is True
    container_client.create_container.side_effect = ResourceExistsError("exists")
    assert ensure_container(container_client, transfer=TransferSettings(container_exists="reuse")) is False


def test_container_service_error(container_client, local_file):
    container_client.create_container.side_effect = HttpResponseError("AuthorizationFailure")
    with pytest.raises(ContainerCreateError):
        upload_data_to_container(
            container_client, "sample.csv", local_file, transfer=TransferSettings(container_exists="reuse")
        )


def test_missing_file(container_client, tmp_path):
    with pytest.raises(FileOpenError, match="cannot read blob file"):
        upload_data_to_container(container_client, "sample.csv", tmp_path / "missing.csv")
    container_client.get_blob_client.assert_not_called()


def test_directory_is_not_a_file(container_client, tmp_path):
    with pytest.raises(FileOpenError):
        upload_data_to_container(container_client, "sample.csv", tmp_path)


def test_transport_failure(container_client, local_file):
    container_client.get_blob_client.return_value.upload_blob.side_effect = ServiceRequestError("connection reset")
    with pytest.raises(UploadError) as excinfo:
        upload_data_to_container(container_client, "sample.csv", local_file)
    assert isinstance(excinfo.value, DataUploadError)
    assert isinstance(excinfo.value.__cause__, ServiceRequestError)


def test_cancel_during_upload_aborts_next_request(container_client, local_file):
    ctx = OperationContext()

    def cancelled_mid_flight(data, **kwargs):
        ctx.cancel()
        kwargs["raw_request_hook"](object())

    container_client.get_blob_client.return_value.upload_blob.side_effect = cancelled_mid_flight

    with pytest.raises(CancelledError):
        upload_data_to_container(container_client, "sample.csv", local_file, context=ctx)


def test_cancelled_before_start(container_client, local_file):
    ctx = OperationContext()
    ctx.cancel()
    with pytest.raises(CancelledError):
        upload_data_to_container(container_client, "sample.csv", local_file, context=ctx)
    container_client.create_container.assert_not_called()
