"""
Test fixtures for the artifact uploader.
"""
import io
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws as moto_mock_aws

from artifact_uploader.config import StorageSettings
from artifact_uploader.console import BuildConsole
from artifact_uploader.dispatch import LocalDispatcher
from artifact_uploader.models import UploadRequest
from artifact_uploader.orchestrator import UploadOrchestrator
from artifact_uploader.storage import StorageGateway


@pytest.fixture
def workspace(tmp_path):
    """Create a temporary workspace directory."""
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


@pytest.fixture
def make_files(workspace):
    """Create files below the workspace from relative paths."""
    def _make(*relative_paths, content="test content"):
        created = []
        for rel_path in relative_paths:
            file_path = workspace / rel_path
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content)
            created.append(file_path)
        return created
    return _make


@pytest.fixture
def storage_settings():
    return StorageSettings(
        server_url="http://localhost:9000",
        access_key="testing",
        secret_key="testing",
        region="us-east-1",
    )


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so nothing can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mock_aws(aws_credentials):
    """Mock S3 client using moto."""
    with moto_mock_aws():
        yield boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def gateway(mock_aws, storage_settings):
    """Gateway talking to the moto S3 backend."""
    return StorageGateway(storage_settings, client=mock_aws)


@pytest.fixture
def mock_gateway(storage_settings):
    """Gateway double recording every call."""
    gateway = MagicMock(spec=StorageGateway)
    gateway.settings = storage_settings
    return gateway


@pytest.fixture
def console():
    """Build console writing to memory."""
    return BuildConsole(stream=io.StringIO())


@pytest.fixture
def make_orchestrator(workspace, console):
    """Create an orchestrator for the given patterns running uploads locally."""
    def _make(gateway, source="out/*.txt", exclude=None, prefix=None,
              bucket="artifacts", dispatcher=None):
        request = UploadRequest(
            source_patterns=tuple(source.split(",")),
            bucket_name=bucket,
            workspace_root=workspace,
            exclude_pattern=exclude,
            object_prefix=prefix,
        )
        return UploadOrchestrator(
            request,
            gateway,
            dispatcher or LocalDispatcher(gateway),
            console=console,
        )
    return _make
