"""
Tests for the command-line interface.
"""
import json
from unittest.mock import MagicMock, patch

import pytest

from artifact_uploader.cli import EXIT_ERROR, EXIT_OK, EXIT_UNSTABLE, main
from artifact_uploader.errors import StorageError


@pytest.fixture(autouse=True)
def storage_env(monkeypatch):
    """Provide storage settings through the environment."""
    monkeypatch.setenv("ARTIFACT_UPLOADER_SERVER_URL", "http://localhost:9000")
    monkeypatch.setenv("ARTIFACT_UPLOADER_ACCESS_KEY", "testing")
    monkeypatch.setenv("ARTIFACT_UPLOADER_SECRET_KEY", "testing")
    monkeypatch.setattr("artifact_uploader.cli.signal.signal", MagicMock())


@pytest.fixture
def cli_gateway():
    with patch("artifact_uploader.cli.StorageGateway") as gateway_class:
        yield gateway_class.return_value


def run_cli(*argv):
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    return excinfo.value.code


def test_upload_command(cli_gateway, workspace, make_files, capsys, monkeypatch):
    """Test a successful upload with build variables expanded from the environment."""
    make_files("out/a.txt")
    monkeypatch.setenv("BUILD_ID", "42")

    code = run_cli("upload", "-b", "artifacts", "-s", "out/*.txt",
                   "-p", "ci-$BUILD_ID", "-w", str(workspace))

    assert code == EXIT_OK
    cli_gateway.ensure_bucket.assert_called_once_with("artifacts")
    assert cli_gateway.put_object.call_args.args[:2] == ("artifacts", "ci-42/a.txt")
    assert "File a.txt is uploaded to bucket artifacts as ci-42/a.txt" in capsys.readouterr().out


def test_failed_upload_exits_unstable(cli_gateway, workspace, make_files, tmp_path):
    """Test that a degraded run gives the unstable exit status and a report."""
    make_files("out/a.txt")
    cli_gateway.put_object.side_effect = StorageError("down")
    report_path = tmp_path / "report.json"

    code = run_cli("upload", "-b", "artifacts", "-s", "out/*.txt", "-w", str(workspace),
                   "--report", str(report_path))

    assert code == EXIT_UNSTABLE
    with open(report_path) as f:
        assert json.load(f)["failed_uploads"] == 1


def test_unwritable_report_keeps_exit_status(cli_gateway, workspace, make_files, tmp_path, caplog):
    """Test that a report write failure is logged and the run result stands."""
    make_files("out/a.txt")
    blocker = tmp_path / "file.txt"
    blocker.write_text("x")

    code = run_cli("upload", "-b", "artifacts", "-s", "out/*.txt", "-w", str(workspace),
                   "--report", str(blocker / "report.json"))

    assert code == EXIT_OK
    cli_gateway.put_object.assert_called_once()
    assert "Error writing report" in caplog.text


def test_aborted_build_skips_upload(cli_gateway, workspace, make_files, capsys):
    make_files("out/a.txt")

    code = run_cli("upload", "-b", "artifacts", "-s", "out/*.txt", "-w", str(workspace),
                   "--build-result", "aborted")

    assert code == EXIT_OK
    cli_gateway.ensure_bucket.assert_not_called()
    assert "Skipping upload because build aborted" in capsys.readouterr().out


def test_missing_credentials_is_an_error(cli_gateway, workspace, monkeypatch):
    monkeypatch.delenv("ARTIFACT_UPLOADER_SECRET_KEY")

    code = run_cli("upload", "-b", "artifacts", "-s", "out/*.txt", "-w", str(workspace))

    assert code == EXIT_ERROR
    cli_gateway.ensure_bucket.assert_not_called()


def test_config_file_supplies_settings(workspace, make_files, tmp_path, monkeypatch):
    """Test that credentials are read from the config file and passed explicitly."""
    make_files("out/a.txt")
    for name in ("SERVER_URL", "ACCESS_KEY", "SECRET_KEY"):
        monkeypatch.delenv(f"ARTIFACT_UPLOADER_{name}")
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({
        "server_url": "http://minio:9000",
        "access_key": "minio",
        "secret_key": "minio123",
    }))

    with patch("artifact_uploader.cli.StorageGateway") as gateway_class:
        code = run_cli("-c", str(config_file), "upload", "-b", "artifacts",
                       "-s", "out/*.txt", "-w", str(workspace))

    assert code == EXIT_OK
    settings = gateway_class.call_args.args[0]
    assert settings.server_url == "http://minio:9000"
    assert settings.access_key == "minio"


def test_missing_workspace_is_an_error(cli_gateway, tmp_path):
    code = run_cli("upload", "-b", "artifacts", "-s", "out/*.txt",
                   "-w", str(tmp_path / "missing"))

    assert code == EXIT_ERROR
