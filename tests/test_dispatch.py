"""
Tests for running upload tasks locally and in a worker process.
"""
from concurrent.futures.process import BrokenProcessPool
from unittest.mock import MagicMock

import pytest

from artifact_uploader.dispatch import LocalDispatcher, ProcessDispatcher
from artifact_uploader.errors import LocalFileError, WorkerError
from artifact_uploader.tasks import RemoteUploadTask


@pytest.fixture
def task(storage_settings, workspace):
    return RemoteUploadTask(
        settings=storage_settings,
        bucket="artifacts",
        file_path=str(workspace / "missing.txt"),
        object_key="missing.txt",
    )


def test_local_dispatcher_runs_task_with_its_gateway(task):
    gateway = MagicMock()
    task = MagicMock(wraps=task)

    LocalDispatcher(gateway).run(task)

    task.execute.assert_called_once_with(gateway)


def test_process_dispatcher_returns_outcome_from_worker(task):
    """Test that a task runs in the worker and its outcome comes back."""
    with ProcessDispatcher() as dispatcher:
        outcome = dispatcher.run(task)

    assert not outcome.success
    assert isinstance(outcome.error, LocalFileError)
    assert outcome.file_path == task.file_path


def test_process_dispatcher_wraps_crash_in_worker(task):
    """Test that an unexpected exception inside the worker becomes a WorkerError."""
    with ProcessDispatcher(worker=len) as dispatcher:
        with pytest.raises(WorkerError):
            dispatcher.run(task)


def test_process_dispatcher_reports_broken_pool(task):
    dispatcher = ProcessDispatcher()
    dispatcher._executor = MagicMock()
    dispatcher._executor.submit.return_value.result.side_effect = BrokenProcessPool()

    with pytest.raises(WorkerError):
        dispatcher.run(task)


def test_process_dispatcher_cancels_on_interrupt(task):
    """Test that an interruption while waiting cancels the pending task."""
    dispatcher = ProcessDispatcher()
    dispatcher._executor = MagicMock()
    future = dispatcher._executor.submit.return_value
    future.result.side_effect = KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        dispatcher.run(task)

    future.cancel.assert_called_once()


def test_process_dispatcher_close_shuts_down_pool():
    dispatcher = ProcessDispatcher()
    executor = MagicMock()
    dispatcher._executor = executor

    dispatcher.close()

    executor.shutdown.assert_called_once_with(wait=True, cancel_futures=True)
    assert dispatcher._executor is None
