"""
Module for handing upload tasks to the process that executes them.
"""
import logging
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Callable, Optional

from .errors import WorkerError
from .models import UploadOutcome
from .storage import StorageGateway
from .tasks import RemoteUploadTask, execute_remote

logger = logging.getLogger(__name__)


class Dispatcher:
    """Runs upload tasks and blocks until each one has finished."""

    def run(self, task: RemoteUploadTask) -> UploadOutcome:
        raise NotImplementedError

    def close(self) -> None:
        """Release any workers held by the dispatcher."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class LocalDispatcher(Dispatcher):
    """Executes tasks in the calling process."""

    def __init__(self, gateway: StorageGateway):
        self.gateway = gateway

    def run(self, task: RemoteUploadTask) -> UploadOutcome:
        return task.execute(self.gateway)


class ProcessDispatcher(Dispatcher):
    """Executes tasks in a separate worker process.

    Uploads stay sequential: `run` submits one task and waits for its
    outcome before returning.
    """

    def __init__(self, max_workers: int = 1,
                 worker: Callable[[RemoteUploadTask], UploadOutcome] = execute_remote):
        """Initialize the dispatcher.

        Args:
            max_workers: Number of worker processes in the pool
            worker: Picklable function executing a task inside the worker
        """
        self.max_workers = max_workers
        self.worker = worker
        self._executor: Optional[ProcessPoolExecutor] = None

    def run(self, task: RemoteUploadTask) -> UploadOutcome:
        """Run a task on the worker and wait for its outcome.

        Raises:
            WorkerError: If the worker died or the task crashed in it
            KeyboardInterrupt: If interrupted while waiting
        """
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=self.max_workers)

        future = self._executor.submit(self.worker, task)
        try:
            return future.result()
        except KeyboardInterrupt:
            future.cancel()
            raise
        except BrokenProcessPool as e:
            raise WorkerError(f"Worker process died while uploading {task.file_path}") from e
        except Exception as e:
            raise WorkerError(f"Upload of {task.file_path} failed on worker: {e}") from e

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None
            logger.debug("Worker pool shut down")
