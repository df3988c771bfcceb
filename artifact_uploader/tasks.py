"""
Self-contained upload task that runs wherever the file lives.
"""
import logging
import os
from dataclasses import dataclass

from .config import StorageSettings
from .errors import LocalFileError, StorageError
from .models import UploadOutcome
from .storage import StorageGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteUploadTask:
    """Uploads one local file to the object store.

    Only plain, picklable fields are captured, so a task can be handed to a
    worker process and executed there with a gateway built from `settings`.
    """
    settings: StorageSettings
    bucket: str
    file_path: str
    object_key: str

    def execute(self, gateway: StorageGateway) -> UploadOutcome:
        """Open the file and upload it through the gateway.

        Read and storage failures are returned as a failed outcome; an
        interruption propagates to the caller.

        Args:
            gateway: Gateway to upload through

        Returns:
            UploadOutcome for the file
        """
        try:
            with open(self.file_path, "rb") as stream:
                size = os.fstat(stream.fileno()).st_size
                gateway.put_object(self.bucket, self.object_key, stream, size)
        except StorageError as e:
            logger.error(f"Error uploading {self.file_path} to {self.object_key}: {e}")
            return UploadOutcome.failed(self.file_path, self.object_key, self.bucket, e)
        except OSError as e:
            logger.error(f"Error reading {self.file_path}: {e}")
            error = LocalFileError(f"Cannot read {self.file_path}: {e}")
            return UploadOutcome.failed(self.file_path, self.object_key, self.bucket, error)

        return UploadOutcome.uploaded(self.file_path, self.object_key, self.bucket, size)


def execute_remote(task: RemoteUploadTask) -> UploadOutcome:
    """Worker entry point: build a gateway from the task's settings and run it."""
    return task.execute(StorageGateway.from_settings(task.settings))
