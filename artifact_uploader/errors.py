"""
Error taxonomy for the upload pipeline and the mapping to build signals.
"""
from enum import Enum
from typing import Optional

from .models import BuildResult, BuildSignal


class UploadError(Exception):
    """Base class for every error the upload pipeline reports."""


class PatternError(UploadError):
    """A source or exclude pattern is malformed or cannot be resolved."""


class NotAFileError(UploadError):
    """A pattern matched a directory instead of a regular file."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class StorageError(UploadError):
    """The object store rejected a request or could not be reached."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class RegionConflictError(StorageError):
    """Bucket creation was refused because of a region mismatch."""


class LocalFileError(UploadError):
    """A matched file could not be read at upload time."""


class WorkerError(UploadError):
    """The worker executing an upload task died or became unreachable."""


class UploadCancelled(UploadError):
    """The run was interrupted from outside."""


class ErrorKind(Enum):
    """Kinds of failure the orchestrator distinguishes."""
    PATTERN = "pattern"
    NOT_A_FILE = "not_a_file"
    STORAGE = "storage"
    REGION_CONFLICT = "region_conflict"
    LOCAL_FILE = "local_file"
    WORKER = "worker"
    CANCELLED = "cancelled"


# Order matters: subclasses before their bases.
_KINDS = (
    (RegionConflictError, ErrorKind.REGION_CONFLICT),
    (StorageError, ErrorKind.STORAGE),
    (PatternError, ErrorKind.PATTERN),
    (NotAFileError, ErrorKind.NOT_A_FILE),
    (LocalFileError, ErrorKind.LOCAL_FILE),
    (WorkerError, ErrorKind.WORKER),
    (UploadCancelled, ErrorKind.CANCELLED),
)

_MESSAGES = {
    ErrorKind.PATTERN: "Invalid file pattern, failed to upload files",
    ErrorKind.NOT_A_FILE: "Pattern matched a directory, failed to upload files",
    ErrorKind.STORAGE: "Storage error, failed to upload files",
    ErrorKind.REGION_CONFLICT: "Upload interrupted, storage server region conflict",
    ErrorKind.LOCAL_FILE: "Communication error, failed to upload files",
    ErrorKind.WORKER: "Worker error, failed to upload files",
    ErrorKind.CANCELLED: "Upload interrupted, failed to upload files",
}

# Kinds that only fail the file being uploaded; everything else ends the run.
_PER_FILE_KINDS = {ErrorKind.STORAGE, ErrorKind.LOCAL_FILE}


def classify(error: UploadError) -> ErrorKind:
    """Return the kind of an upload error.

    Args:
        error: Error raised or recorded by the pipeline

    Returns:
        The matching ErrorKind

    Raises:
        TypeError: If the error is not part of the taxonomy
    """
    for error_type, kind in _KINDS:
        if isinstance(error, error_type):
            return kind
    raise TypeError(f"Unclassified upload error: {error!r}")


def is_fatal(error: UploadError) -> bool:
    """Check whether an error stops the whole run.

    Bucket creation failures are fatal too, but the orchestrator decides that
    by the state it is in, not by the error kind.
    """
    return classify(error) not in _PER_FILE_KINDS


def error_message(error: UploadError) -> str:
    """Human-readable header logged above the error details."""
    return _MESSAGES[classify(error)]


def signal_for(error: UploadError, build_result: BuildResult) -> BuildSignal:
    """Reduce any pipeline error to the build signal it produces.

    Args:
        error: Error raised or recorded by the pipeline
        build_result: Build result at the time the error was seen

    Returns:
        SKIPPED when the build had already been aborted or failed,
        MARK_UNSTABLE otherwise
    """
    classify(error)
    if build_result in (BuildResult.ABORTED, BuildResult.FAILURE):
        return BuildSignal.SKIPPED
    return BuildSignal.MARK_UNSTABLE
