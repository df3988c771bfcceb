from .config import StorageSettings
from .dispatch import LocalDispatcher, ProcessDispatcher
from .matcher import PathMatcher
from .models import BuildResult, BuildSignal, JobConfig, RunReport, UploadRequest
from .naming import resolve_object_key
from .orchestrator import UploadOrchestrator
from .storage import StorageGateway
from .tasks import RemoteUploadTask

__version__ = "0.1.0"

__all__ = [
    "UploadOrchestrator",
    "UploadRequest",
    "JobConfig",
    "RunReport",
    "BuildResult",
    "BuildSignal",
    "PathMatcher",
    "resolve_object_key",
    "StorageGateway",
    "StorageSettings",
    "RemoteUploadTask",
    "LocalDispatcher",
    "ProcessDispatcher",
]
