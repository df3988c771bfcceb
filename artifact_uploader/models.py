"""
Module containing data models for the artifact uploader.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from .errors import UploadError


class BuildResult(Enum):
    """Result of the build that invokes the uploader, best to worst."""
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"

    @property
    def severity(self) -> int:
        return list(BuildResult).index(self)

    def worse_of(self, other: "BuildResult") -> "BuildResult":
        """Return whichever of the two results is worse."""
        return self if self.severity >= other.severity else other


class BuildSignal(Enum):
    """What an upload run asks the host to do with its build result."""
    CONTINUE = "continue"
    MARK_UNSTABLE = "mark_unstable"
    SKIPPED = "skipped"


class RunState(Enum):
    """Stages of a single upload run."""
    INIT = "init"
    BUILD_RESULT_CHECK = "build_result_check"
    BUCKET_ENSURE = "bucket_ensure"
    ITERATING = "iterating"
    DONE = "done"


@dataclass
class JobConfig:
    """Per-job configuration as entered by the user, before macro expansion."""
    source_file: str
    bucket_name: str
    excluded_file: Optional[str] = None
    object_name_prefix: Optional[str] = None


@dataclass(frozen=True)
class UploadRequest:
    """Represents one upload invocation."""
    source_patterns: Tuple[str, ...]
    bucket_name: str
    workspace_root: Path
    exclude_pattern: Optional[str] = None
    object_prefix: Optional[str] = None

    def __post_init__(self):
        """Validate the upload request."""
        if not self.bucket_name:
            raise ValueError("bucket_name cannot be empty")
        if not self.workspace_root.exists():
            raise ValueError(f"Workspace {self.workspace_root} does not exist")
        if not self.workspace_root.is_dir():
            raise ValueError(f"{self.workspace_root} is not a directory")
        object.__setattr__(
            self, "source_patterns", tuple(p.strip() for p in self.source_patterns)
        )

    @classmethod
    def from_job(cls, job: JobConfig, workspace_root: Path,
                 env: Optional[Mapping[str, str]] = None) -> "UploadRequest":
        """Build a request from job configuration and build variables.

        Args:
            job: Per-job configuration
            workspace_root: Directory patterns are resolved against
            env: Build variables used to expand $VAR / ${VAR} references

        Returns:
            UploadRequest with expanded patterns, bucket and prefix

        Raises:
            ValueError: If no source pattern is configured or the request
                is otherwise invalid
        """
        from .config import expand_macros

        env = env or {}
        expanded = expand_macros(job.source_file, env)
        if expanded is None:
            raise ValueError("source_file cannot be empty")

        # Trailing empty entries are dropped, inner ones stay and fail
        # as empty patterns.
        patterns = expanded.split(",")
        while patterns and not patterns[-1].strip():
            patterns.pop()
        if not patterns:
            raise ValueError("source_file cannot be empty")

        return cls(
            source_patterns=tuple(patterns),
            bucket_name=expand_macros(job.bucket_name, env) or "",
            workspace_root=Path(workspace_root),
            exclude_pattern=expand_macros(job.excluded_file, env) or None,
            object_prefix=expand_macros(job.object_name_prefix, env) or None,
        )


@dataclass(frozen=True)
class MatchedFile:
    """A regular file matched by a source pattern."""
    path: Path
    search_root: Path

    @property
    def relative_path(self) -> str:
        """Slash-separated path of the file below its search root."""
        return self.path.relative_to(self.search_root).as_posix()

    @property
    def search_root_length(self) -> int:
        """Offset of the relative part within the absolute path string."""
        return len(str(self.path)) - len(str(self.path.relative_to(self.search_root)))


@dataclass(frozen=True)
class UploadOutcome:
    """Represents the result of a single file upload."""
    file_path: str
    object_key: str
    bucket: str
    size_bytes: Optional[int] = None
    error: Optional["UploadError"] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def uploaded(cls, file_path: str, object_key: str, bucket: str,
                 size_bytes: int) -> "UploadOutcome":
        return cls(file_path, object_key, bucket, size_bytes=size_bytes)

    @classmethod
    def failed(cls, file_path: str, object_key: str, bucket: str,
               error: "UploadError") -> "UploadOutcome":
        return cls(file_path, object_key, bucket, error=error)


@dataclass
class RunReport:
    """Represents a summary of one upload run."""
    bucket: str
    signal: BuildSignal = BuildSignal.CONTINUE
    outcomes: List[UploadOutcome] = field(default_factory=list)
    error: Optional["UploadError"] = None

    @property
    def total_files(self) -> int:
        return len(self.outcomes)

    @property
    def successful_uploads(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed_uploads(self) -> int:
        return self.total_files - self.successful_uploads

    def degrade(self) -> None:
        """Mark the run unstable unless it was skipped."""
        if self.signal is not BuildSignal.SKIPPED:
            self.signal = BuildSignal.MARK_UNSTABLE

    def apply_to(self, build_result: BuildResult) -> BuildResult:
        """Compute the host build result after this run.

        Args:
            build_result: Build result before the run

        Returns:
            The unchanged result, or UNSTABLE if that is worse
        """
        if self.signal is BuildSignal.MARK_UNSTABLE:
            return build_result.worse_of(BuildResult.UNSTABLE)
        return build_result
