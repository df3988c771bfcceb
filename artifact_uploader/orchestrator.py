"""
Module driving a single upload run from build result check to final signal.
"""
import logging
import threading
from typing import Callable, Optional

from .console import BuildConsole
from .dispatch import Dispatcher
from .errors import UploadCancelled, UploadError, error_message, is_fatal, signal_for
from .matcher import PathMatcher
from .models import (
    BuildResult,
    BuildSignal,
    MatchedFile,
    RunReport,
    RunState,
    UploadOutcome,
    UploadRequest,
)
from .naming import resolve_object_key
from .storage import StorageGateway
from .tasks import RemoteUploadTask

logger = logging.getLogger(__name__)

TaskFactory = Callable[[MatchedFile, str], RemoteUploadTask]


class UploadOrchestrator:
    """Uploads the files of one request and reports the build signal.

    An orchestrator serves exactly one run; create a new one per build.
    """

    def __init__(self, request: UploadRequest, gateway: StorageGateway,
                 dispatcher: Dispatcher, console: Optional[BuildConsole] = None,
                 matcher: Optional[PathMatcher] = None,
                 task_factory: Optional[TaskFactory] = None):
        """Initialize the orchestrator.

        Args:
            request: What to upload and where
            gateway: Gateway used for the bucket check on this side
            dispatcher: Channel the upload tasks are executed through
            console: Build log sink, stdout if None
            matcher: Pattern matcher, a default PathMatcher if None
            task_factory: Builds the task for a match and its object key
        """
        self.request = request
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.console = console or BuildConsole()
        self.matcher = matcher or PathMatcher()
        self.task_factory = task_factory or self._create_task
        self.state = RunState.INIT

    def _create_task(self, match: MatchedFile, object_key: str) -> RemoteUploadTask:
        return RemoteUploadTask(
            settings=self.gateway.settings,
            bucket=self.request.bucket_name,
            file_path=str(match.path),
            object_key=object_key,
        )

    def run(self, build_result: BuildResult = BuildResult.SUCCESS,
            cancel_event: Optional[threading.Event] = None) -> RunReport:
        """Execute the upload run.

        Args:
            build_result: Result of the build before uploading
            cancel_event: Event that aborts the run once set

        Returns:
            RunReport with the build signal and every per-file outcome
        """
        report = RunReport(bucket=self.request.bucket_name)

        self.state = RunState.BUILD_RESULT_CHECK
        if build_result in (BuildResult.ABORTED, BuildResult.FAILURE):
            reason = "aborted" if build_result is BuildResult.ABORTED else "failed"
            self.console.log(f"Skipping upload because build {reason}")
            report.signal = BuildSignal.SKIPPED
            self.state = RunState.DONE
            return report

        try:
            self.state = RunState.BUCKET_ENSURE
            self.gateway.ensure_bucket(self.request.bucket_name)

            self.state = RunState.ITERATING
            self._upload_all(report, cancel_event)
        except UploadError as e:
            self._abort(report, e, build_result)
        except KeyboardInterrupt as e:
            cancelled = UploadCancelled("Upload interrupted")
            cancelled.__cause__ = e
            self._abort(report, cancelled, build_result)
        finally:
            self.state = RunState.DONE

        logger.info(
            f"Upload to bucket {report.bucket} finished with {report.signal.value}: "
            f"{report.successful_uploads}/{report.total_files} files uploaded successfully"
        )
        return report

    def _upload_all(self, report: RunReport,
                    cancel_event: Optional[threading.Event]) -> None:
        request = self.request
        for pattern in request.source_patterns:
            for match in self.matcher.iter_matches(
                request.workspace_root, pattern, request.exclude_pattern
            ):
                if cancel_event is not None and cancel_event.is_set():
                    raise UploadCancelled(f"Upload cancelled before {match.relative_path}")

                object_key = resolve_object_key(match, request.object_prefix)
                outcome = self.dispatcher.run(self.task_factory(match, object_key))
                self._record(report, match, outcome)

        if not report.outcomes:
            self.console.log(
                f"No files matched {','.join(request.source_patterns)}, nothing uploaded"
            )

    def _record(self, report: RunReport, match: MatchedFile,
                outcome: UploadOutcome) -> None:
        report.outcomes.append(outcome)
        if outcome.success:
            self.console.log(
                f"File {match.relative_path} is uploaded to bucket "
                f"{outcome.bucket} as {outcome.object_key}"
            )
            return

        if is_fatal(outcome.error):
            raise outcome.error
        self.console.error(error_message(outcome.error), outcome.error)
        report.degrade()

    def _abort(self, report: RunReport, error: UploadError,
               build_result: BuildResult) -> None:
        logger.debug(f"Run aborted in state {self.state.value}")
        self.console.error(error_message(error), error)
        report.error = error
        report.signal = signal_for(error, build_result)
