"""
Command-line interface for the artifact uploader.
"""
import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, StorageSettings, load_config
from .dispatch import LocalDispatcher, ProcessDispatcher
from .models import BuildResult, BuildSignal, JobConfig, UploadRequest
from .orchestrator import UploadOrchestrator
from .report import write_report
from .storage import StorageGateway

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNSTABLE = 2


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: Whether to enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_request(args: argparse.Namespace) -> UploadRequest:
    """Build the upload request from command line arguments.

    Args:
        args: Command line arguments

    Returns:
        UploadRequest with build variables from the environment expanded
    """
    job = JobConfig(
        source_file=args.source,
        bucket_name=args.bucket,
        excluded_file=args.exclude,
        object_name_prefix=args.prefix,
    )
    return UploadRequest.from_job(job, Path(args.workspace), os.environ)


def handle_upload(args: argparse.Namespace) -> int:
    """Handle the upload command.

    Args:
        args: Command line arguments

    Returns:
        Process exit status
    """
    settings = StorageSettings.from_mapping(load_config(args.config))
    request = create_request(args)
    build_result = BuildResult[args.build_result]

    gateway = StorageGateway(settings)
    dispatcher = ProcessDispatcher() if args.remote else LocalDispatcher(gateway)
    with dispatcher:
        report = UploadOrchestrator(request, gateway, dispatcher).run(build_result)

    if args.report:
        try:
            write_report(report, Path(args.report))
        except OSError as e:
            logger.error(f"Error writing report {args.report}: {e}")

    logger.info(f"Build result: {report.apply_to(build_result).value}")
    return EXIT_UNSTABLE if report.signal is BuildSignal.MARK_UNSTABLE else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload build artifacts to an S3-compatible object store"
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Enable verbose logging")
    parser.add_argument('-c', '--config', type=Path,
                        help="Path to config file with server_url, access_key and secret_key")

    subparsers = parser.add_subparsers(dest='command', required=True)

    upload_parser = subparsers.add_parser('upload',
                                          help="Upload files matching the patterns")
    upload_parser.add_argument('-b', '--bucket', type=str, required=True,
                               help="Destination bucket, created if missing")
    upload_parser.add_argument('-s', '--source', type=str, required=True,
                               help="Comma-separated file patterns relative to the workspace")
    upload_parser.add_argument('-e', '--exclude', type=str,
                               help="Pattern of files to leave out")
    upload_parser.add_argument('-p', '--prefix', type=str,
                               help="Object name prefix")
    upload_parser.add_argument('-w', '--workspace', type=str, default=".",
                               help="Workspace root the patterns are resolved against")
    upload_parser.add_argument('--build-result', type=str.upper, default="SUCCESS",
                               choices=[r.name for r in BuildResult],
                               help="Result of the build so far")
    upload_parser.add_argument('--remote', action='store_true',
                               help="Run uploads in a separate worker process")
    upload_parser.add_argument('--report', type=str,
                               help="Write a JSON report of the run to this file")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    # An external abort arrives as SIGTERM; treat it like Ctrl-C.
    signal.signal(signal.SIGTERM, signal.default_int_handler)

    try:
        if args.command == 'upload':
            sys.exit(handle_upload(args))
    except (ConfigError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(EXIT_ERROR)


if __name__ == '__main__':
    main()
