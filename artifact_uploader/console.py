"""
Line-oriented build console the upload run reports to.
"""
import logging
import sys
import traceback
from typing import List, Optional, TextIO

logger = logging.getLogger(__name__)

DISPLAY_NAME = "Upload build artifacts to object storage"


class BuildConsole:
    """Writes labelled lines to the build log and keeps a copy of them."""

    def __init__(self, stream: Optional[TextIO] = None, label: str = DISPLAY_NAME):
        self.stream = stream if stream is not None else sys.stdout
        self.label = label
        self.lines: List[str] = []

    def _write(self, line: str) -> None:
        self.lines.append(line)
        self.stream.write(line + "\n")
        self.stream.flush()

    def log(self, message: str) -> None:
        """Write one labelled line."""
        logger.info(message)
        self._write(f"{self.label} {message}")

    def error(self, message: str, exc: Optional[BaseException] = None) -> None:
        """Write an error header followed by the exception's traceback."""
        logger.error(f"{message}: {exc}" if exc else message)
        self._write(f"ERROR: {self.label} {message}")
        if exc is not None:
            for chunk in traceback.format_exception(type(exc), exc, exc.__traceback__):
                for line in chunk.rstrip("\n").splitlines():
                    self._write(line)
