"""
Module for resolving source patterns against a workspace.
"""
import logging
import re
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Iterator, List, Optional, Sequence

from .errors import NotAFileError, PatternError
from .models import MatchedFile

logger = logging.getLogger(__name__)

WILDCARD_CHARS = "*?["


def _has_wildcard(segment: str) -> bool:
    return any(c in segment for c in WILDCARD_CHARS)


def _translate_segment(segment: str) -> str:
    """Translate a single path segment of a glob into a regex."""
    out = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and segment[j] == "!":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            end = segment.find("]", j)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = segment[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def compile_glob(pattern: str) -> re.Pattern:
    """Compile a slash-separated glob into a regex over relative paths.

    `*` and `?` stay within one path segment, `**` spans any number of
    directories and a trailing slash means everything below that directory.

    Raises:
        PatternError: If the pattern cannot be compiled
    """
    normalized = pattern.replace("\\", "/")
    segments = [s for s in normalized.split("/") if s not in ("", ".")]
    if not segments:
        raise PatternError(f"Empty file pattern: {pattern!r}")
    if normalized.endswith("/"):
        segments.append("**")

    regex = ""
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        if segment == "**":
            regex += ".*" if index == last else "(?:[^/]+/)*"
        else:
            regex += _translate_segment(segment) + ("" if index == last else "/")

    try:
        return re.compile(f"^{regex}$")
    except re.error as e:
        raise PatternError(f"Invalid file pattern {pattern!r}: {e}") from e


class PathMatcher:
    """Resolves comma-separated source patterns to regular files."""

    def resolve(self, workspace_root: Path, patterns: Sequence[str],
                exclude: Optional[str] = None) -> List[MatchedFile]:
        """Resolve all patterns to the files they match.

        Args:
            workspace_root: Directory the patterns are relative to
            patterns: Glob patterns, processed in the given order
            exclude: Comma-separated glob(s) suppressing matches of every pattern

        Returns:
            Matched files, pattern by pattern, each pattern's matches sorted

        Raises:
            PatternError: If a pattern is malformed
            NotAFileError: If any match is a directory
        """
        matches = []
        for pattern in patterns:
            matches.extend(self.iter_matches(workspace_root, pattern, exclude))
        return matches

    def iter_matches(self, workspace_root: Path, pattern: str,
                     exclude: Optional[str] = None) -> Iterator[MatchedFile]:
        """Yield the files matched by one pattern in sorted order.

        The pattern is expanded up front, so a malformed pattern fails before
        anything is yielded. A directory fails only when it is reached, after
        the files sorted before it have been yielded.

        Raises:
            PatternError: If the pattern is malformed
            NotAFileError: When a directory is reached
        """
        workspace_root = Path(workspace_root).absolute()
        paths = self._expand(workspace_root, pattern, self._compile_excludes(exclude))
        search_root = self.search_root(workspace_root, pattern)
        logger.debug(f"Pattern {pattern!r} matched {len(paths)} paths under {search_root}")

        def generate() -> Iterator[MatchedFile]:
            for path in paths:
                if path.is_dir():
                    raise NotAFileError(f"{path} is a directory", path=str(path))
                yield MatchedFile(path=path, search_root=search_root)

        return generate()

    def search_root(self, workspace_root: Path, pattern: str) -> Path:
        """Get the directory that object names of a pattern's matches are relative to.

        That is the workspace root followed by the pattern's leading literal
        directories. The final segment never belongs to the search root.
        """
        normalized = pattern.strip().replace("\\", "/")
        segments = list(PurePosixPath(normalized).parts)
        if normalized.endswith("/"):
            segments.append("**")
        root = workspace_root
        for segment in segments[:-1]:
            if _has_wildcard(segment):
                break
            root = root / segment
        return root

    def _compile_excludes(self, exclude: Optional[str]) -> List[re.Pattern]:
        if not exclude:
            return []
        return [compile_glob(p.strip()) for p in exclude.split(",") if p.strip()]

    def _normalize(self, pattern: str) -> str:
        """Validate a source pattern and spell a trailing slash out as `/**`."""
        pattern = pattern.strip().replace("\\", "/")
        if not pattern:
            raise PatternError("Empty file pattern")
        if PurePosixPath(pattern).is_absolute() or PureWindowsPath(pattern).drive:
            raise PatternError(f"File pattern must be relative to the workspace: {pattern}")
        if ".." in PurePosixPath(pattern).parts:
            raise PatternError(f"File pattern must not leave the workspace: {pattern}")
        normalized = PurePosixPath(pattern).as_posix()
        return normalized + "/**" if pattern.endswith("/") else normalized

    def _expand(self, workspace_root: Path, pattern: str,
                excludes: List[re.Pattern]) -> List[Path]:
        pattern = self._normalize(pattern)
        include = compile_glob(pattern)
        # A trailing ** selects files only; any other final segment can
        # select a directory, which the caller reports as an error.
        directories_match = PurePosixPath(pattern).name != "**"

        search_root = self.search_root(workspace_root, pattern)
        if not search_root.is_dir():
            return []

        try:
            candidates = list(search_root.rglob("*"))
        except OSError as e:
            raise PatternError(f"Cannot resolve file pattern {pattern!r}: {e}") from e

        selected = []
        for path in candidates:
            relative = path.relative_to(workspace_root).as_posix()
            if not include.match(relative):
                continue
            if not directories_match and path.is_dir():
                continue
            if any(exclude.match(relative) for exclude in excludes):
                logger.debug(f"Excluded {relative}")
                continue
            selected.append((relative, path))

        return [path for _, path in sorted(selected)]
