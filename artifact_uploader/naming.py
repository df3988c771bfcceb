"""
Object key computation for matched files.
"""
from typing import Optional

from .models import MatchedFile


def resolve_object_key(match: MatchedFile, prefix: Optional[str] = None) -> str:
    """Compute the object key a matched file is stored under.

    With a prefix only the file's base name is kept and the prefix is
    prepended verbatim; without one the path relative to the search root is
    used as is.

    Args:
        match: File matched by a source pattern
        prefix: Optional object name prefix

    Returns:
        Object key, always slash-separated
    """
    relative_path = match.relative_path
    if prefix:
        return f"{prefix}/{relative_path.split('/')[-1]}"
    return relative_path
