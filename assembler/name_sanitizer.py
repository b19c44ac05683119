"""Maps client supplied display names to safe destination file names."""

import re
from typing import Optional

from common.constants import SAFE_NAME_PATTERN

_UNSAFE_CHARS = re.compile(SAFE_NAME_PATTERN)


def sanitize_file_name(name: Optional[str]) -> Optional[str]:
    """
    Return a file name that is safe to create under the output directory.

    Names containing '/' or '\\' are rejected outright rather than cleaned,
    so a traversal attempt never maps onto a legitimate file name.

    Args:
        name: Display name supplied by the client

    Returns:
        Name with every character outside [a-zA-Z0-9._-] replaced by '_',
        or None if the name is empty, contains a path separator or would
        address a directory ('.' or '..')
    """
    if not name or "/" in name or "\\" in name:
        return None
    safe_name = _UNSAFE_CHARS.sub("_", name)
    if safe_name in (".", ".."):
        return None
    return safe_name
