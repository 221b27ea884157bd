"""Identifier validation applied to every externally supplied id."""

import re

from ..errors import InvalidArgument

# Store identifiers are 24-character hex object ids.
_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")


def is_valid_id(candidate) -> bool:
    return isinstance(candidate, str) and bool(_ID_PATTERN.fullmatch(candidate))


def require_ids(*candidates) -> None:
    """Raise ``InvalidArgument`` unless every candidate is a well-formed id."""
    for candidate in candidates:
        if not is_valid_id(candidate):
            raise InvalidArgument(f"not valid id: {candidate!r}")
