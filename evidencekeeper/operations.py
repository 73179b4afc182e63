"""Operation names and the slugs derived from them."""

from __future__ import annotations

import re

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9]+")
_EDGE_DASH = re.compile(r"^-|-$")

EMPTY_NAME_MESSAGE = "The Operation Name must not be empty"
NO_ALNUM_MESSAGE = "The Operation Name must include letters or numbers"


class InvalidOperationName(ValueError):
    """Raised when an operation name cannot be turned into a slug."""


def make_slug_from_name(name: str) -> str:
    """Lower-case name, turn each run of other characters into one dash, trim edge dashes."""
    return _EDGE_DASH.sub("", _INVALID_CHARS.sub("-", name.lower()))


def validate_operation_name(name: str) -> tuple[str, str]:
    """Return the trimmed name and its slug.

    Raises InvalidOperationName if the name yields an empty slug.
    """
    trimmed = name.strip()
    slug = make_slug_from_name(trimmed)
    if not slug:
        raise InvalidOperationName(EMPTY_NAME_MESSAGE if not trimmed else NO_ALNUM_MESSAGE)
    return trimmed, slug