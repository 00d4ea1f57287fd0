"""Path normalization for inventory lookups.

Destination storage may change the case of names on upload, so lookups go
through a case-folded key.
"""

from __future__ import annotations


def normalize_path(raw: str) -> str:
    """Return ``raw`` with forward-slash separators and surrounding quotes removed."""
    return raw.strip('"').replace("\\", "/")


def path_key(raw: str) -> str:
    """Return the case-insensitive lookup key for ``raw``."""
    return normalize_path(raw).casefold()


def normalize_prefix(raw: str) -> str:
    """Return ``raw`` with forward slashes and exactly one trailing ``/``.

    Used to rebuild absolute paths from records that carry a relative path.
    """
    prefix = normalize_path(raw).rstrip("/")
    return prefix + "/"
