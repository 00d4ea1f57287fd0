"""Typed row records for the inventory file formats."""

from reconciler.schemas.rows import CloudRow, ProjectRow, SnapshotRow

__all__ = [
    "CloudRow",
    "ProjectRow",
    "SnapshotRow",
]
