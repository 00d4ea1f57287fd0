"""Application-level exception types.

Convention:
- ``ConfigurationError``: a required setting is missing for the chosen command.
  Raised before any input file is opened.
- ``InputFileError``: an input or output file cannot be opened.
- ``SnapshotFormatError``: a row of an inventory file is malformed (wrong
  field count, non-integer size, unparsable cloud timestamp).  It subclasses
  ``ValueError`` so plain parsing code can treat it as bad input.
- ``PipelineError``: a stage of the reconciliation pipeline failed.  The
  original exception is chained as ``__cause__``.

The CLI catches ``ReconcileError``, prints ``Error: <message>`` and exits with
status 1.
"""

from __future__ import annotations


class ReconcileError(Exception):
    """Base class for all reconciliation failures."""


class ConfigurationError(ReconcileError):
    """Raised when a required setting is missing or inconsistent."""


class InputFileError(ReconcileError):
    """Raised when an inventory or output file cannot be opened."""


class SnapshotFormatError(ReconcileError, ValueError):
    """Raised for a malformed row in an inventory file.

    ``line_number`` is 1-based and counts every physical line, including
    blank lines and header rows.
    """

    def __init__(
        self,
        message: str,
        *,
        line_number: int | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        self.line_number = line_number
        self.expected = expected
        self.actual = actual
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class PipelineError(ReconcileError):
    """Raised when the producer, a worker, or the sink fails."""


class PipelineCancelled(ReconcileError):
    """Raised inside a stage when another stage has already failed."""
