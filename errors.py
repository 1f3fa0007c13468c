"""
errors.py

Exception types surfaced to the operator by the QC Chart application.
"""

from __future__ import annotations


class PreconditionError(ValueError):
    """An operator request was rejected; the state is unchanged."""


class DuplicateError(PreconditionError):
    """A folder or library asset with the same identity already exists."""


class StorageError(RuntimeError):
    """The persistent store could not be written (I/O failure or capacity exceeded)."""


class ExportError(RuntimeError):
    """Rasterizing or assembling an export failed; no output file was produced."""
