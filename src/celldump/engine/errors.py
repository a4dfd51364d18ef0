"""
Exceptions raised by the reference storage engine.

Boundaries
- EngineError: base for engine failures surfaced to jobs and the CLI.
  - NoSuchTableError: a table name is not known to the store.
  - TableExistsError: create_table on a name already in use.
  - NoSuchFamilyError: a mutation or scan names a family the table does not have.

Notes
- A NoSuchFamilyError rejects the whole RowMutations; nothing of the row is applied.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for storage engine errors."""


class NoSuchTableError(EngineError):
    pass


class TableExistsError(EngineError):
    pass


class NoSuchFamilyError(EngineError):
    """Raised when a mutation targets a column family the table does not declare."""
