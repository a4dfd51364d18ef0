"""
celldump.jobs: export and import jobs over the engine contracts.

## Responsibilities
- ExportJob / Exporter: scan each source partition into one dump part.
- ImportJob / Importer: replay dump parts as row mutations or bulk-output store files.
- validate_filter: resolve and check a registered row filter before any task runs.
- DurabilityController: apply the job's WAL durability to every row mutation.
- LocalTaskRunner: run partition tasks on a thread pool with per-task failure isolation.

## Import DAG discipline
- Depends on celldump.core, celldump.io and celldump.engine; MUST NOT import celldump.cli.
"""

from __future__ import annotations

from .durability import DurabilityController
from .executor import LocalTaskRunner, TaskResult
from .export import Exporter, ExportJob
from .filter_validator import validate_filter
from .importer import Importer, ImportJob
from .state import JobResult, JobState

__all__ = [
    "DurabilityController",
    "LocalTaskRunner",
    "TaskResult",
    "Exporter",
    "ExportJob",
    "validate_filter",
    "Importer",
    "ImportJob",
    "JobResult",
    "JobState",
]
