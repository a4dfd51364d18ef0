"""
Durability controller for import writes.

One durability level applies to a whole import job. The controller stamps it on
every RowMutations before handing it to the sink; the sink's write-ahead log then
decides whether an entry is produced (none under SKIP_WAL). DEFAULT is passed
through and resolved by the destination table.
"""

from __future__ import annotations

import logging

from celldump.core.import_spec import Durability
from celldump.engine.interfaces import MutationSink
from celldump.engine.mutations import RowMutations

logger = logging.getLogger(__name__)


class DurabilityController:
    def __init__(self, sink: MutationSink, durability: Durability = Durability.DEFAULT) -> None:
        self.sink = sink
        self.durability = durability
        if durability is Durability.SKIP_WAL:
            logger.warning("writes to the WAL are disabled; data is lost if a server fails")

    def submit(self, mutations: RowMutations) -> None:
        """Stamp the job durability and apply through the sink."""
        self.sink.apply(mutations.with_durability(self.durability))
