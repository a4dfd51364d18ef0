"""
celldump: bulk export/import of multiversion tables.

Layers (lower layers never import higher ones):
- celldump.core    zero-IO contracts (cells, ordering, codec, filters, specs)
- celldump.io      dump files on disk (Parquet parts, manifests, reports)
- celldump.engine  storage-engine contracts and a reference engine
- celldump.jobs    export/import jobs and the partition executor
- celldump.cli     `celldump export|import|bulkload`
"""
