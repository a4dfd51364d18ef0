"""
Core package aggregator for celldump contracts (cells, ordering, codec, filters, specs).

## Contracts (single source of truth)
- Cells: CellType wire codes, Cell and Row value types, tombstone scopes.
- Ordering: compound comparator combinator and the cell storage order.
- Codec: encoded-row record layout (`encode` / `decode` / `iter_decode`).
- Filters: RowFilter capability, FilterDecision, static name registry.
- Specs: ScanSpec (export) and ImportSpec (import) built from CLI positionals and -D options.
- Hashing/Serde: dump record digests, `\\xNN` binary escapes.
- Versioning/Constants/Errors: dump format tag, defaults, typed exceptions.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Naming policy: enum `.value` and option keys are lower_snake / dotted lower case.

## Downstream usage
- celldump.io: writes encoded rows into Parquet parts and embeds FORMAT_V as metadata.
- celldump.engine: orders cells with CELL_ORDER and resolves tombstones per cells.py semantics.
- celldump.jobs: builds specs, validates filters, encodes on export and decodes on import.

## Examples
```python
from celldump.core.cells import put, delete_family
from celldump.core.codec import decode, encode

cells = (delete_family(b"r1", b"cf", 10), put(b"r1", b"cf", b"q", 5, b"v"))
decode(encode(cells)) == cells  # True
```
"""
