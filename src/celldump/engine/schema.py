"""
Table and column-family descriptors.

A TableDescriptor names a table, declares its families (each with a retained
version count), the durability used when a mutation asks for DEFAULT, and the
split points that cut the row space into partitions.

JSON form (schema.json in the local store):
{
  "name": "t1",
  "durability": "SYNC_WAL",
  "families": [{"name": "cf1", "max_versions": 3}],
  "split_points": ["row5"]
}
Family names and split points use the "\\xNN" binary escapes of celldump.core.serde.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from celldump.core.constants import DEFAULT_MAX_VERSIONS
from celldump.core.import_spec import Durability
from celldump.core.serde import to_bytes_binary, to_string_binary

from .interfaces import Partition


@dataclass(frozen=True, slots=True)
class FamilySpec:
    name: bytes
    max_versions: int = DEFAULT_MAX_VERSIONS

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("column family name must be non-empty")
        if self.max_versions < 1:
            raise ValueError(f"max_versions must be >= 1, got {self.max_versions}")


@dataclass(frozen=True, slots=True)
class TableDescriptor:
    """
    Immutable table layout.

    Examples:
        >>> d = TableDescriptor.of("t1", {b"a": 3, b"b": 1}, split_points=(b"m",))
        >>> [p.stop_row for p in d.partitions()]
        [b'm', None]
    """

    name: str
    families: tuple[FamilySpec, ...]
    durability: Durability = Durability.SYNC_WAL
    split_points: tuple[bytes, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        names = [f.name for f in self.families]
        if len(names) != len(set(names)):
            raise ValueError(f"table {self.name!r} declares a family twice")
        if self.durability is Durability.DEFAULT:
            raise ValueError("a table's durability cannot be DEFAULT")
        if list(self.split_points) != sorted(set(self.split_points)):
            raise ValueError("split points must be strictly increasing")

    @classmethod
    def of(
        cls,
        name: str,
        families: dict[bytes, int],
        *,
        durability: Durability = Durability.SYNC_WAL,
        split_points: tuple[bytes, ...] = (),
    ) -> TableDescriptor:
        return cls(
            name,
            tuple(FamilySpec(f, v) for f, v in families.items()),
            durability,
            tuple(split_points),
        )

    def family(self, name: bytes) -> FamilySpec | None:
        for f in self.families:
            if f.name == name:
                return f
        return None

    def family_names(self) -> set[bytes]:
        return {f.name for f in self.families}

    def partitions(self) -> list[Partition]:
        bounds: list[bytes | None] = [None, *self.split_points, None]
        return [Partition(i, bounds[i], bounds[i + 1]) for i in range(len(bounds) - 1)]

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "durability": self.durability.value,
            "families": [
                {"name": to_string_binary(f.name), "max_versions": f.max_versions}
                for f in self.families
            ],
            "split_points": [to_string_binary(s) for s in self.split_points],
        }

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> TableDescriptor:
        return cls(
            name=obj["name"],
            families=tuple(
                FamilySpec(
                    to_bytes_binary(f["name"]),
                    int(f.get("max_versions", DEFAULT_MAX_VERSIONS)),
                )
                for f in obj.get("families", [])
            ),
            durability=Durability(obj.get("durability", Durability.SYNC_WAL.value)),
            split_points=tuple(to_bytes_binary(s) for s in obj.get("split_points", [])),
        )
