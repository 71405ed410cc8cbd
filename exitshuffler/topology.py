from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from mrcrowbar import models as mrc

from .areas import ConnectionPoint

log = logging.getLogger(__name__)


class TopologyDecodeError(ValueError):
    pass


# binary save format, for hosts which would rather not parse text
class MapEntry(mrc.Block):
    key_region = mrc.UInt32_LE()
    key_slot = mrc.UInt32_LE()
    value_region = mrc.UInt32_LE()
    value_slot = mrc.UInt32_LE()


class TopologyBlock(mrc.Block):
    count = mrc.UInt32_LE()
    entries = mrc.BlockField(MapEntry, count=mrc.Ref("count"))


MAP_ENTRY_SIZE = 16


@dataclass(frozen=True)
class TopologyMap:
    """The result of a shuffle: original arrival point -> new arrival point.

    Keys are the "to" points of the input links. Using the exit which used to
    lead to a key now leads to its value instead. Arrival points the shuffler
    couldn't pair up are left out of the mapping and listed in unresolved.
    """

    mapping: Mapping[ConnectionPoint, ConnectionPoint] = field(default_factory=dict)
    unresolved: frozenset[ConnectionPoint] = field(
        default=frozenset(), compare=False
    )

    # read-only, but not hashable
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self):
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))

    def __len__(self) -> int:
        return len(self.mapping)

    def __contains__(self, point: object) -> bool:
        return point in self.mapping

    def items(self):
        return self.mapping.items()

    def lookup(self, point: ConnectionPoint) -> ConnectionPoint | None:
        return self.mapping.get(point)

    def encode(self) -> str:
        return ",".join(
            f"{key}={value}" for key, value in sorted(self.mapping.items())
        )

    @classmethod
    def decode(cls, text: str | None) -> TopologyMap | None:
        if text is None:
            return None
        text = text.strip()
        if not text:
            return cls({})

        mapping: dict[ConnectionPoint, ConnectionPoint] = {}
        for entry in text.split(","):
            pair = entry.split("=")
            if len(pair) != 2:
                raise TopologyDecodeError(f"Malformed map entry {entry!r}")
            try:
                key = ConnectionPoint.parse(pair[0])
                value = ConnectionPoint.parse(pair[1])
            except ValueError as e:
                raise TopologyDecodeError(f"Malformed map entry {entry!r}: {e}") from e
            if key in mapping:
                log.warning(f"Duplicate key {key} in encoded map, keeping the last one")
            mapping[key] = value
        return cls(mapping)

    def encode_binary(self) -> bytes:
        block = TopologyBlock()
        block.entries = []
        for key, value in sorted(self.mapping.items()):
            if min(key.region, key.slot, value.region, value.slot) < 0:
                raise ValueError(f"Can't store negative ids in binary map: {key}={value}")
            block.entries.append(MapEntry())
            block.entries[-1].key_region = key.region
            block.entries[-1].key_slot = key.slot
            block.entries[-1].value_region = value.region
            block.entries[-1].value_slot = value.slot
        block.count = len(block.entries)
        return block.export_data()

    @classmethod
    def decode_binary(cls, data: bytes) -> TopologyMap:
        if len(data) < 4 or (len(data) - 4) % MAP_ENTRY_SIZE:
            raise TopologyDecodeError(f"Binary map has invalid size {len(data)}")
        expected = int.from_bytes(data[:4], "little")
        if len(data) != 4 + expected * MAP_ENTRY_SIZE:
            raise TopologyDecodeError(
                f"Binary map header claims {expected} entries, found {(len(data) - 4) // MAP_ENTRY_SIZE}"
            )
        block = TopologyBlock(data)
        return cls(
            {
                ConnectionPoint(e.key_region, e.key_slot): ConnectionPoint(
                    e.value_region, e.value_slot
                )
                for e in block.entries
            }
        )
