from __future__ import annotations

from dataclasses import dataclass, field

# An area is addressed by a numeric region (the map being loaded) and a slot
# inside it (where the player appears). Exits are pairs of these: "from_" is
# where the exit entity stands, which is also the arrival point of some other
# exit, and "to" is where using the exit takes you.


@dataclass(frozen=True, order=True)
class ConnectionPoint:
    region: int
    slot: int = 0

    def __str__(self) -> str:
        return f"{self.region}:{self.slot}"

    @classmethod
    def parse(cls, text: str) -> ConnectionPoint:
        parts = text.split(":")
        if len(parts) > 2:
            raise ValueError(f"Too many separators in connection point {text!r}")
        for part in parts:
            # int() would also take "1_0", padding and non-ASCII digits
            digits = part[1:] if part.startswith("-") else part
            if not (digits.isascii() and digits.isdecimal()):
                raise ValueError(f"Connection point {text!r} is not numeric")
        region = int(parts[0])
        slot = int(parts[1]) if len(parts) > 1 else 0
        return cls(region, slot)


@dataclass(frozen=True)
class Link:
    from_: ConnectionPoint
    to: ConnectionPoint

    def __str__(self) -> str:
        return f"{self.from_} -> {self.to}"


@dataclass(frozen=True)
class Group:
    """A set of exits which can all be reached from each other on foot.

    one_way_to lists groups which can be opened up from this side only (e.g. a
    gate or a drop down a cliff); anything past them is treated as part of
    this group once it is reachable.
    """

    id: str
    links: tuple[Link, ...]
    one_way_to: tuple[str, ...] = ()
    description: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.links:
            raise ValueError(f"Group {self.id} has no links")


def is_multi_exit(group: Group) -> bool:
    return len(group.links) > 1 or len(group.one_way_to) > 0


def is_outside_class(group: Group, threshold: int) -> bool:
    # the big overworld maps
    return is_multi_exit(group) and len(group.links) >= threshold
