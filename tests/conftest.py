from __future__ import annotations

import pytest

from exitshuffler.areas import ConnectionPoint, Group, Link

# Worlds are described as undirected edges between (group, slot) pairs. Each
# edge becomes one link in each of the two groups, like a door seen from both
# sides. Group names map to regions in order of first appearance.


def build_groups(
    edges: list[tuple[tuple[str, int], tuple[str, int]]],
    one_way: dict[str, list[str]] | None = None,
) -> list[Group]:
    one_way = one_way or {}
    regions: dict[str, int] = {}
    links: dict[str, list[Link]] = {}

    def point(name: str, slot: int) -> ConnectionPoint:
        regions.setdefault(name, len(regions))
        links.setdefault(name, [])
        return ConnectionPoint(regions[name], slot)

    for (a_name, a_slot), (b_name, b_slot) in edges:
        a = point(a_name, a_slot)
        b = point(b_name, b_slot)
        links[a_name].append(Link(a, b))
        links[b_name].append(Link(b, a))

    return [
        Group(name, tuple(group_links), tuple(one_way.get(name, [])))
        for name, group_links in links.items()
    ]


def region_of(groups: list[Group], name: str) -> int:
    group = next(g for g in groups if g.id == name)
    return group.links[0].from_.region


# four hubs of four exits each, plus six dead ends
HUB_WORLD_EDGES = [
    (("H0", 0), ("H1", 0)),
    (("H1", 1), ("H2", 0)),
    (("H2", 1), ("H3", 0)),
    (("H0", 1), ("H2", 2)),
    (("H1", 2), ("H3", 1)),
    (("S0", 0), ("H0", 2)),
    (("S1", 0), ("H0", 3)),
    (("S2", 0), ("H1", 3)),
    (("S3", 0), ("H2", 3)),
    (("S4", 0), ("H3", 2)),
    (("S5", 0), ("H3", 3)),
]

# H0 is the start, BIG is the only large hub, X is the auxiliary dead end
AUX_WORLD_EDGES = [
    (("H0", 0), ("H1", 0)),
    (("H0", 1), ("BIG", 0)),
    (("H1", 1), ("BIG", 1)),
    (("H1", 2), ("BIG", 2)),
    (("BIG", 3), ("X", 0)),
    (("H0", 2), ("S", 0)),
]


@pytest.fixture
def hub_world() -> list[Group]:
    return build_groups(HUB_WORLD_EDGES)


@pytest.fixture
def hub_start(hub_world) -> ConnectionPoint:
    return ConnectionPoint(region_of(hub_world, "H0"), 0)


@pytest.fixture
def aux_world() -> list[Group]:
    return build_groups(AUX_WORLD_EDGES)
