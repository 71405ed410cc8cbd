from __future__ import annotations

import logging
import pathlib
from collections.abc import Iterable

from .areas import ConnectionPoint, Group
from .topology import TopologyMap

log = logging.getLogger(__name__)


def vanilla_topology(groups: Iterable[Group]) -> TopologyMap:
    # every exit leads where it always did
    return TopologyMap({link.to: link.to for group in groups for link in group.links})


def build_group_graph(
    groups: Iterable[Group], topology: TopologyMap
) -> dict[str, set[str]]:
    groups = list(groups)
    owner_of_from: dict[ConnectionPoint, str] = {}
    owner_of_to: dict[ConnectionPoint, str] = {}
    for group in groups:
        for link in group.links:
            owner_of_from.setdefault(link.from_, group.id)
            owner_of_to.setdefault(link.to, group.id)

    adjacency: dict[str, set[str]] = {group.id: set() for group in groups}
    for key, value in topology.items():
        # the exit which used to arrive at key now arrives at value
        src = owner_of_to.get(key)
        dest = owner_of_from.get(value)
        if src is None or dest is None:
            continue
        adjacency[src].add(dest)
        adjacency[dest].add(src)

    for group in groups:
        for target in group.one_way_to:
            if target in adjacency:
                adjacency[group.id].add(target)
    return adjacency


def find_group_cluster(
    groups: Iterable[Group], topology: TopologyMap, start: ConnectionPoint
) -> set[str]:
    groups = list(groups)
    start_group = next(
        (g.id for g in groups for link in g.links if link.from_ == start), None
    )
    if start_group is None:
        return set()

    adjacency = build_group_graph(groups, topology)
    result = {start_group}
    to_visit = [start_group]
    while to_visit:
        for target in adjacency[to_visit.pop()]:
            if target not in result:
                result.add(target)
                to_visit.append(target)
    return result


def draw_groups(
    groups: Iterable[Group],
    topology: TopologyMap,
    filename: pathlib.Path,
    names: dict[int, str] | None = None,
) -> None:
    try:
        import graphviz
    except ImportError:
        log.warning("graphviz is not installed, skipping map output")
        return

    groups = list(groups)
    names = names or {}

    def label(point: ConnectionPoint) -> str:
        return f"{names.get(point.region, point.region)}:{point.slot}"

    owner_of_from = {
        link.from_: group.id for group in reversed(groups) for link in group.links
    }
    g = graphviz.Digraph(
        edge_attr={"fontsize": "10"}, graph_attr={"rankdir": "LR", "overlap": "false"}
    )
    for group in groups:
        g.node(
            f"group_{group.id}",
            label=group.description or group.id,
            shape="rectangle",
            style="filled, rounded",
            fillcolor="khaki" if len(group.links) > 1 else "lightgray",
        )

    for group in groups:
        for link in group.links:
            new_to = topology.lookup(link.to)
            if new_to is None or new_to not in owner_of_from:
                continue
            g.edge(
                f"group_{group.id}",
                f"group_{owner_of_from[new_to]}",
                label=f"{label(link.from_)} -> {label(new_to)}",
            )
        for target in group.one_way_to:
            g.edge(f"group_{group.id}", f"group_{target}", style="dashed")

    g.save(filename=str(filename))
