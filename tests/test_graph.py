import sys

import pytest

from conftest import build_groups, region_of
from exitshuffler.areas import ConnectionPoint
from exitshuffler.graph import (
    build_group_graph,
    draw_groups,
    find_group_cluster,
    vanilla_topology,
)
from exitshuffler.topology import TopologyMap


class TestGroupGraph:
    def test_vanilla_edges(self, hub_world) -> None:
        graph = build_group_graph(hub_world, vanilla_topology(hub_world))
        assert graph["H0"] == {"H1", "H2", "S0", "S1"}
        assert graph["S5"] == {"H3"}

    def test_vanilla_is_connected(self, hub_world, hub_start) -> None:
        cluster = find_group_cluster(hub_world, vanilla_topology(hub_world), hub_start)
        assert cluster == {g.id for g in hub_world}

    def test_empty_topology(self, hub_world, hub_start) -> None:
        assert find_group_cluster(hub_world, TopologyMap({}), hub_start) == {"H0"}

    def test_unknown_start(self, hub_world) -> None:
        topology = vanilla_topology(hub_world)
        assert find_group_cluster(hub_world, topology, ConnectionPoint(99, 9)) == set()

    def test_one_way_edges_are_directed(self) -> None:
        groups = build_groups(
            [(("A", 0), ("B", 0)), (("C", 0), ("D", 0))], one_way={"A": ["C"]}
        )
        graph = build_group_graph(groups, TopologyMap({}))
        assert graph["A"] == {"C"}
        assert graph["C"] == set()

        a = ConnectionPoint(region_of(groups, "A"), 0)
        d = ConnectionPoint(region_of(groups, "D"), 0)
        topology = vanilla_topology(groups)
        assert find_group_cluster(groups, topology, a) == {"A", "B", "C", "D"}
        assert find_group_cluster(groups, topology, d) == {"C", "D"}


class TestDrawGroups:
    def test_writes_dot(self, hub_world, tmp_path) -> None:
        pytest.importorskip("graphviz")
        target = tmp_path / "groups.dot"
        names = {region_of(hub_world, "H0"): "Village"}
        draw_groups(hub_world, vanilla_topology(hub_world), target, names)
        source = target.read_text()
        assert "group_H0" in source
        assert "khaki" in source
        assert "Village:0" in source

    def test_one_way_dashed(self, tmp_path) -> None:
        pytest.importorskip("graphviz")
        groups = build_groups(
            [(("A", 0), ("B", 0)), (("C", 0), ("D", 0))], one_way={"A": ["C"]}
        )
        target = tmp_path / "groups.dot"
        draw_groups(groups, vanilla_topology(groups), target)
        assert "dashed" in target.read_text()

    def test_without_graphviz(self, hub_world, tmp_path, monkeypatch, caplog) -> None:
        monkeypatch.setitem(sys.modules, "graphviz", None)
        target = tmp_path / "groups.dot"
        draw_groups(hub_world, vanilla_topology(hub_world), target)
        assert not target.exists()
        assert "graphviz is not installed" in caplog.text
