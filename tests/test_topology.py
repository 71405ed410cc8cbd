"""Tests for the topology map, its text and binary encodings and lookups."""

import pytest

from exitshuffler.areas import ConnectionPoint
from exitshuffler.topology import TopologyDecodeError, TopologyMap


def cp(region: int, slot: int = 0) -> ConnectionPoint:
    return ConnectionPoint(region, slot)


class TestTextEncoding:
    def test_decode_pair(self) -> None:
        topology = TopologyMap.decode("0:1=2:3,2:3=0:1")
        assert topology is not None
        assert len(topology) == 2
        assert topology.lookup(cp(0, 1)) == cp(2, 3)
        assert topology.lookup(cp(2, 3)) == cp(0, 1)

    def test_reencode_pair(self) -> None:
        topology = TopologyMap.decode("2:3=0:1,0:1=2:3")
        assert topology is not None
        assert topology.encode() == "0:1=2:3,2:3=0:1"

    def test_round_trip(self) -> None:
        topology = TopologyMap({cp(5, 1): cp(9, 0), cp(9, 2): cp(5, 3), cp(1): cp(12, 31)})
        assert TopologyMap.decode(topology.encode()) == topology

    def test_missing_slot_defaults_to_zero(self) -> None:
        topology = TopologyMap.decode("4=5:2")
        assert topology is not None
        assert topology.lookup(cp(4, 0)) == cp(5, 2)

    def test_absent_string_is_absent_map(self) -> None:
        assert TopologyMap.decode(None) is None

    def test_empty_string_is_empty_map(self) -> None:
        assert TopologyMap.decode("") == TopologyMap({})
        assert TopologyMap({}).encode() == ""

    @pytest.mark.parametrize(
        "text",
        [
            "0:1",
            "0:1=2:3=4:5",
            "x:1=2:3",
            "0:1=2:y",
            "0:1=2:3:4",
            "0:1=2:3,",
            "1_0:2=3:4",
            "0:1=2:\u0663",
            "0:1= 2:3",
        ],
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(TopologyDecodeError):
            TopologyMap.decode(text)

    def test_decode_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            TopologyMap.decode("garbage")


class TestBinaryEncoding:
    def test_round_trip(self) -> None:
        topology = TopologyMap({cp(0, 1): cp(2, 3), cp(2, 3): cp(0, 1), cp(69, 31): cp(7)})
        data = topology.encode_binary()
        assert len(data) == 4 + 16 * 3
        assert data[:4] == b"\x03\x00\x00\x00"
        assert TopologyMap.decode_binary(data) == topology

    def test_empty(self) -> None:
        assert TopologyMap.decode_binary(TopologyMap({}).encode_binary()) == TopologyMap({})

    def test_truncated(self) -> None:
        data = TopologyMap({cp(0, 1): cp(2, 3)}).encode_binary()
        with pytest.raises(TopologyDecodeError):
            TopologyMap.decode_binary(data[:-1])

    def test_count_mismatch(self) -> None:
        data = TopologyMap({cp(0, 1): cp(2, 3)}).encode_binary()
        with pytest.raises(TopologyDecodeError):
            TopologyMap.decode_binary(b"\x02\x00\x00\x00" + data[4:])

    def test_negative_ids_rejected(self) -> None:
        with pytest.raises(ValueError):
            TopologyMap({cp(-1, 0): cp(1, 0)}).encode_binary()


class TestTopologyMap:
    def test_lookup_missing(self) -> None:
        assert TopologyMap({cp(1): cp(2)}).lookup(cp(3)) is None

    def test_contains(self) -> None:
        topology = TopologyMap({cp(1): cp(2)})
        assert cp(1) in topology
        assert cp(2) not in topology

    def test_unresolved_ignored_by_equality(self) -> None:
        a = TopologyMap({cp(1): cp(2)}, frozenset({cp(3)}))
        b = TopologyMap({cp(1): cp(2)})
        assert a == b
        assert a.encode() == b.encode()

    def test_mapping_is_read_only(self) -> None:
        source = {cp(1): cp(2)}
        topology = TopologyMap(source)
        source[cp(3)] = cp(4)
        assert cp(3) not in topology
        with pytest.raises(TypeError):
            topology.mapping[cp(5)] = cp(6)  # type: ignore[index]

    def test_not_hashable(self) -> None:
        with pytest.raises(TypeError):
            hash(TopologyMap({cp(1): cp(2)}))
