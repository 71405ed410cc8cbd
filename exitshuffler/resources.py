from __future__ import annotations

import json
import logging
import pathlib
import random
from dataclasses import dataclass, field
from typing import Any

from typing_extensions import NotRequired, TypedDict

from .areas import ConnectionPoint, Group, Link
from .shuffler import NoGroupData, ShuffleConfig
from .topology import TopologyMap
from .version import __version__

log = logging.getLogger(__name__)

DEFAULT_WORLD_PATH = pathlib.Path(__file__).parent / "data" / "default_groups.json"

SAVE_FILE_NAME = f"exitshuffler.{__version__}.savedata"
SAVE_FILE_NAME_BINARY = f"{SAVE_FILE_NAME}.bin"


class FixtureError(ValueError):
    pass


class IGroupData(TypedDict):
    id: str
    description: NotRequired[str]
    links: list[list[str]]
    one_way_to: NotRequired[list[str]]


class IWorldData(TypedDict):
    start: NotRequired[str]
    auxiliary_group: NotRequired[str]
    exempt_hub: NotRequired[str]
    regions: NotRequired[dict[str, int]]
    groups: list[IGroupData]


@dataclass
class World:
    groups: list[Group]
    start: ConnectionPoint | None = None
    auxiliary_group: str | None = None
    exempt_hub: str | None = None
    regions: dict[str, int] = field(default_factory=dict)

    @property
    def region_names(self) -> dict[int, str]:
        return {v: k for k, v in self.regions.items()}

    def describe_point(self, point: ConnectionPoint) -> str:
        name = self.region_names.get(point.region)
        if name is None:
            return str(point)
        return f"{name}:{point.slot}"

    def parse_point(self, text: str) -> ConnectionPoint:
        return parse_point(text, self.regions)

    def shuffle_config(self, **kwargs: Any) -> ShuffleConfig:
        return ShuffleConfig(
            auxiliary_group=self.auxiliary_group, exempt_hub=self.exempt_hub, **kwargs
        )


def parse_point(text: str, regions: dict[str, int] | None = None) -> ConnectionPoint:
    # either "Region:slot" using the fixture's region names, or plain "12:3"
    region, _, slot = text.strip().partition(":")
    if regions and region in regions:
        region = str(regions[region])
    try:
        return ConnectionPoint.parse(f"{region}:{slot}" if slot else region)
    except ValueError as e:
        raise FixtureError(f"Invalid connection point {text!r}") from e


def world_from_data(data: IWorldData) -> World:
    regions = data.get("regions", {})
    groups: list[Group] = []
    try:
        for group_data in data["groups"]:
            links = []
            for pair in group_data["links"]:
                if len(pair) != 2:
                    raise FixtureError(
                        f"Group {group_data['id']} has a link without exactly two points: {pair}"
                    )
                links.append(
                    Link(parse_point(pair[0], regions), parse_point(pair[1], regions))
                )
            groups.append(
                Group(
                    group_data["id"],
                    tuple(links),
                    tuple(group_data.get("one_way_to", [])),
                    group_data.get("description", ""),
                )
            )
    except (KeyError, TypeError) as e:
        raise FixtureError(f"Malformed group data: {e!r}") from e
    except FixtureError:
        raise
    except ValueError as e:
        raise FixtureError(str(e)) from e

    group_ids = {g.id for g in groups}
    for group in groups:
        for target in group.one_way_to:
            if target not in group_ids:
                log.warning(f"Group {group.id} has a one-way link to unknown group {target}")

    start = data.get("start")
    return World(
        groups=groups,
        start=parse_point(start, regions) if start else None,
        auxiliary_group=data.get("auxiliary_group"),
        exempt_hub=data.get("exempt_hub"),
        regions=dict(regions),
    )


def load_world(path: pathlib.Path) -> World:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise FixtureError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise FixtureError(f"Expected a JSON object in {path}")
    world = world_from_data(data)
    log.debug(f"Loaded {len(world.groups)} groups from {path}")
    return world


def get_default_world() -> World:
    return load_world(DEFAULT_WORLD_PATH)


def choose_random_start(groups: list[Group], rng: random.Random | None = None) -> ConnectionPoint:
    # warp to a random exit of a random group
    rng = rng if rng is not None else random
    if not groups:
        raise NoGroupData("Cannot pick a start point without any groups")
    group = groups[rng.randrange(len(groups))]
    return group.links[rng.randrange(len(group.links))].from_


def save_topology(
    path: pathlib.Path, topology: TopologyMap, binary: bool = False
) -> pathlib.Path:
    if binary:
        target = path / SAVE_FILE_NAME_BINARY
        with open(target, "wb") as f:
            f.write(topology.encode_binary())
    else:
        target = path / SAVE_FILE_NAME
        with open(target, "w", encoding="utf-8") as f:
            f.write(topology.encode())
    log.info(f"Saved randomized map data to {target}")
    return target


def load_topology(path: pathlib.Path) -> TopologyMap | None:
    if (path / SAVE_FILE_NAME).exists():
        log.info(f"Loading randomized map data from {path / SAVE_FILE_NAME}")
        with open(path / SAVE_FILE_NAME, "r", encoding="utf-8") as f:
            return TopologyMap.decode(f.read())
    if (path / SAVE_FILE_NAME_BINARY).exists():
        log.info(f"Loading randomized map data from {path / SAVE_FILE_NAME_BINARY}")
        with open(path / SAVE_FILE_NAME_BINARY, "rb") as f:
            return TopologyMap.decode_binary(f.read())
    return None


def resolve_exit(
    topology: TopologyMap | None, point: ConnectionPoint
) -> ConnectionPoint:
    if topology is None:
        log.debug("Exits not randomized.")
        return point
    new_point = topology.lookup(point)
    if new_point is None:
        log.warning(f"Could not find mapping for exit: {point}")
        return point
    log.debug(f"Changing exit {point} to {new_point}")
    return new_point
