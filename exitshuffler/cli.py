#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import pathlib
import random
import sys

from .graph import draw_groups, find_group_cluster, vanilla_topology
from .resources import (
    FixtureError,
    choose_random_start,
    get_default_world,
    load_topology,
    load_world,
    resolve_exit,
    save_topology,
)
from .shuffler import OUTSIDE_THRESHOLD, ShuffleError, Shuffler
from .topology import TopologyDecodeError
from .version import __version__


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Randomise the exits between areas, keeping every area reachable."
    )
    parser.add_argument(
        "DEST", type=pathlib.Path, help="Path to write (or read) the save file."
    )
    parser.add_argument(
        "--groups",
        type=pathlib.Path,
        help="JSON file describing the area groups. Defaults to the bundled world.",
    )
    parser.add_argument(
        "--start",
        help="Start point, either REGION:SLOT or a region name from the groups file.",
    )
    parser.add_argument(
        "--default-start",
        action="store_true",
        help="Start at the groups file's default start point instead of a random one.",
    )
    parser.add_argument(
        "--allow-vanilla-exits",
        action="store_true",
        help="Don't try to stop exits from leading where they do in the vanilla game.",
    )
    parser.add_argument(
        "--outside-threshold",
        type=int,
        default=OUTSIDE_THRESHOLD,
        help="Number of exits that makes a group count as a large outside area.",
    )
    parser.add_argument(
        "--random-seed",
        type=int,
        help="Number to use for initializing the random number generator.",
    )
    parser.add_argument(
        "--binary",
        action="store_true",
        help="Write the save file in the binary format.",
    )
    parser.add_argument(
        "--load",
        action="store_true",
        help="Don't shuffle; read the existing save file from DEST.",
    )
    parser.add_argument(
        "--query",
        action="append",
        default=[],
        metavar="POINT",
        help="Print where the exit arriving at POINT now leads. Can be repeated.",
    )
    parser.add_argument(
        "--output-maps",
        type=pathlib.Path,
        help="Export group maps in DOT format (requires graphviz)",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program's version number and exit.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show verbose logging output."
    )
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        world = load_world(args.groups) if args.groups else get_default_world()
    except (OSError, FixtureError) as e:
        parser.exit(1, f"Could not load groups: {e}\n")

    if args.load:
        try:
            topology = load_topology(args.DEST)
        except TopologyDecodeError as e:
            parser.exit(1, f"Save file is corrupt: {e}\n")
        if topology is None:
            parser.exit(1, f"No save file found in {args.DEST}\n")
        print(f"Loaded {len(topology)} exits from {args.DEST}")
    else:
        random_seed = args.random_seed
        if random_seed is None:
            random_seed = random.randint(0, 2**32)
        print(f"Using random seed {random_seed}")
        random.seed(random_seed)

        try:
            if args.start:
                start = world.parse_point(args.start)
            elif args.default_start and world.start is not None:
                start = world.start
            else:
                start = choose_random_start(world.groups)
        except (FixtureError, ShuffleError) as e:
            parser.exit(1, f"Could not pick a start point: {e}\n")
        print(f"Starting at {world.describe_point(start)} ({start})")

        config = world.shuffle_config(
            outside_threshold=args.outside_threshold,
            force_all_exits_to_change=not args.allow_vanilla_exits,
        )
        shuffler = Shuffler(world.groups, config)
        print("Shuffling exits...")
        try:
            topology = shuffler.shuffle(start)
        except ShuffleError as e:
            parser.exit(1, f"Shuffle failed: {e}\n")

        reachable = find_group_cluster(world.groups, topology, start)
        print(
            f"Connected {len(topology)} exits, {len(topology.unresolved)} unresolved, "
            f"{len(reachable)}/{len(world.groups)} groups reachable"
        )

        if args.output_maps:
            args.output_maps.mkdir(parents=True, exist_ok=True)
            names = world.region_names
            draw_groups(
                world.groups,
                vanilla_topology(world.groups),
                args.output_maps / "groups_before.dot",
                names,
            )
            draw_groups(
                world.groups, topology, args.output_maps / "groups_after.dot", names
            )

        args.DEST.mkdir(parents=True, exist_ok=True)
        target = save_topology(args.DEST, topology, binary=args.binary)
        print(f"Saved map to {target}")

    for query in args.query:
        try:
            point = world.parse_point(query)
        except FixtureError as e:
            parser.exit(1, f"{e}\n")
        new_point = resolve_exit(topology, point)
        print(f"{world.describe_point(point)} -> {world.describe_point(new_point)}")

    print("Done.")


if __name__ == "__main__":
    main()
