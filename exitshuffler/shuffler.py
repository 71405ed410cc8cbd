from __future__ import annotations

import enum
import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass

from .areas import ConnectionPoint, Group, Link, is_multi_exit, is_outside_class
from .topology import TopologyMap

log = logging.getLogger(__name__)

OUTSIDE_THRESHOLD = 10


class ShuffleError(Exception):
    pass


class NoGroupData(ShuffleError):
    pass


class StartGroupNotFound(ShuffleError):
    pass


class ShuffleIssue(enum.Enum):
    DUPLICATE_ARRIVAL = "duplicate_arrival"
    DUPLICATE_DEPARTURE = "duplicate_departure"
    DUPLICATE_GROUP = "duplicate_group"
    UNKNOWN_ONE_WAY_TARGET = "unknown_one_way_target"
    CORE_EXHAUSTED = "core_exhausted"
    NO_AVAILABLE_EXIT = "no_available_exit"
    ORPHAN_ARRIVAL = "orphan_arrival"
    UNRESOLVED_ARRIVAL = "unresolved_arrival"


@dataclass
class ShuffleConfig:
    outside_threshold: int = OUTSIDE_THRESHOLD
    # (almost) never leave an exit leading where it does in the vanilla game
    force_all_exits_to_change: bool = True
    prefer_outside: bool = True
    auxiliary_group: str | None = None
    exempt_hub: str | None = None


class VanillaRetry:
    """Attempt counter for connecting one exit.

    The first attempt refuses to recreate the vanilla pairing of two exits;
    the second one accepts whatever is available.
    """

    def __init__(self, enabled: bool):
        self.enabled = enabled
        self.attempt = 0

    @property
    def must_accept(self) -> bool:
        return not self.enabled or self.attempt >= 1

    def advance(self) -> bool:
        if self.attempt >= 1:
            return False
        self.attempt += 1
        return True


class OutsidePreference:
    # after a short random countdown, connect the next hub straight to one of the
    # big outside areas instead of letting the core sprawl through dungeons first.
    def __init__(self, countdown: int, enabled: bool = True):
        self.countdown = countdown
        self.used = not enabled

    def wants_outside(self) -> bool:
        return not self.used and self.countdown <= 0

    def tick(self) -> None:
        self.countdown -= 1

    def mark_used(self) -> None:
        self.used = True


class AuxiliaryGroupRule:
    """Attach one specific single-exit group to the first big hub that connects.

    Some areas have their only entrance inside a hub whose doors lock later
    on; hanging them off a different outside area keeps them reachable.
    Fires at most once per shuffle.
    """

    def __init__(
        self, group_id: str | None, exempt_hub: str | None, threshold: int
    ):
        self.group_id = group_id
        self.exempt_hub = exempt_hub
        self.threshold = threshold
        self.fired = group_id is None

    def should_fire(self, target: Group) -> bool:
        return (
            not self.fired
            and len(target.links) >= self.threshold
            and target.id != self.exempt_hub
        )


class Shuffler:
    """Rewires the exits of a set of groups while keeping every group reachable.

    Each shuffle() builds its indexes from scratch and runs three passes:
    connect all the multi-exit groups to a core grown from the start, hang
    the single-exit groups off that core, then pair up whatever exits are
    left over.
    """

    def __init__(
        self,
        groups: Iterable[Group],
        config: ShuffleConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.groups = list(groups)
        self.config = config or ShuffleConfig()
        # fall back to the module-level generator so random.seed() applies
        self.rng = rng if rng is not None else random
        self.issues: list[tuple[ShuffleIssue, str]] = []

    def shuffle(self, start: ConnectionPoint) -> TopologyMap:
        self._reset_indexes()

        start_group_id = self.group_of_arrival.get(start)
        if start_group_id is None:
            log.error(f"Cannot find the group containing start point {start}.")
            raise StartGroupNotFound(f"No group contains start point {start}")

        log.debug(f"Unused arrival points before: {len(self.unresolved)}")

        # First, connect every group that has multiple exits. This ensures every group is accessible.
        self._connect_multi_exit_groups(self.group_by_id[start_group_id])
        log.debug(
            f"Unused arrival points after connective pass: {len(self.unresolved)}"
        )

        # Next, connect all single-exit groups to the core structure
        self._connect_single_exit_groups()
        log.debug(
            f"Unused arrival points after single-exit pass: {len(self.unresolved)}"
        )

        # Finally, shuffle the remaining exits. These should all be exits from multi-exit groups.
        self._shuffle_unconnected_arrivals()
        log.debug(f"Unused arrival points last of all: {len(self.unresolved)}")

        return TopologyMap(
            {k: v for k, v in self.pending.items() if v is not None},
            frozenset(k for k, v in self.pending.items() if v is None),
        )

    def _report(self, issue: ShuffleIssue, message: str, level: int = logging.WARNING):
        log.log(level, message)
        self.issues.append((issue, message))

    def _reset_indexes(self) -> None:
        self.issues = []
        self.group_by_id: dict[str, Group] = {}
        self.group_of_arrival: dict[ConnectionPoint, str] = {}
        # dicts rather than sets; iteration order has to be stable for a seed to reproduce
        self.multi_exit: dict[str, Group] = {}
        self.single_exit: dict[str, Group] = {}
        self.outside_class: dict[str, Group] = {}
        self.pending: dict[ConnectionPoint, ConnectionPoint | None] = {}
        self.reverse_of: dict[ConnectionPoint, ConnectionPoint] = {}
        self.unresolved: list[ConnectionPoint] = []
        self.core_frontier: list[Link] = []
        self.core: set[str] = set()
        # group ids in the order they joined the core, start first
        self.core_order: list[str] = []

        if not self.groups:
            log.error("No groups found, cannot shuffle.")
            raise NoGroupData("Cannot shuffle without any groups")

        threshold = self.config.outside_threshold
        for group in self.groups:
            if group.id in self.group_by_id:
                self._report(
                    ShuffleIssue.DUPLICATE_GROUP,
                    f"Duplicate group found! Id: {group.id}",
                )
                continue
            self.group_by_id[group.id] = group

            if is_multi_exit(group):
                self.multi_exit[group.id] = group
                if is_outside_class(group, threshold):
                    self.outside_class[group.id] = group
            else:
                self.single_exit[group.id] = group

            for link in group.links:
                if link.to in self.pending:
                    self._report(
                        ShuffleIssue.DUPLICATE_ARRIVAL,
                        f"Duplicate arrival point found! Group: {group.id}, point: {link.to}",
                    )
                    continue
                self.pending[link.to] = None
                self.unresolved.append(link.to)
                self.reverse_of[link.to] = link.from_
                owner = self.group_of_arrival.setdefault(link.from_, group.id)
                if owner != group.id:
                    self._report(
                        ShuffleIssue.DUPLICATE_DEPARTURE,
                        f"Duplicate departure point found! Group: {group.id}, point: {link.from_}, kept in group {owner}",
                    )

        for group in self.group_by_id.values():
            for target_id in group.one_way_to:
                if target_id not in self.group_by_id:
                    self._report(
                        ShuffleIssue.UNKNOWN_ONE_WAY_TARGET,
                        f"Group {group.id} has a one-way link to unknown group {target_id}",
                    )

    def _remove_from_indexes(self, group_id: str) -> None:
        self.multi_exit.pop(group_id, None)
        self.single_exit.pop(group_id, None)
        self.outside_class.pop(group_id, None)

    def _pick(self, index: dict[str, Group]) -> Group:
        return list(index.values())[self.rng.randrange(len(index))]

    def _is_available(self, link: Link) -> bool:
        # links dropped as duplicates don't own their arrival point
        return (
            link.to in self.pending
            and self.pending[link.to] is None
            and self.reverse_of[link.to] == link.from_
        )

    def _available_exit_count(self, group: Group, check_connected: bool = False) -> int:
        count = 0
        seen: set[str] = set()
        stack = [group]
        while stack:
            current = stack.pop()
            if current.id in seen:
                continue
            seen.add(current.id)
            count += sum(1 for link in current.links if self._is_available(link))
            if check_connected:
                stack.extend(
                    self.group_by_id[x]
                    for x in current.one_way_to
                    if x in self.group_by_id
                )
        return count

    def _use_arrival(self, point: ConnectionPoint) -> None:
        if point in self.unresolved:
            self.unresolved.remove(point)
        else:
            log.warning(
                f"Tried to use arrival point {point}, but it wasn't in the unused list"
            )

    def _find_core_link(self) -> Link | None:
        if self.core_frontier:
            return self.core_frontier[self.rng.randrange(len(self.core_frontier))]
        return None

    def _add_group_to_core(self, group: Group) -> None:
        # walking through a one-way gate is always possible, so whatever lies
        # behind it joins the core along with the group itself.
        stack = [group]
        while stack:
            current = stack.pop()
            if current.id in self.core:
                continue
            self.core.add(current.id)
            self.core_order.append(current.id)
            self._remove_from_indexes(current.id)

            for link in current.links:
                if self._is_available(link) and link not in self.core_frontier:
                    self.core_frontier.append(link)

            for target_id in reversed(current.one_way_to):
                target = self.group_by_id.get(target_id)
                if target is not None and target.id not in self.core:
                    stack.append(target)

    def _connect_links(self, source: Link, dest: Link) -> None:
        self.pending[source.to] = dest.from_
        self.pending[dest.to] = source.from_
        self._use_arrival(source.to)
        self._use_arrival(dest.to)
        for link in (source, dest):
            if link in self.core_frontier:
                self.core_frontier.remove(link)
        log.debug(f"Connected {source} with {dest}")

    def _find_available_link(
        self, source: Link, dest_group: Group, allow_vanilla: bool
    ) -> Link | None:
        links = dest_group.links
        offset = self.rng.randrange(len(links))
        for i in range(len(links)):
            candidate = links[(i + offset) % len(links)]
            if not self._is_available(candidate):
                continue
            # taking the source exit would land exactly where it always did
            if not allow_vanilla and source.to == candidate.from_:
                continue
            return candidate
        return None

    def _connect_link_to_group(self, source: Link, dest_group: Group) -> bool:
        retry = VanillaRetry(self.config.force_all_exits_to_change)
        while True:
            dest = self._find_available_link(source, dest_group, retry.must_accept)
            if dest is not None:
                self._connect_links(source, dest)
                return True

            if not self._available_exit_count(dest_group):
                self._report(
                    ShuffleIssue.NO_AVAILABLE_EXIT,
                    f"Cannot find valid exit for group {dest_group.id}.",
                    logging.ERROR,
                )
                return False

            if not retry.advance():
                return False
            log.debug(
                f"Only vanilla exits left in {dest_group.id} for {source}, retrying"
            )

    def _attach_auxiliary_group(self, group_id: str, target: Group) -> None:
        aux_group = self.single_exit.get(group_id)
        if aux_group is None:
            return
        self._remove_from_indexes(aux_group.id)
        source = aux_group.links[0]
        if not self._is_available(source):
            log.warning(f"Exit of group {aux_group.id} already used, cannot attach it")
            return
        log.debug(f"Attaching {aux_group.id} to {target.id}")
        if self._connect_link_to_group(source, target):
            self._add_group_to_core(aux_group)

    def _connect_multi_exit_groups(self, start_group: Group) -> None:
        self._add_group_to_core(start_group)
        outside = OutsidePreference(
            self.rng.randint(1, 2), enabled=self.config.prefer_outside
        )
        aux_rule = AuxiliaryGroupRule(
            self.config.auxiliary_group,
            self.config.exempt_hub,
            self.config.outside_threshold,
        )

        while self.multi_exit:
            # Select a previous exit from the core groups
            source = self._find_core_link()
            if source is None:
                self._report(
                    ShuffleIssue.CORE_EXHAUSTED,
                    f"Unable to find core exit for remaining multi-exit groups: {len(self.multi_exit)}",
                    logging.ERROR,
                )
                break

            target = None
            if outside.wants_outside() and self.outside_class:
                target = self._pick(self.outside_class)
            wanted_outside = target is not None
            if target is None:
                target = self._pick(self.multi_exit)

            self._remove_from_indexes(target.id)
            if self._connect_link_to_group(source, target):
                self._add_group_to_core(target)
                if wanted_outside:
                    outside.mark_used()
                if aux_rule.should_fire(target):
                    aux_rule.fired = True
                    self._attach_auxiliary_group(aux_rule.group_id, target)

            outside.tick()

    def _connect_single_exit_groups(self) -> None:
        while self.single_exit:
            source = self._find_core_link()
            if source is None:
                self._report(
                    ShuffleIssue.CORE_EXHAUSTED,
                    f"Unable to find core exit for remaining single-exit groups: {len(self.single_exit)}",
                    logging.ERROR,
                )
                for group in self.single_exit.values():
                    log.error(
                        f"Group: {group.id}, available exits: {self._available_exit_count(group, True)}"
                    )
                break

            target = self._pick(self.single_exit)
            self._remove_from_indexes(target.id)
            if self._connect_link_to_group(source, target):
                self._add_group_to_core(target)

    def _shuffle_unconnected_arrivals(self) -> None:
        force = self.config.force_all_exits_to_change
        while self.unresolved:
            target = self.unresolved.pop(self.rng.randrange(len(self.unresolved)))
            target_source = self.reverse_of.get(target)
            if target_source is None:
                self._report(
                    ShuffleIssue.ORPHAN_ARRIVAL,
                    f"Arrival point {target} has no source exit",
                )
                continue

            # a vanilla pairing is only allowed for the very last exit
            must_accept = not force or len(self.unresolved) <= 1
            partner = None
            partner_source = None
            offset = self.rng.randrange(len(self.unresolved)) if self.unresolved else 0
            for i in range(len(self.unresolved)):
                other = self.unresolved[(i + offset) % len(self.unresolved)]
                other_source = self.reverse_of.get(other)
                if other_source is None:
                    log.warning(f"Arrival point {other} has no source exit, skipping")
                    continue
                if must_accept or (target != other_source and other != target_source):
                    partner = other
                    partner_source = other_source
                    break

            if partner is None or partner_source is None:
                log.warning(f"Could not find a partner for arrival point {target}")
                continue

            self.pending[partner] = target_source
            self.pending[target] = partner_source
            self.unresolved.remove(partner)

        count = sum(1 for v in self.pending.values() if v is None)
        if count:
            self._report(
                ShuffleIssue.UNRESOLVED_ARRIVAL, f"{count} exits were not connected."
            )
