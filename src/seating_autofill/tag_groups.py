"""Tag-group consolidation.

The softest constraint, run before the proximity passes so those can override
it. For every group:

1. Consolidate members spread over several tables onto one target table.
2. When that falls short and the group fills more than half the target table,
   displace the lowest-priority outsiders to make room.
3. Look for a contiguous block of seats and move the group into it.
4. If no block works, run a few greedy adjacency passes and then a direct swap
   cleanup for pairs that are still apart.

Guests belonging to other tag groups are never displaced.
"""
from __future__ import annotations

import logging
from itertools import combinations
from typing import Iterable, List, Optional, Set

from .compatibility import can_place_guest_in_seat
from .models import Guest, MODE_EXTERNAL_ONLY, MODE_HOST_ONLY, ProximityRule, Seat, Table, TagGroup
from .ordering import Comparator, sort_key
from .topology import SeatingState, would_violate_sit_away_with_locked

logger = logging.getLogger(__name__)

MAX_ADJACENCY_PASSES = 3
# Re-seating a displaced guest may evict someone of lower priority elsewhere,
# who may in turn evict someone else, up to this many levels deep.
MAX_EVICTION_CHAIN = 2


def seat_modes_fit(table: Table, guests: Iterable[Guest]) -> bool:
    """True when the table's unlocked seat modes can hold every guest given."""
    host_only = external_only = default = 0
    for seat in table.seats:
        if seat.locked:
            continue
        if seat.mode == MODE_HOST_ONLY:
            host_only += 1
        elif seat.mode == MODE_EXTERNAL_ONLY:
            external_only += 1
        else:
            default += 1

    hosts = externals = 0
    for guest in guests:
        if guest.from_host:
            hosts += 1
        else:
            externals += 1
    return max(0, hosts - host_only) + max(0, externals - external_only) <= default


def _empty_first(state: SeatingState, seats: List[Seat]) -> List[Seat]:
    return sorted(seats, key=lambda s: s.id in state.assignment)


class TagGroupOptimizer:
    """Runs every phase for each tag group against a shared ``SeatingState``."""

    def __init__(
        self,
        state: SeatingState,
        tag_groups: List[TagGroup],
        comparator: Comparator,
        sit_away: Optional[List[ProximityRule]] = None,
    ) -> None:
        self.state = state
        self.sit_away = sit_away or []
        self.tag_groups = tag_groups
        self.comparator = comparator
        self.key = sort_key(comparator)
        self.all_tagged: Set[str] = {gid for group in tag_groups for gid in group.guest_ids}

    # ----------------------------- lookups -----------------------------
    def _guest(self, guest_id: str) -> Guest:
        return self.state.guests[guest_id]

    def _on_table(self, member_ids: Iterable[str], table: Table) -> List[str]:
        return [gid for gid in member_ids if self.state.table_id_of(gid) == table.id]

    def _next_to_locked_foe(self, guest_id: str, seat: Seat) -> bool:
        return would_violate_sit_away_with_locked(guest_id, seat, self.state, self.sit_away)

    def _table_ids(self, member_ids: Iterable[str]) -> Set[str]:
        ids = {self.state.table_id_of(gid) for gid in member_ids}
        ids.discard(None)
        return ids

    def target_table(self, member_ids: List[str]) -> Optional[Table]:
        """Locked member's table, else a perfect fit, else the best member's table, else the emptiest."""
        for gid in member_ids:
            loc = self.state.locked.get(gid)
            if loc is not None:
                return loc.table

        movable = [self._guest(gid) for gid in member_ids if not self.state.is_locked_guest(gid)]
        for table in self.state.tables:
            if len(self.state.unlocked_seats(table)) == len(movable) and seat_modes_fit(table, movable):
                logger.debug("Perfect-fit table %s for %d guests", table.label or table.id, len(movable))
                return table

        best: Optional[Guest] = None
        best_table: Optional[Table] = None
        for gid in member_ids:
            loc = self.state.find_guest_seat(gid)
            if loc is None:
                continue
            guest = self._guest(gid)
            if best is None or self.comparator(guest, best) < 0:
                best, best_table = guest, loc[1]
        if best_table is not None:
            return best_table
        return self.state.most_spacious_table()

    # ----------------------------- phase 1 -----------------------------
    def _move_to_first(self, guest_id: str, seats: List[Seat]) -> bool:
        for seat in seats:
            if self.state.relocate(guest_id, seat, protected=self.all_tagged):
                return True
        return False

    def consolidate(self, member_ids: List[str], target: Table) -> None:
        """Move members on other tables onto ``target``, next to members already there when possible."""
        anchors = self._on_table(member_ids, target)
        to_move = [
            gid for gid in member_ids
            if gid not in anchors and not self.state.is_locked_guest(gid)
        ]
        for gid in to_move:
            guest = self._guest(gid)
            near: List[Seat] = []
            for anchor_id in anchors:
                loc = self.state.find_guest_seat(anchor_id)
                if loc is None or loc[1].id != target.id:
                    continue
                for adj in self.state.adjacent_seats(loc[0]):
                    if not adj.locked and can_place_guest_in_seat(guest, adj) and adj not in near:
                        near.append(adj)

            moved = self._move_to_first(gid, _empty_first(self.state, near))
            if not moved:
                anywhere = [s for s in target.seats if not s.locked and can_place_guest_in_seat(guest, s)]
                moved = self._move_to_first(gid, _empty_first(self.state, anywhere))
            if moved:
                anchors.append(gid)
            else:
                logger.debug("Could not move %s to %s", guest.name, target.label or target.id)

    # ----------------------------- phase 1.5 -----------------------------
    def displace(self, member_ids: List[str], target: Table) -> None:
        """Evict low-priority outsiders from ``target`` when the group fills most of it."""
        unlocked = self.state.unlocked_seats(target)
        movable = [gid for gid in member_ids if not self.state.is_locked_guest(gid)]
        if len(movable) <= len(unlocked) / 2:
            return

        pending = [gid for gid in movable if self.state.table_id_of(gid) != target.id]
        if not pending:
            return
        logger.debug("Displacing outsiders for %d remaining member(s)", len(pending))

        occupants = []
        for seat in unlocked:
            occ = self.state.assignment.get(seat.id)
            if occ is None or occ in member_ids or occ in self.all_tagged:
                continue
            occupants.append((seat, occ))
        occupants.sort(key=lambda so: self.key(self._guest(so[1])), reverse=True)

        displaced: List[str] = []
        for seat, occ in occupants:
            if not pending:
                break
            member = next((m for m in pending if can_place_guest_in_seat(self._guest(m), seat)), None)
            if member is None:
                continue
            member_loc = self.state.find_guest_seat(member)
            if member_loc is None:
                continue
            del self.state.assignment[member_loc[0].id]
            self.state.assignment[seat.id] = member
            displaced.append(occ)
            pending.remove(member)
            logger.debug("Displaced %s to make room for %s", self._guest(occ).name, self._guest(member).name)

        for occ in sorted(displaced, key=lambda gid: self.key(self._guest(gid))):
            if not self.reseat(occ, target):
                logger.info("Could not re-seat %s after displacement", self._guest(occ).name)

    def reseat(self, guest_id: str, avoid: Table, depth: int = 0) -> bool:
        """Find a seat off ``avoid`` for an unseated guest.

        Empty compatible seats come first. Otherwise the lowest-priority
        unprotected guest ranked below this one is evicted and re-seated in
        turn, at most ``MAX_EVICTION_CHAIN`` levels deep.
        """
        guest = self._guest(guest_id)
        for table in self.state.tables:
            if table.id == avoid.id:
                continue
            for seat in table.seats:
                if seat.locked or seat.id in self.state.assignment:
                    continue
                if can_place_guest_in_seat(guest, seat) and not self._next_to_locked_foe(guest_id, seat):
                    self.state.assignment[seat.id] = guest_id
                    return True

        if depth >= MAX_EVICTION_CHAIN:
            return False

        worst_seat: Optional[Seat] = None
        worst: Optional[Guest] = None
        for table in self.state.tables:
            if table.id == avoid.id:
                continue
            for seat in table.seats:
                occ = self.state.assignment.get(seat.id) if not seat.locked else None
                if occ is None or occ in self.all_tagged or occ not in self.state.guests:
                    continue
                if not can_place_guest_in_seat(guest, seat) or self._next_to_locked_foe(guest_id, seat):
                    continue
                candidate = self._guest(occ)
                if self.comparator(candidate, guest) <= 0:
                    continue
                if worst is None or self.comparator(candidate, worst) > 0:
                    worst_seat, worst = seat, candidate
        if worst is None:
            return False

        self.state.assignment[worst_seat.id] = guest_id
        logger.debug("Re-seated %s by evicting %s", guest.name, worst.name)
        if not self.reseat(worst.id, avoid, depth + 1):
            logger.info("Evicted %s could not be re-seated", worst.name)
        return True

    # ----------------------------- phase 2a -----------------------------
    def block_anchor(self, member_ids: List[str], table: Table) -> Optional[Seat]:
        """Locked member's seat, else the best-priority member's, breaking ties by group neighbours."""
        for gid in member_ids:
            loc = self.state.locked.get(gid)
            if loc is not None and loc.table.id == table.id:
                return loc.seat

        seated = []
        for gid in member_ids:
            loc = self.state.find_guest_seat(gid)
            if loc is not None and loc[1].id == table.id:
                neighbours = self.state.adjacent_count(loc[0], member_ids, exclude=gid)
                seated.append((gid, loc[0], neighbours))
        if not seated:
            return None
        best = min(seated, key=lambda e: (self.key(self._guest(e[0])), -e[2]))
        return best[1]

    def place_block(self, block: List[Seat], member_ids: List[str]) -> None:
        """Swap members outside ``block`` into its seats, pushing outsiders to the vacated seats."""
        block_ids = {s.id for s in block}
        members = set(member_ids)
        protected = self.all_tagged - members

        outside = []
        for gid in member_ids:
            if self.state.is_locked_guest(gid):
                continue
            loc = self.state.find_guest_seat(gid)
            if loc is None or loc[0].id not in block_ids:
                outside.append(gid)

        needing = [s for s in block if self.state.occupant(s) not in members]
        for i, gid in enumerate(outside):
            if i >= len(needing):
                break
            guest = self._guest(gid)
            j = next((j for j in range(i, len(needing)) if can_place_guest_in_seat(guest, needing[j])), None)
            if j is None:
                continue
            needing[i], needing[j] = needing[j], needing[i]
            if self.state.relocate(gid, needing[i], protected=protected):
                continue
            empty = next(
                (s for s in block
                 if not s.locked and s.id not in self.state.assignment and can_place_guest_in_seat(guest, s)),
                None,
            )
            if empty is not None:
                self.state.relocate(gid, empty)

    def try_block(self, member_ids: List[str], table: Table) -> bool:
        """Seat the members as one connected chain on ``table``. True when every member ends up in it."""
        anchor = self.block_anchor(member_ids, table)
        if anchor is None:
            return False
        block = self.state.bfs_contiguous_block(
            anchor, len(member_ids), member_ids, protected=self.all_tagged - set(member_ids)
        )
        if block is None:
            return False

        self.place_block(block, member_ids)
        block_ids = {s.id for s in block}
        for gid in member_ids:
            loc = self.state.find_guest_seat(gid)
            if loc is None or loc[0].id not in block_ids:
                return False
        return True

    # ----------------------------- phase 2b -----------------------------
    def greedy_passes(self, member_ids: List[str], table: Table) -> None:
        """Move members next to more groupmates; a move is kept only if it strictly helps the mover."""
        for _ in range(MAX_ADJACENCY_PASSES):
            moves = 0
            on_table = self._on_table(member_ids, table)
            protected = self.all_tagged - set(on_table)
            for gid in on_table:
                if self.state.is_locked_guest(gid):
                    continue
                loc = self.state.find_guest_seat(gid)
                if loc is None or loc[1].id != table.id:
                    continue
                current = self.state.adjacent_count(loc[0], on_table, exclude=gid)
                if current == len(on_table) - 1:
                    continue

                guest = self._guest(gid)
                candidates: List[Seat] = []
                for other in on_table:
                    if other == gid:
                        continue
                    other_loc = self.state.find_guest_seat(other)
                    if other_loc is None or other_loc[1].id != table.id:
                        continue
                    for adj in self.state.adjacent_seats(other_loc[0]):
                        if adj.locked or adj.id == loc[0].id or adj in candidates:
                            continue
                        if can_place_guest_in_seat(guest, adj):
                            candidates.append(adj)

                best_seat, best_score = None, current
                for seat in candidates:
                    score = self.state.adjacent_count(seat, on_table, exclude=gid)
                    if score > best_score:
                        best_seat, best_score = seat, score
                if best_seat is None:
                    continue

                before = self.state.snapshot()
                if not self.state.relocate(gid, best_seat, protected=protected):
                    continue
                if self.state.adjacent_count(best_seat, on_table, exclude=gid) > current:
                    moves += 1
                else:
                    self.state.restore(before)
            if not moves:
                break

    # ----------------------------- phase 3 -----------------------------
    def direct_swap_cleanup(self, member_ids: List[str], table: Table) -> None:
        """Resolve remaining non-adjacent member pairs with one targeted move or swap each."""
        on_table = self._on_table(member_ids, table)
        protected = self.all_tagged - set(on_table)
        for a, b in combinations(on_table, 2):
            if self.state.are_adjacent(a, b):
                continue
            roles = self.state.mover_and_anchor(a, b, self.comparator)
            if roles is None:
                continue
            moving, staying = roles
            staying_loc = self.state.find_guest_seat(staying)
            moving_loc = self.state.find_guest_seat(moving)
            if staying_loc is None or moving_loc is None or staying_loc[1].id != moving_loc[1].id:
                continue

            guest = self._guest(moving)
            around = self.state.adjacent_seats(staying_loc[0])
            empty = next(
                (s for s in around
                 if not s.locked and s.id not in self.state.assignment and can_place_guest_in_seat(guest, s)),
                None,
            )
            if empty is not None:
                self.state.relocate(moving, empty)
                continue
            for seat in around:
                if seat.locked or seat.id not in self.state.assignment:
                    continue
                if self.state.relocate(moving, seat, protected=protected):
                    break

    # ----------------------------- driver -----------------------------
    def optimize_group(self, group: TagGroup) -> None:
        member_ids = [
            gid for gid in dict.fromkeys(group.guest_ids)
            if gid in self.state.guests and self.state.find_guest_seat(gid) is not None
        ]
        if len(member_ids) < 2:
            return
        logger.debug("Tag group [%s]: %s", group.tag, ", ".join(self._guest(g).name for g in member_ids))

        if len(self._table_ids(member_ids)) > 1:
            target = self.target_table(member_ids)
            if target is None:
                logger.debug("No target table for tag group [%s]", group.tag)
                return
            self.consolidate(member_ids, target)
            if len(self._table_ids(member_ids)) > 1:
                self.displace(member_ids, target)
            if len(self._table_ids(member_ids)) > 1:
                logger.debug("Tag group [%s] still spans several tables", group.tag)

        tables = {t.id: t for t in self.state.tables}
        for table_id in sorted(self._table_ids(member_ids)):
            table = tables[table_id]
            on_table = self._on_table(member_ids, table)
            if len(on_table) < 2:
                continue
            if self.try_block(on_table, table):
                logger.debug("Contiguous block placed for tag group [%s]", group.tag)
                continue
            self.greedy_passes(on_table, table)
            self.direct_swap_cleanup(on_table, table)

    def run(self) -> None:
        logger.info("Processing %d tag group(s)", len(self.tag_groups))
        for group in self.tag_groups:
            self.optimize_group(group)


def apply_tag_group_optimization(
    state: SeatingState,
    tag_groups: List[TagGroup],
    comparator: Comparator,
    sit_away: Optional[List[ProximityRule]] = None,
) -> None:
    """Consolidate each tag group in place on ``state``.

    ``sit_away`` keeps re-seated guests away from locked guests they must avoid.
    """
    if not tag_groups:
        return
    TagGroupOptimizer(state, tag_groups, comparator, sit_away).run()
