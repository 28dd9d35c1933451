"""Seat topology queries over the working assignment of a single run.

The working assignment is a flat ``seat id -> guest id`` dict. Locked seats
never appear in it; their occupants are read from the seat records and the
locked-guest index instead.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .compatibility import can_place_guest_in_seat
from .models import Guest, LockedGuestLocation, ProximityRule, Seat, Table
from .rules import partners

logger = logging.getLogger(__name__)

Location = Tuple[Seat, Table]


def build_locked_guest_map(tables: Iterable[Table]) -> Dict[str, LockedGuestLocation]:
    """Index every guest sitting in a locked seat."""
    locked: Dict[str, LockedGuestLocation] = {}
    for table in tables:
        for seat in table.seats:
            if seat.locked and seat.assigned_guest_id:
                locked[seat.assigned_guest_id] = LockedGuestLocation(seat.assigned_guest_id, table, seat)
    return locked


def sorted_tables(tables: Iterable[Table]) -> List[Table]:
    return sorted(tables, key=lambda t: t.table_number)


def sorted_seats(table: Table) -> List[Seat]:
    return sorted(table.seats, key=lambda s: s.seat_number)


class SeatingState:
    """Tables, guests and the mutable seat -> guest map for one run."""

    def __init__(
        self,
        tables: List[Table],
        guests: Dict[str, Guest],
        locked: Optional[Dict[str, LockedGuestLocation]] = None,
        assignment: Optional[Dict[str, str]] = None,
    ) -> None:
        self.tables = tables
        self.guests = guests
        self.locked = locked if locked is not None else build_locked_guest_map(tables)
        self.assignment: Dict[str, str] = dict(assignment or {})
        self._seats: Dict[str, Location] = {}
        self._table_seats: Dict[str, Dict[str, Seat]] = {}
        for table in tables:
            self._table_seats[table.id] = {s.id: s for s in table.seats}
            for seat in table.seats:
                self._seats[seat.id] = (seat, table)

    # ----------------------------- lookups -----------------------------
    def table_of(self, seat: Seat) -> Table:
        return self._seats[seat.id][1]

    def adjacent_seats(self, seat: Seat) -> List[Seat]:
        """Neighbouring seats on the same table, in adjacency-list order."""
        same_table = self._table_seats[self.table_of(seat).id]
        return [same_table[sid] for sid in seat.adjacent_seats if sid in same_table]

    def occupant(self, seat: Seat) -> Optional[str]:
        if seat.locked:
            return seat.assigned_guest_id
        return self.assignment.get(seat.id)

    def is_locked_guest(self, guest_id: str) -> bool:
        return guest_id in self.locked

    def find_guest_seat(self, guest_id: str) -> Optional[Location]:
        """Seat and table of a guest, from the locked index or the working map."""
        loc = self.locked.get(guest_id)
        if loc is not None:
            return loc.seat, loc.table
        for seat_id, gid in self.assignment.items():
            if gid == guest_id:
                return self._seats[seat_id]
        return None

    def is_seat_adjacent_to_guest(self, seat: Seat, guest_id: str) -> bool:
        return any(self.occupant(adj) == guest_id for adj in self.adjacent_seats(seat))

    def are_adjacent(self, guest1_id: str, guest2_id: str) -> bool:
        loc = self.find_guest_seat(guest1_id)
        if loc is None:
            return False
        return self.is_seat_adjacent_to_guest(loc[0], guest2_id)

    def adjacent_count(self, seat: Seat, guest_ids: Iterable[str], exclude: Optional[str] = None) -> int:
        """How many of ``guest_ids`` would be neighbours of someone in ``seat``."""
        around = {self.occupant(adj) for adj in self.adjacent_seats(seat)}
        around.discard(None)
        return sum(1 for gid in set(guest_ids) if gid != exclude and gid in around)

    def empty_seats(self, table: Table) -> List[Seat]:
        return [s for s in table.seats if not s.locked and s.id not in self.assignment]

    def unlocked_seats(self, table: Table) -> List[Seat]:
        return [s for s in table.seats if not s.locked]

    def table_id_of(self, guest_id: str) -> Optional[str]:
        loc = self.find_guest_seat(guest_id)
        return loc[1].id if loc else None

    def most_spacious_table(self) -> Optional[Table]:
        best, best_free = None, 0
        for table in self.tables:
            free = len(self.empty_seats(table))
            if free > best_free:
                best, best_free = table, free
        return best

    # ----------------------------- mutation -----------------------------
    def relocate(self, guest_id: str, target: Seat, protected: Set[str] = frozenset()) -> bool:
        """Move a guest into ``target``, swapping with its occupant when there is one.

        Rejected when either guest is locked, the occupant is ``protected``, or
        either guest would end up in a seat whose mode refuses them.
        """
        guest = self.guests.get(guest_id)
        if guest is None or self.is_locked_guest(guest_id) or target.locked:
            return False
        if not can_place_guest_in_seat(guest, target):
            return False
        loc = self.find_guest_seat(guest_id)
        if loc is None:
            return False
        current = loc[0]
        if current.id == target.id:
            return False

        other_id = self.assignment.get(target.id)
        if other_id is None:
            del self.assignment[current.id]
            self.assignment[target.id] = guest_id
            return True

        other = self.guests.get(other_id)
        if other is None or other_id in protected or self.is_locked_guest(other_id):
            return False
        if not can_place_guest_in_seat(other, current):
            return False
        self.swap(current, target)
        return True

    def swap(self, seat_a: Seat, seat_b: Seat) -> None:
        """Exchange the occupants of two unlocked seats (either may be empty)."""
        a = self.assignment.pop(seat_a.id, None)
        b = self.assignment.pop(seat_b.id, None)
        if b is not None:
            self.assignment[seat_a.id] = b
        if a is not None:
            self.assignment[seat_b.id] = a

    def snapshot(self) -> Dict[str, str]:
        return dict(self.assignment)

    def restore(self, snapshot: Dict[str, str]) -> None:
        self.assignment.clear()
        self.assignment.update(snapshot)

    def mover_and_anchor(self, guest1_id: str, guest2_id: str, comparator) -> Optional[Tuple[str, str]]:
        """Pick which of two guests moves: the lower-priority one unless it is locked.

        Returns ``(moving, staying)`` or ``None`` when both are locked.
        """
        locked1 = self.is_locked_guest(guest1_id)
        locked2 = self.is_locked_guest(guest2_id)
        if locked1 and locked2:
            return None
        if locked1:
            return guest2_id, guest1_id
        if locked2:
            return guest1_id, guest2_id
        if comparator(self.guests[guest1_id], self.guests[guest2_id]) <= 0:
            return guest2_id, guest1_id
        return guest1_id, guest2_id

    # ----------------------------- search -----------------------------
    def bfs_contiguous_block(
        self,
        anchor: Seat,
        size: int,
        member_ids: Iterable[str],
        protected: Set[str] = frozenset(),
    ) -> Optional[List[Seat]]:
        """Breadth-first search for ``size`` connected seats usable by a group.

        A seat is admitted when it holds a group member, is empty and fits at
        least one member, or holds a displaceable guest (not locked, not
        ``protected``) and fits at least one member. Locked non-member seats
        block the path. Returns ``None`` when too few seats are reachable.
        """
        members = list(member_ids)
        member_set = set(members)
        member_guests = [self.guests[g] for g in members if g in self.guests]

        def fits_someone(seat: Seat) -> bool:
            return any(can_place_guest_in_seat(g, seat) for g in member_guests)

        block: List[Seat] = []
        visited: Set[str] = set()
        queue = deque([anchor])
        while queue and len(block) < size:
            seat = queue.popleft()
            if seat.id in visited:
                continue
            visited.add(seat.id)

            occupant = self.occupant(seat)
            if seat.locked:
                if occupant not in member_set:
                    continue
            elif occupant is None:
                if not fits_someone(seat):
                    continue
            elif occupant not in member_set:
                if self.is_locked_guest(occupant) or occupant in protected or not fits_someone(seat):
                    continue

            block.append(seat)
            queue.extend(adj for adj in self.adjacent_seats(seat) if adj.id not in visited)

        return block if len(block) >= size else None


def would_violate_sit_away_with_locked(
    guest_id: str,
    seat: Seat,
    state: SeatingState,
    sit_away: List[ProximityRule],
) -> bool:
    """True when a locked neighbour of ``seat`` is someone this guest must avoid."""
    avoid = partners(guest_id, sit_away)
    if not avoid:
        return False
    return any(
        adj.locked and adj.assigned_guest_id in avoid
        for adj in state.adjacent_seats(seat)
    )
