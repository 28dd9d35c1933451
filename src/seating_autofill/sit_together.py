"""Sit-together pass.

Each transitive cluster is pulled onto one table and arranged so members sit
next to their partners. A final sweep over the individual rules makes one
targeted move or swap for every pair that is still apart, across tables too.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .clustering import build_clusters, optimal_order
from .compatibility import can_place_guest_in_seat
from .models import Guest, ProximityRules, Seat, Table
from .ordering import Comparator, sort_key
from .rules import partners
from .topology import SeatingState

logger = logging.getLogger(__name__)


class SitTogetherOptimizer:
    def __init__(self, state: SeatingState, proximity_rules: ProximityRules, comparator: Comparator) -> None:
        self.state = state
        self.rules = [
            r for r in proximity_rules.sit_together
            if r.guest1_id in state.guests and r.guest2_id in state.guests
        ]
        self.comparator = comparator
        self.key = sort_key(comparator)

    def _guest(self, guest_id: str) -> Guest:
        return self.state.guests[guest_id]

    def _partner_adjacency(self, guest_id: str) -> int:
        return sum(1 for pid in partners(guest_id, self.rules) if self.state.are_adjacent(guest_id, pid))

    # ----------------------------- cross-table -----------------------------
    def target_table(self, member_ids: List[str]) -> Optional[Table]:
        """Locked member's table, else the best seated member's table, else the emptiest."""
        for gid in member_ids:
            loc = self.state.locked.get(gid)
            if loc is not None:
                return loc.table

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

    def _ordered_candidates(self, seats: List[Seat]) -> List[Seat]:
        """Empty seats first, then by seat number."""
        return sorted(seats, key=lambda s: (s.id in self.state.assignment, s.seat_number))

    def consolidate(self, member_ids: List[str], target: Table) -> None:
        members = frozenset(member_ids)
        anchors = [gid for gid in member_ids if self.state.table_id_of(gid) == target.id]
        to_move = [
            gid for gid in member_ids
            if gid not in anchors
            and not self.state.is_locked_guest(gid)
            and self.state.find_guest_seat(gid) is not None
        ]
        logger.debug("Moving %s to %s", ", ".join(self._guest(g).name for g in to_move), target.label or target.id)

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

            moved = False
            for seat in self._ordered_candidates(near):
                if self.state.relocate(gid, seat, protected=members):
                    moved = True
                    break
            if not moved:
                anywhere = [s for s in target.seats if not s.locked and can_place_guest_in_seat(guest, s)]
                for seat in self._ordered_candidates(anywhere):
                    if self.state.relocate(gid, seat, protected=members):
                        moved = True
                        break
            if moved:
                anchors.append(gid)
            else:
                logger.debug("Could not move %s to %s", guest.name, target.label or target.id)

    # ----------------------------- within table -----------------------------
    def arrange_on_table(self, ordered_ids: List[str], table: Table) -> None:
        """Move each member to the seat next to the most partners on this table.

        A swap is kept only when the displaced guest loses at most one of its
        own adjacent partners.
        """
        on_table = [gid for gid in ordered_ids if self.state.table_id_of(gid) == table.id]
        for gid in on_table:
            if self.state.is_locked_guest(gid):
                continue
            loc = self.state.find_guest_seat(gid)
            if loc is None or loc[1].id != table.id:
                continue
            table_partners = [p for p in partners(gid, self.rules) if p in on_table]
            current = sum(1 for p in table_partners if self.state.are_adjacent(gid, p))
            if current == len(table_partners):
                continue

            guest = self._guest(gid)
            candidates: List[Seat] = []
            for pid in table_partners:
                partner_loc = self.state.find_guest_seat(pid)
                if partner_loc is None or partner_loc[1].id != table.id:
                    continue
                for adj in self.state.adjacent_seats(partner_loc[0]):
                    if adj.locked or adj.id == loc[0].id or adj in candidates:
                        continue
                    if can_place_guest_in_seat(guest, adj):
                        candidates.append(adj)

            best_seat, best_score = None, current
            for seat in candidates:
                score = self.state.adjacent_count(seat, table_partners, exclude=gid)
                if score > best_score:
                    best_seat, best_score = seat, score
            if best_seat is None:
                continue

            other = self.state.assignment.get(best_seat.id)
            other_before = self._partner_adjacency(other) if other is not None else 0
            before = self.state.snapshot()
            if not self.state.relocate(gid, best_seat):
                continue
            if other is not None and self._partner_adjacency(other) < other_before - 1:
                self.state.restore(before)
                continue
            logger.debug("Moved %s to improve cluster adjacency", guest.name)

    # ----------------------------- rule sweep -----------------------------
    def resolve_pair(self, guest1_id: str, guest2_id: str) -> None:
        """One targeted move or swap to seat a still-separated pair side by side."""
        if self.state.are_adjacent(guest1_id, guest2_id):
            return
        roles = self.state.mover_and_anchor(guest1_id, guest2_id, self.comparator)
        if roles is None:
            return
        moving, staying = roles
        staying_loc = self.state.find_guest_seat(staying)
        moving_loc = self.state.find_guest_seat(moving)
        if staying_loc is None or moving_loc is None:
            return

        guest = self._guest(moving)
        around = self.state.adjacent_seats(staying_loc[0])
        for seat in around:
            if not seat.locked and seat.id not in self.state.assignment and can_place_guest_in_seat(guest, seat):
                self.state.relocate(moving, seat)
                logger.debug("Moved %s next to %s", guest.name, self._guest(staying).name)
                return

        for seat in around:
            occ = self.state.assignment.get(seat.id)
            if seat.locked or occ is None:
                continue
            # The neighbour must not be a partner of the guest staying put.
            if staying in partners(occ, self.rules):
                continue
            if self.state.relocate(moving, seat):
                logger.debug("Swapped %s next to %s", guest.name, self._guest(staying).name)
                return

    # ----------------------------- driver -----------------------------
    def run(self) -> None:
        if not self.rules:
            return
        clusters = build_clusters(self.rules)
        logger.info("Processing %d sit-together cluster(s)", len(clusters))

        for members in clusters.values():
            if len(members) < 2:
                continue
            ordered = optimal_order(members, self.rules, self.state.guests, self.key)
            logger.debug("Cluster: %s", " - ".join(self._guest(g).name for g in ordered))

            table_ids = {self.state.table_id_of(g) for g in ordered} - {None}
            if len(table_ids) > 1:
                target = self.target_table(members)
                if target is None:
                    continue
                self.consolidate(ordered, target)

            tables = {t.id: t for t in self.state.tables}
            for table_id in sorted({self.state.table_id_of(g) for g in ordered} - {None}):
                self.arrange_on_table(ordered, tables[table_id])

        for rule in self.rules:
            self.resolve_pair(rule.guest1_id, rule.guest2_id)


def apply_sit_together_optimization(state: SeatingState, proximity_rules: ProximityRules, comparator: Comparator) -> None:
    SitTogetherOptimizer(state, proximity_rules, comparator).run()
