"""Initial greedy fill of every unlocked seat.

Three mutually exclusive modes:

* spacing: alternate host and external guests in runs of ``spacing``;
* ratio: per-table host/external targets derived from the ratio;
* default: strict priority order, subject only to seat modes.

In every mode a candidate is skipped when an adjacent locked seat holds someone
they must sit away from, since locked neighbours can never be moved later.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from .compatibility import eligible_guests
from .models import (
    Guest,
    MODE_EXTERNAL_ONLY,
    MODE_HOST_ONLY,
    ProximityRules,
    RandomizeOrder,
    RatioRule,
    Seat,
    SpacingRule,
    Table,
    TableRules,
)
from .ordering import (
    Comparator,
    apply_randomize_order,
    reorder_for_clusters,
    reorder_for_tag_similarity,
    sort_key,
    with_host_tie_break,
)
from .topology import SeatingState, sorted_seats, sorted_tables, would_violate_sit_away_with_locked

logger = logging.getLogger(__name__)


def prepare_candidates(
    host_candidates: List[Guest],
    external_candidates: List[Guest],
    comparator: Comparator,
    proximity_rules: ProximityRules,
    randomize_order: Optional[RandomizeOrder] = None,
    guests_in_rules: Optional[Set[str]] = None,
    rng=None,
) -> List[Guest]:
    """Merge both pools into the single placement order.

    Sorted with a host tie-break, then cluster members are pulled behind their
    anchor, then guests with identical tag sets. When randomisation applies,
    guests named in proximity rules keep their order at the front and the rest
    are shuffled within rank bands.
    """
    candidates = sorted(host_candidates + external_candidates, key=sort_key(with_host_tie_break(comparator)))
    if proximity_rules.sit_together:
        candidates = reorder_for_clusters(candidates, proximity_rules.sit_together, with_host_tie_break(comparator))
    candidates = reorder_for_tag_similarity(candidates)

    if randomize_order is not None and randomize_order.enabled and randomize_order.partitions:
        in_rules = guests_in_rules or set()
        pinned = [g for g in candidates if g.id in in_rules]
        regular = [g for g in candidates if g.id not in in_rules]
        logger.info("Randomizing %d guests (%d pinned by proximity rules)", len(regular), len(pinned))
        candidates = pinned + apply_randomize_order(regular, randomize_order, rng)
    return candidates


class InitialPlacement:
    """Fills unlocked seats table by table from a priority-ordered candidate list."""

    def __init__(
        self,
        state: SeatingState,
        candidates: List[Guest],
        proximity_rules: ProximityRules,
        table_rules: Optional[TableRules] = None,
    ) -> None:
        self.state = state
        self.candidates = candidates
        self.sit_away = proximity_rules.sit_away
        self.table_rules = table_rules or TableRules()
        self.assigned: Set[str] = set(state.locked)

    # ----------------------------- helpers -----------------------------
    def _pick(self, seat: Seat, from_host: Optional[bool] = None) -> Optional[Guest]:
        """First eligible guest that does not sit next to a locked sit-away partner."""
        for guest in eligible_guests(self.candidates, self.assigned, seat, from_host):
            if not would_violate_sit_away_with_locked(guest.id, seat, self.state, self.sit_away):
                return guest
            logger.debug("Skipping %s for seat %s: locked sit-away neighbour", guest.name, seat.id)
        return None

    def _seat(self, seat: Seat, guest: Guest) -> None:
        self.state.assignment[seat.id] = guest.id
        self.assigned.add(guest.id)

    def _remaining(self, from_host: bool) -> bool:
        return any(g.id not in self.assigned and g.from_host == from_host for g in self.candidates)

    def _fill_mode_restricted(self, seat: Seat) -> Optional[Guest]:
        side = seat.mode == MODE_HOST_ONLY
        guest = self._pick(seat, side)
        if guest is not None:
            self._seat(seat, guest)
        return guest

    def _fill_any(self, seat: Seat) -> Optional[Guest]:
        guest = self._pick(seat)
        if guest is not None:
            self._seat(seat, guest)
        return guest

    # ----------------------------- modes -----------------------------
    def _fill_spacing(self, seats: List[Seat], rule: SpacingRule) -> None:
        def is_host_turn(pos: int) -> bool:
            return pos == rule.spacing if rule.start_with_external else pos == 0

        pattern_active = self._remaining(True) and self._remaining(False)
        position = 0
        for seat in seats:
            if pattern_active and not (self._remaining(True) and self._remaining(False)):
                pattern_active = False

            if not pattern_active:
                self._fill_any(seat)
                continue

            # Mode-restricted seats do not advance the alternation counter.
            if seat.mode in (MODE_HOST_ONLY, MODE_EXTERNAL_ONLY):
                self._fill_mode_restricted(seat)
                continue

            guest = self._pick(seat, is_host_turn(position))
            if guest is None:
                # Both sides still have guests, but none of the side due here
                # may sit in this seat. Serve it out of turn like a restricted seat.
                self._fill_any(seat)
                continue
            self._seat(seat, guest)
            position = 0 if position + 1 > rule.spacing else position + 1

    def _fill_ratio(self, seats: List[Seat], rule: RatioRule) -> None:
        total_ratio = rule.host_ratio + rule.external_ratio
        target_host = target_external = 0
        if total_ratio > 0:
            target_host = int(rule.host_ratio / total_ratio * len(seats))
            target_external = len(seats) - target_host

        host_placed = external_placed = 0
        for seat in seats:
            if seat.mode in (MODE_HOST_ONLY, MODE_EXTERNAL_ONLY):
                guest = self._fill_mode_restricted(seat)
                if guest is not None:
                    if guest.from_host:
                        host_placed += 1
                    else:
                        external_placed += 1
                continue

            guest = None
            if host_placed < target_host:
                guest = self._pick(seat, True)
                if guest is not None:
                    host_placed += 1
            if guest is None and external_placed < target_external:
                guest = self._pick(seat, False)
                if guest is not None:
                    external_placed += 1
            if guest is None:
                guest = self._pick(seat)
            if guest is not None:
                self._seat(seat, guest)

    def _fill_default(self, seats: List[Seat]) -> None:
        for seat in seats:
            self._fill_any(seat)

    # ----------------------------- entry -----------------------------
    def run(self) -> Dict[str, str]:
        for table in sorted_tables(self.state.tables):
            seats = [s for s in sorted_seats(table) if not s.locked]
            if self.table_rules.spacing is not None:
                self._fill_spacing(seats, self.table_rules.spacing)
            elif self.table_rules.ratio is not None:
                self._fill_ratio(seats, self.table_rules.ratio)
            else:
                self._fill_default(seats)
        logger.info("Initial placement seated %d guests", len(self.state.assignment))
        return self.state.assignment


def perform_initial_placement(
    state: SeatingState,
    candidates: List[Guest],
    proximity_rules: ProximityRules,
    table_rules: Optional[TableRules] = None,
) -> Dict[str, str]:
    """Fill ``state.assignment`` in place and return it."""
    return InitialPlacement(state, candidates, proximity_rules, table_rules).run()
