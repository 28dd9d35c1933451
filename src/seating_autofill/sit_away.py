"""Sit-away pass: separate adjacent pairs by swap-and-evaluate.

Every trial move is scored by recounting all proximity violations, so a fix
here never trades one sit-away violation for a new sit-together one.
"""
from __future__ import annotations

import logging
from typing import List

from .audit import count_violations
from .compatibility import can_place_guest_in_seat
from .models import Guest, ProximityRules, Seat, Table
from .ordering import Comparator, sort_key
from .topology import SeatingState

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 20


def candidate_seats(state: SeatingState, guest: Guest, avoid_id: str, current: Seat, home: Table) -> List[Seat]:
    """Unlocked compatible seats not next to ``avoid_id``, same table first, then by seat number."""
    found = []
    for table in state.tables:
        for seat in table.seats:
            if seat.locked or seat.id == current.id:
                continue
            if not can_place_guest_in_seat(guest, seat):
                continue
            if state.is_seat_adjacent_to_guest(seat, avoid_id):
                continue
            found.append((table.id != home.id, seat.seat_number, seat))
    found.sort(key=lambda c: (c[0], c[1]))
    return [c[2] for c in found]


def apply_sit_away_optimization(state: SeatingState, proximity_rules: ProximityRules, comparator: Comparator) -> None:
    rules = [
        r for r in proximity_rules.sit_away
        if r.guest1_id in state.guests and r.guest2_id in state.guests
    ]
    if not rules:
        return
    logger.info("Processing %d sit-away rule(s)", len(rules))

    pairs = []
    for rule in rules:
        g1, g2 = state.guests[rule.guest1_id], state.guests[rule.guest2_id]
        higher, lower = (g1, g2) if comparator(g1, g2) <= 0 else (g2, g1)
        pairs.append((higher, lower))
    key = sort_key(comparator)
    pairs.sort(key=lambda p: key(p[0]))

    for higher, lower in pairs:
        if state.is_locked_guest(higher.id) and state.is_locked_guest(lower.id):
            logger.debug("%s and %s are both locked", higher.name, lower.name)
            continue
        higher_loc = state.find_guest_seat(higher.id)
        lower_loc = state.find_guest_seat(lower.id)
        if higher_loc is None or lower_loc is None:
            continue
        if higher_loc[1].id != lower_loc[1].id:
            continue
        if not state.is_seat_adjacent_to_guest(higher_loc[0], lower.id):
            continue

        if state.is_locked_guest(lower.id):
            moving, avoid, loc = higher, lower, higher_loc
        else:
            moving, avoid, loc = lower, higher, lower_loc

        baseline = count_violations(state, proximity_rules)
        resolved = False
        attempts = 0
        for seat in candidate_seats(state, moving, avoid.id, loc[0], loc[1]):
            if attempts >= MAX_ATTEMPTS:
                break
            attempts += 1

            before = state.snapshot()
            if not state.relocate(moving.id, seat):
                continue
            after = count_violations(state, proximity_rules)
            if after < baseline:
                logger.debug("Separated %s from %s: violations %d -> %d", moving.name, avoid.name, baseline, after)
                resolved = True
                break
            state.restore(before)

        if not resolved:
            logger.info(
                "Could not separate %s and %s after %d attempt(s)", higher.name, lower.name, attempts
            )
