"""Violation audit over committed seats, plus the working-state recount."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Tuple

from .models import Guest, ProximityRules, SIT_AWAY, SIT_TOGETHER, Seat, Table, Violation, is_vip
from .topology import SeatingState

logger = logging.getLogger(__name__)


def _committed_locations(tables: List[Table]) -> Dict[str, Tuple[Seat, Table]]:
    where: Dict[str, Tuple[Seat, Table]] = {}
    for table in tables:
        for seat in table.seats:
            if seat.assigned_guest_id:
                where[seat.assigned_guest_id] = (seat, table)
    return where


def _violation(kind: str, g1: Guest, g2: Guest, loc1, loc2, reason: str) -> Violation:
    return Violation(
        type=kind,
        guest1_id=g1.id,
        guest2_id=g2.id,
        guest1_name=g1.name,
        guest2_name=g2.name,
        table_id=loc1[1].id,
        table_label=loc1[1].label,
        seat1_id=loc1[0].id,
        seat2_id=loc2[0].id,
        reason=reason,
    )


def audit(tables: List[Table], proximity_rules: ProximityRules, guest_lookup: Mapping[str, Guest]) -> List[Violation]:
    """Check every rule against the committed seat records.

    Each unordered pair is reported at most once per rule kind. Rules naming a
    guest missing from ``guest_lookup`` are skipped, and a pair with an
    unseated member is never a violation.
    """
    where = _committed_locations(tables)
    seen = set()
    violations: List[Violation] = []

    for kind, rules in ((SIT_TOGETHER, proximity_rules.sit_together), (SIT_AWAY, proximity_rules.sit_away)):
        for rule in rules:
            key = rule.pair_key()
            if key in seen:
                continue
            seen.add(key)

            g1 = guest_lookup.get(rule.guest1_id)
            g2 = guest_lookup.get(rule.guest2_id)
            if g1 is None or g2 is None:
                logger.debug("Skipping %s rule with unknown guest (%s, %s)", kind, rule.guest1_id, rule.guest2_id)
                continue
            loc1 = where.get(g1.id)
            loc2 = where.get(g2.id)
            if loc1 is None or loc2 is None:
                continue

            same_table = loc1[1].id == loc2[1].id
            adjacent = same_table and loc2[0].id in loc1[0].adjacent_seats
            if kind == SIT_TOGETHER:
                if not same_table:
                    violations.append(_violation(
                        kind, g1, g2, loc1, loc2,
                        f"{g1.name} and {g2.name} should sit together but are on different tables "
                        f"({loc1[1].label} vs {loc2[1].label})",
                    ))
                elif not adjacent:
                    violations.append(_violation(
                        kind, g1, g2, loc1, loc2,
                        f"{g1.name} and {g2.name} should sit together but are not adjacent",
                    ))
            elif adjacent:
                violations.append(_violation(
                    kind, g1, g2, loc1, loc2,
                    f"{g1.name} and {g2.name} should not sit together but are adjacent",
                ))

    logger.info(
        "Audit found %d violation(s): %d sit-together, %d sit-away",
        len(violations),
        sum(1 for v in violations if v.type == SIT_TOGETHER),
        sum(1 for v in violations if v.type == SIT_AWAY),
    )
    return violations


def count_violations(state: SeatingState, proximity_rules: ProximityRules) -> int:
    """Sit-together plus sit-away violations in the working assignment."""
    total = 0
    for rule in proximity_rules.sit_together:
        loc1 = state.find_guest_seat(rule.guest1_id)
        loc2 = state.find_guest_seat(rule.guest2_id)
        if loc1 is None or loc2 is None:
            continue
        if loc1[1].id != loc2[1].id or not state.is_seat_adjacent_to_guest(loc1[0], rule.guest2_id):
            total += 1
    for rule in proximity_rules.sit_away:
        loc1 = state.find_guest_seat(rule.guest1_id)
        loc2 = state.find_guest_seat(rule.guest2_id)
        if loc1 is None or loc2 is None or loc1[1].id != loc2[1].id:
            continue
        if state.is_seat_adjacent_to_guest(loc1[0], rule.guest2_id):
            total += 1
    return total


def table_summary(
    tables: List[Table],
    guest_lookup: Mapping[str, Guest],
    violations: List[Violation],
) -> List[Dict[str, int | str]]:
    """Per-table occupancy and violation counts for reporting."""
    per_table: Dict[str, int] = {}
    for v in violations:
        per_table[v.table_id] = per_table.get(v.table_id, 0) + 1

    out = []
    for table in sorted(tables, key=lambda t: t.table_number):
        host = external = vip = occupied = 0
        for seat in table.seats:
            guest = guest_lookup.get(seat.assigned_guest_id) if seat.assigned_guest_id else None
            if seat.assigned_guest_id:
                occupied += 1
            if guest is None:
                continue
            if guest.from_host:
                host += 1
            else:
                external += 1
            if is_vip(guest):
                vip += 1
        out.append({
            "table_id": table.id,
            "label": table.label or str(table.table_number),
            "seats": len(table.seats),
            "occupied": occupied,
            "host": host,
            "external": external,
            "vip": vip,
            "violations": per_table.get(table.id, 0),
        })
    return out
