"""Auto-fill orchestrator: sequences every phase and commits the result."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .audit import audit
from .models import AutoFillOptions, AutoFillResult, Guest, SIT_AWAY, SIT_TOGETHER, Table
from .ordering import build_prioritized_pools, is_randomize_applicable, make_comparator
from .placement import perform_initial_placement, prepare_candidates
from .sit_away import apply_sit_away_optimization
from .sit_together import apply_sit_together_optimization
from .tag_groups import apply_tag_group_optimization
from .topology import SeatingState, build_locked_guest_map

logger = logging.getLogger(__name__)


def clear_unlocked_seats(tables: Iterable[Table]) -> None:
    for table in tables:
        for seat in table.seats:
            if not seat.locked:
                seat.assigned_guest_id = None


def commit(state: SeatingState) -> None:
    """Write the working assignment onto unlocked seat records."""
    for table in state.tables:
        for seat in table.seats:
            if not seat.locked:
                seat.assigned_guest_id = state.assignment.get(seat.id)


def auto_fill(
    tables: List[Table],
    host_guests: Iterable[Guest],
    external_guests: Iterable[Guest],
    options: Optional[AutoFillOptions] = None,
) -> AutoFillResult:
    """Seat guests across ``tables`` and audit the outcome.

    Seat records of unlocked seats are overwritten in place. Locked seats and
    guest records are never touched. Runs must be serialised by the caller.
    """
    options = options or AutoFillOptions()
    if not options.include_host and not options.include_external:
        logger.warning("auto_fill: no guest lists selected; aborting")
        return AutoFillResult(aborted=True)

    host_pool = [g for g in host_guests if not g.deleted] if options.include_host else []
    external_pool = [g for g in external_guests if not g.deleted] if options.include_external else []
    guest_lookup = {g.id: g for g in host_pool + external_pool}

    locked = build_locked_guest_map(tables)
    host_candidates = [g for g in host_pool if g.id not in locked]
    external_candidates = [g for g in external_pool if g.id not in locked]

    comparator = make_comparator(options.sort_rules)
    randomize = options.randomize_order
    should_randomize = (
        randomize is not None
        and randomize.enabled
        and bool(randomize.partitions)
        and is_randomize_applicable(options.sort_rules)
    )

    rules = options.proximity_rules
    prioritized_host, prioritized_external, in_rules = build_prioritized_pools(
        host_candidates, external_candidates, rules, comparator
    )
    logger.info(
        "Guest pools: %d host, %d external, %d in proximity rules, %d locked",
        len(prioritized_host), len(prioritized_external), len(in_rules), len(locked),
    )

    clear_unlocked_seats(tables)
    state = SeatingState(tables, guest_lookup, locked)
    candidates = prepare_candidates(
        prioritized_host,
        prioritized_external,
        comparator,
        rules,
        randomize if should_randomize else None,
        in_rules,
        options.rng,
    )

    perform_initial_placement(state, candidates, rules, options.table_rules)
    if options.tag_groups:
        apply_tag_group_optimization(state, options.tag_groups, comparator, rules.sit_away)
    apply_sit_together_optimization(state, rules, comparator)
    apply_sit_away_optimization(state, rules, comparator)

    commit(state)
    violations = audit(tables, rules, guest_lookup)

    placed = set(state.assignment.values())
    unplaced = [g.id for g in candidates if g.id not in placed]
    logger.info(
        "Auto-fill complete: %d seated, %d unplaced, %d sit-together and %d sit-away violation(s)",
        len(placed),
        len(unplaced),
        sum(1 for v in violations if v.type == SIT_TOGETHER),
        sum(1 for v in violations if v.type == SIT_AWAY),
    )
    return AutoFillResult(
        assignment=dict(state.assignment),
        violations=violations,
        unplaced_guest_ids=unplaced,
    )
