"""Guest ordering: comparators, rank-band shuffling and priority-preserving reorders."""
from __future__ import annotations

import logging
import random
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .clustering import build_clusters
from .models import Guest, ProximityRule, ProximityRules, RandomizeOrder, SortRule

logger = logging.getLogger(__name__)

Comparator = Callable[[Guest, Guest], int]


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def guest_field_value(guest: Guest, field: str):
    """Value used for sorting. ``organization`` reads the guest's company."""
    if field == "organization":
        return guest.company or ""
    value = getattr(guest, field, "")
    return "" if value is None else value


def make_comparator(rules: Sequence[SortRule]) -> Comparator:
    """Multi-field comparator; falls back to host-first, then name."""
    def compare(a: Guest, b: Guest) -> int:
        for rule in rules:
            av = guest_field_value(a, rule.field)
            bv = guest_field_value(b, rule.field)
            if rule.field == "ranking":
                result = _cmp(_as_number(av), _as_number(bv))
            else:
                result = _cmp(str(av).lower(), str(bv).lower())
            if result:
                return result if rule.direction == "asc" else -result

        if a.from_host != b.from_host:
            return -1 if a.from_host else 1
        return _cmp(a.name.casefold(), b.name.casefold())

    return compare


def _as_number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def with_host_tie_break(base: Comparator) -> Comparator:
    """Add host-first and id fallbacks so merged pools sort deterministically."""
    def compare(a: Guest, b: Guest) -> int:
        result = base(a, b)
        if result:
            return result
        if a.from_host != b.from_host:
            return -1 if a.from_host else 1
        return _cmp(a.id, b.id)

    return compare


def sort_key(comparator: Comparator):
    """Key function for ``sorted`` built from a comparator."""
    return cmp_to_key(comparator)


# ----------------------------- randomisation -----------------------------
def shuffle(items: Sequence, rng=None) -> list:
    """Fisher-Yates shuffle returning a new list."""
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


def apply_randomize_order(guests: List[Guest], config: Optional[RandomizeOrder], rng=None) -> List[Guest]:
    """Shuffle guests inside each rank band, keeping the band's slots fixed."""
    if config is None or not config.enabled or not config.partitions:
        return guests

    result = list(guests)
    for part in config.partitions:
        indices = [i for i, g in enumerate(result) if part.min_rank <= g.ranking < part.max_rank]
        if len(indices) < 2:
            continue
        shuffled = shuffle([result[i] for i in indices], rng)
        for i, guest in zip(indices, shuffled):
            result[i] = guest
        logger.debug("Shuffled %d guests in rank band [%d, %d)", len(indices), part.min_rank, part.max_rank)
    return result


def is_randomize_applicable(rules: Sequence[SortRule]) -> bool:
    """Randomisation only makes sense for a single ranking sort."""
    return len(rules) == 1 and rules[0].field == "ranking"


# ----------------------------- pools -----------------------------
def build_prioritized_pools(
    host_candidates: List[Guest],
    external_candidates: List[Guest],
    proximity_rules: ProximityRules,
    comparator: Comparator,
) -> Tuple[List[Guest], List[Guest], Set[str]]:
    """Sort each pool with guests named in any proximity rule first."""
    in_rules = proximity_rules.guest_ids()
    key = sort_key(comparator)

    def prioritize(candidates: List[Guest]) -> List[Guest]:
        must = sorted((g for g in candidates if g.id in in_rules), key=key)
        regular = sorted((g for g in candidates if g.id not in in_rules), key=key)
        return must + regular

    return prioritize(host_candidates), prioritize(external_candidates), in_rules


# ----------------------------- reorders -----------------------------
def _pull_after_anchor(sorted_candidates: List[Guest], groups: List[List[Guest]]) -> List[Guest]:
    """Move each group's non-anchor members directly behind its earliest member."""
    position = {g.id: i for i, g in enumerate(sorted_candidates)}
    pulled: Set[str] = set()
    followers: Dict[str, List[Guest]] = {}

    for members in groups:
        if len(members) < 2:
            continue
        anchor = min(members, key=lambda g: position[g.id])
        rest = [g for g in members if g.id != anchor.id]
        followers[anchor.id] = rest
        pulled.update(g.id for g in rest)

    if not pulled:
        return sorted_candidates

    result: List[Guest] = []
    for guest in sorted_candidates:
        if guest.id in pulled:
            continue
        result.append(guest)
        result.extend(followers.get(guest.id, []))
    return result


def reorder_for_clusters(
    sorted_candidates: List[Guest],
    sit_together: List[ProximityRule],
    comparator: Comparator,
) -> List[Guest]:
    """Seat sit-together cluster members right after their best-priority member."""
    if not sit_together or not sorted_candidates:
        return sorted_candidates

    by_id = {g.id: g for g in sorted_candidates}
    key = sort_key(comparator)
    groups = []
    for members in build_clusters(sit_together).values():
        present = [by_id[gid] for gid in members if gid in by_id]
        groups.append(sorted(present, key=key))
    return _pull_after_anchor(sorted_candidates, groups)


def build_tag_signature(guest: Guest) -> str:
    return "|".join(sorted(guest.tags)) if guest.tags else ""


def reorder_for_tag_similarity(sorted_candidates: List[Guest]) -> List[Guest]:
    """Group guests with identical tag sets behind the earliest of them."""
    by_signature: Dict[str, List[Guest]] = {}
    for guest in sorted_candidates:
        sig = build_tag_signature(guest)
        if sig:
            by_signature.setdefault(sig, []).append(guest)
    return _pull_after_anchor(sorted_candidates, list(by_signature.values()))
