"""Data models for the seating auto-fill engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import math
import random


def parse_pipe_list(value: object) -> List[str]:
    """Split a pipe separated string into a list.

    Empty values such as ``""`` or ``None`` return an empty list.
    ``pandas`` often provides ``float('nan')`` for missing values which is
    also treated as empty.
    """
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return []
    return [part.strip() for part in text.split("|") if part.strip()]


def parse_bool(value: object) -> bool:
    """Parse common truthy strings into bool."""
    return str(value).strip().lower() in ("true", "1", "yes")


# ----------------------------- seat modes -----------------------------
MODE_DEFAULT = "default"
MODE_HOST_ONLY = "host-only"
MODE_EXTERNAL_ONLY = "external-only"
SEAT_MODES = (MODE_DEFAULT, MODE_HOST_ONLY, MODE_EXTERNAL_ONLY)

# ----------------------------- rule kinds -----------------------------
SIT_TOGETHER = "sit-together"
SIT_AWAY = "sit-away"
RULE_KINDS = (SIT_TOGETHER, SIT_AWAY)

SORT_FIELDS = ("name", "country", "organization", "ranking")
SORT_DIRECTIONS = ("asc", "desc")

VIP_MAX_RANKING = 4


@dataclass
class Guest:
    """A guest supplied by the catalog. The engine never mutates these."""

    id: str
    name: str
    from_host: bool = True
    ranking: int = 0
    tags: List[str] = field(default_factory=list)
    deleted: bool = False
    country: str = ""
    company: str = ""


def is_vip(guest: Guest) -> bool:
    """Guests ranked 1 through 4 are VIPs."""
    return 1 <= guest.ranking <= VIP_MAX_RANKING


@dataclass
class Seat:
    """One seat. ``adjacent_seats`` holds ids of neighbouring seats on the same table."""

    id: str
    seat_number: int
    mode: str = MODE_DEFAULT
    locked: bool = False
    assigned_guest_id: Optional[str] = None
    adjacent_seats: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.mode not in SEAT_MODES:
            raise ValueError(f"Unknown seat mode: {self.mode}")


@dataclass
class Table:
    """Dinner table with an ordered sequence of seats."""

    id: str
    table_number: int
    label: str = ""
    shape: str = "round"
    seats: List[Seat] = field(default_factory=list)


@dataclass
class ProximityRule:
    """Unordered pair of guests plus the kind of proximity wanted."""

    guest1_id: str
    guest2_id: str
    kind: str = SIT_TOGETHER

    def __post_init__(self) -> None:
        if self.kind not in RULE_KINDS:
            raise ValueError(f"Unknown proximity rule kind: {self.kind}")

    def pair_key(self) -> str:
        a, b = sorted((self.guest1_id, self.guest2_id))
        return f"{a}|{b}|{self.kind}"

    def involves(self, guest_id: str) -> bool:
        return guest_id in (self.guest1_id, self.guest2_id)

    def partner_of(self, guest_id: str) -> Optional[str]:
        if self.guest1_id == guest_id:
            return self.guest2_id
        if self.guest2_id == guest_id:
            return self.guest1_id
        return None


@dataclass
class ProximityRules:
    sit_together: List[ProximityRule] = field(default_factory=list)
    sit_away: List[ProximityRule] = field(default_factory=list)

    @classmethod
    def from_rules(cls, rules: List[ProximityRule]) -> "ProximityRules":
        """Split a mixed rule list by kind."""
        return cls(
            sit_together=[r for r in rules if r.kind == SIT_TOGETHER],
            sit_away=[r for r in rules if r.kind == SIT_AWAY],
        )

    def guest_ids(self) -> set:
        ids = set()
        for rule in self.sit_together + self.sit_away:
            ids.add(rule.guest1_id)
            ids.add(rule.guest2_id)
        return ids


@dataclass
class TagGroup:
    """Guests sharing a tag who should preferably sit together."""

    tag: str
    guest_ids: List[str] = field(default_factory=list)


@dataclass
class SpacingRule:
    """Alternate ``spacing`` guests of one side with guests of the other."""

    spacing: int = 1
    start_with_external: bool = False

    def __post_init__(self) -> None:
        if self.spacing < 1:
            raise ValueError("spacing must be at least 1")


@dataclass
class RatioRule:
    host_ratio: int = 50
    external_ratio: int = 50


@dataclass
class TableRules:
    """Table distribution rules. Spacing and ratio are mutually exclusive."""

    spacing: Optional[SpacingRule] = None
    ratio: Optional[RatioRule] = None

    def __post_init__(self) -> None:
        if self.spacing is not None and self.ratio is not None:
            raise ValueError("Spacing and ratio rules cannot be combined")


@dataclass
class SortRule:
    field: str = "ranking"
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field: {self.field}")
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {self.direction}")


@dataclass
class RandomizePartition:
    """Rank band ``min_rank <= ranking < max_rank``."""

    min_rank: int
    max_rank: int


@dataclass
class RandomizeOrder:
    enabled: bool = False
    partitions: List[RandomizePartition] = field(default_factory=list)


@dataclass
class AutoFillOptions:
    """Options for a single auto-fill run."""

    include_host: bool = True
    include_external: bool = True
    sort_rules: List[SortRule] = field(default_factory=lambda: [SortRule()])
    table_rules: Optional[TableRules] = None
    proximity_rules: ProximityRules = field(default_factory=ProximityRules)
    tag_groups: List[TagGroup] = field(default_factory=list)
    randomize_order: Optional[RandomizeOrder] = None
    # Any object with ``random()``; defaults to the process-wide ``random`` module.
    rng: Optional[random.Random] = None


@dataclass
class LockedGuestLocation:
    guest_id: str
    table: Table
    seat: Seat


@dataclass
class Violation:
    """A proximity rule that the committed arrangement fails."""

    type: str
    guest1_id: str
    guest2_id: str
    guest1_name: str
    guest2_name: str
    table_id: str
    table_label: str
    seat1_id: Optional[str] = None
    seat2_id: Optional[str] = None
    reason: str = ""


@dataclass
class AutoFillResult:
    """Output of one run: committed seat -> guest mapping plus the audit."""

    assignment: Dict[str, str] = field(default_factory=dict)
    violations: List[Violation] = field(default_factory=list)
    unplaced_guest_ids: List[str] = field(default_factory=list)
    aborted: bool = False
