"""Seating auto-fill package."""
from .models import (
    AutoFillOptions,
    AutoFillResult,
    Guest,
    ProximityRule,
    ProximityRules,
    RandomizeOrder,
    RandomizePartition,
    RatioRule,
    Seat,
    SortRule,
    SpacingRule,
    Table,
    TableRules,
    TagGroup,
    Violation,
)
from .csv_loader import (
    load_guests,
    load_tables,
    load_rules,
    load_all,
    tag_groups_from_guests,
)
from .audit import audit, table_summary
from .engine import auto_fill
from .layouts import rectangle_table, round_table

__all__ = [
    "AutoFillOptions",
    "AutoFillResult",
    "Guest",
    "ProximityRule",
    "ProximityRules",
    "RandomizeOrder",
    "RandomizePartition",
    "RatioRule",
    "Seat",
    "SortRule",
    "SpacingRule",
    "Table",
    "TableRules",
    "TagGroup",
    "Violation",
    "load_guests",
    "load_tables",
    "load_rules",
    "load_all",
    "tag_groups_from_guests",
    "audit",
    "table_summary",
    "auto_fill",
    "rectangle_table",
    "round_table",
]
