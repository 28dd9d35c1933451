"""Command line interface for the seating auto-fill engine."""
from __future__ import annotations

import argparse
import csv
import logging
import random
from dataclasses import asdict
from pathlib import Path
from typing import Sequence, Tuple

from .audit import table_summary
from .csv_loader import load_all, tag_groups_from_guests
from .engine import auto_fill
from .models import (
    AutoFillOptions,
    RandomizeOrder,
    RandomizePartition,
    RatioRule,
    SortRule,
    SpacingRule,
    TableRules,
)


def _pair(text: str) -> Tuple[str, str]:
    left, sep, right = text.partition(":")
    if not sep or not left or not right:
        raise argparse.ArgumentTypeError(f"expected A:B, got {text!r}")
    return left.strip(), right.strip()


def sort_rule(text: str) -> SortRule:
    field, _, direction = text.partition(":")
    try:
        return SortRule(field.strip(), (direction or "asc").strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def ratio_rule(text: str) -> RatioRule:
    host, external = _pair(text)
    try:
        return RatioRule(int(host), int(external))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"ratio must be two integers, got {text!r}") from exc


def rank_band(text: str) -> RandomizePartition:
    low, high = _pair(text)
    try:
        return RandomizePartition(int(low), int(high))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"rank band must be two integers, got {text!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seat guests across tables")
    parser.add_argument("--guests", required=True, help="Path to guests.csv")
    parser.add_argument("--seats", required=True, help="Path to seats.csv")
    parser.add_argument("--rules", help="Path to rules.csv with sit-together / sit-away pairs")
    parser.add_argument("--sort", type=sort_rule, action="append", metavar="FIELD[:DIR]",
                        help="Sort rule, repeatable (name, country, organization, ranking; asc or desc).")
    layout = parser.add_mutually_exclusive_group()
    layout.add_argument("--spacing", type=int, metavar="N",
                        help="Alternate host and external guests in runs of N.")
    layout.add_argument("--ratio", type=ratio_rule, metavar="H:E",
                        help="Target host:external ratio per table.")
    parser.add_argument("--start-with-external", action="store_true",
                        help="With --spacing, start each table with external guests.")
    parser.add_argument("--tag-group", action="append", metavar="TAG",
                        help="Keep guests sharing TAG together, repeatable.")
    parser.add_argument("--all-tags", action="store_true",
                        help="Treat every guest tag as a tag group.")
    parser.add_argument("--randomize", type=rank_band, action="append", metavar="MIN:MAX",
                        help="Shuffle guests ranked MIN <= r < MAX, repeatable.")
    parser.add_argument("--seed", type=int, help="Random seed for --randomize.")
    side = parser.add_mutually_exclusive_group()
    side.add_argument("--host-only", action="store_true", help="Seat host-side guests only.")
    side.add_argument("--external-only", action="store_true", help="Seat external guests only.")
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: seat,table,guest_id,guest.")
    parser.add_argument("--out-violations", type=Path,
                        help="Write the violation report CSV.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def options_from_args(args: argparse.Namespace, guests) -> AutoFillOptions:
    table_rules = None
    if args.spacing is not None:
        table_rules = TableRules(spacing=SpacingRule(args.spacing, args.start_with_external))
    elif args.ratio is not None:
        table_rules = TableRules(ratio=args.ratio)

    tag_groups = []
    if args.all_tags:
        tag_groups = tag_groups_from_guests(guests)
    elif args.tag_group:
        tag_groups = tag_groups_from_guests(guests, args.tag_group)

    randomize = None
    if args.randomize:
        randomize = RandomizeOrder(enabled=True, partitions=list(args.randomize))

    return AutoFillOptions(
        include_host=not args.external_only,
        include_external=not args.host_only,
        sort_rules=args.sort or [SortRule()],
        table_rules=table_rules,
        tag_groups=tag_groups,
        randomize_order=randomize,
        rng=random.Random(args.seed) if args.seed is not None else None,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point used by ``python -m seating_autofill.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.start_with_external and args.spacing is None:
        parser.error("--start-with-external requires --spacing")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        host, external, tables, rules = load_all(args.guests, args.seats, args.rules)
        options = options_from_args(args, host + external)
    except ValueError as exc:
        parser.error(str(exc))
    options.proximity_rules = rules

    result = auto_fill(tables, host, external, options)
    if result.aborted:
        parser.error("no guest list selected")

    guests = {g.id: g for g in host + external}
    seat_rows = []
    for table in sorted(tables, key=lambda t: t.table_number):
        for seat in sorted(table.seats, key=lambda s: s.seat_number):
            if seat.assigned_guest_id:
                guest = guests.get(seat.assigned_guest_id)
                name = guest.name if guest else seat.assigned_guest_id
                seat_rows.append((seat.id, table.label, seat.assigned_guest_id, name))

    for seat_id, _, _, name in seat_rows:
        print(f"{seat_id},{name}")

    for s in table_summary(tables, guests, result.violations):
        print(f"[REPORT] {s['label']} occupied={s['occupied']}/{s['seats']} host={s['host']} "
              f"external={s['external']} vip={s['vip']} violations={s['violations']}")
    for v in result.violations:
        print(f"[VIOLATION] {v.type}: {v.reason}")
    if result.unplaced_guest_ids:
        names = [guests[g].name for g in result.unplaced_guest_ids]
        print(f"[UNPLACED] {len(names)}: {', '.join(names)}")

    if args.out_assignments:
        args.out_assignments.parent.mkdir(parents=True, exist_ok=True)
        with args.out_assignments.open("w", newline="") as f:
            w = csv.writer(f)
            w.writerow(["seat", "table", "guest_id", "guest"])
            for row in seat_rows:
                w.writerow(row)

    if args.out_violations:
        args.out_violations.parent.mkdir(parents=True, exist_ok=True)
        with args.out_violations.open("w", newline="") as f:
            fieldnames = [
                "type", "guest1_id", "guest2_id", "guest1_name", "guest2_name",
                "table_id", "table_label", "seat1_id", "seat2_id", "reason",
            ]
            w = csv.DictWriter(f, fieldnames=fieldnames)
            w.writeheader()
            for v in result.violations:
                w.writerow(asdict(v))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
