"""CSV loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Optional, Set, Tuple, Union

import pandas as pd

from .layouts import link_ring
from .models import (
    Guest,
    MODE_DEFAULT,
    ProximityRule,
    ProximityRules,
    Seat,
    Table,
    TagGroup,
    parse_bool,
    parse_pipe_list,
)

Source = Union[Path, str, IO[Any]]


def _read(path: Source) -> pd.DataFrame:
    # Everything as text; missing cells become "".
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _require(df: pd.DataFrame, columns: Iterable[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{what} is missing column(s): {', '.join(missing)}")


def _int(value: object, default: int = 0) -> int:
    text = str(value).strip()
    return int(float(text)) if text else default


def load_guests(path: Source) -> List[Guest]:
    """Load guests from ``guests.csv``.

    Required columns are ``id`` and ``name``. ``from_host`` defaults to true,
    ``tags`` is a pipe separated list.
    """
    df = _read(path)
    _require(df, ("id", "name"), "guests.csv")
    guests: List[Guest] = []
    seen: Set[str] = set()
    for _, row in df.iterrows():
        guest_id = str(row["id"]).strip()
        if guest_id in seen:
            raise ValueError(f"Duplicate guest id: {guest_id}")
        seen.add(guest_id)
        guests.append(
            Guest(
                id=guest_id,
                name=str(row["name"]).strip(),
                from_host=parse_bool(row.get("from_host", "") or "true"),
                ranking=_int(row.get("ranking", "")),
                tags=parse_pipe_list(row.get("tags", "")),
                deleted=parse_bool(row.get("deleted", "") or "false"),
                country=str(row.get("country", "")).strip(),
                company=str(row.get("company", "")).strip(),
            )
        )
    return guests


def split_guests(guests: Iterable[Guest]) -> Tuple[List[Guest], List[Guest]]:
    """Host-side and external-side guests, in file order."""
    host: List[Guest] = []
    external: List[Guest] = []
    for g in guests:
        (host if g.from_host else external).append(g)
    return host, external


def load_tables(path: Source) -> List[Table]:
    """Load tables from ``seats.csv`` (one row per seat).

    Seats of a table whose ``adjacent`` column is blank throughout are linked
    in a ring by seat number.
    """
    df = _read(path)
    _require(df, ("table_id", "seat_id", "seat_number"), "seats.csv")
    tables: Dict[str, Table] = {}
    explicit: Dict[str, bool] = {}
    for _, row in df.iterrows():
        table_id = str(row["table_id"]).strip()
        table = tables.get(table_id)
        if table is None:
            number = _int(row.get("table_number", ""), default=len(tables) + 1)
            table = Table(
                id=table_id,
                table_number=number,
                label=str(row.get("table_label", "")).strip() or f"Table {number}",
                shape=str(row.get("shape", "")).strip() or "round",
            )
            tables[table_id] = table
            explicit[table_id] = False

        adjacent = parse_pipe_list(row.get("adjacent", ""))
        if adjacent:
            explicit[table_id] = True
        assigned = str(row.get("assigned_guest_id", "")).strip()
        table.seats.append(
            Seat(
                id=str(row["seat_id"]).strip(),
                seat_number=_int(row["seat_number"]),
                mode=str(row.get("mode", "")).strip() or MODE_DEFAULT,
                locked=parse_bool(row.get("locked", "") or "false"),
                assigned_guest_id=assigned or None,
                adjacent_seats=adjacent,
            )
        )

    for table_id, table in tables.items():
        if not explicit[table_id]:
            link_ring(table.seats)
    return list(tables.values())


def load_rules(path: Source, guest_ids: Optional[Set[str]] = None) -> ProximityRules:
    """Load proximity rules from ``rules.csv`` (``guest1_id,guest2_id,kind``).

    If ``guest_ids`` is provided it validates that both guests exist.
    """
    df = _read(path)
    _require(df, ("guest1_id", "guest2_id", "kind"), "rules.csv")
    rules: List[ProximityRule] = []
    for _, row in df.iterrows():
        a = str(row["guest1_id"]).strip()
        b = str(row["guest2_id"]).strip()
        if guest_ids is not None and (a not in guest_ids or b not in guest_ids):
            raise ValueError(f"Rule references unknown guest: {a}, {b}")
        rules.append(ProximityRule(a, b, str(row["kind"]).strip()))
    return ProximityRules.from_rules(rules)


def tag_groups_from_guests(guests: Iterable[Guest], tags: Optional[Iterable[str]] = None) -> List[TagGroup]:
    """One group per tag shared by live guests, limited to ``tags`` when given."""
    members: Dict[str, List[str]] = {}
    for guest in guests:
        if guest.deleted:
            continue
        for tag in guest.tags:
            members.setdefault(tag, []).append(guest.id)
    wanted = list(tags) if tags is not None else sorted(members)
    return [TagGroup(tag, members.get(tag, [])) for tag in wanted]


def load_all(guests_path: Source, seats_path: Source, rules_path: Optional[Source] = None):
    """Convenience wrapper returning host guests, external guests, tables and rules."""
    guests = load_guests(guests_path)
    rules = load_rules(rules_path, {g.id for g in guests}) if rules_path else ProximityRules()
    tables = load_tables(seats_path)
    host, external = split_guests(guests)
    return host, external, tables, rules
