"""Built-in table builders that produce seat adjacency.

Seats are numbered clockwise from 1. Adjacency comes from a ``networkx``
graph whose nodes are seat numbers.
"""
from __future__ import annotations

from typing import Dict, List, Optional

import networkx as nx

from .models import MODE_DEFAULT, Seat, Table


def seat_id(table_id: str, seat_number: int) -> str:
    return f"{table_id}-s{seat_number}"


def _table_from_graph(
    graph: nx.Graph,
    table_id: str,
    table_number: int,
    label: str,
    shape: str,
    modes: Optional[Dict[int, str]],
) -> Table:
    modes = modes or {}
    seats = []
    for number in sorted(graph.nodes):
        neighbours = sorted(n for n in graph.neighbors(number) if n != number)
        seats.append(Seat(
            id=seat_id(table_id, number),
            seat_number=number,
            mode=modes.get(number, MODE_DEFAULT),
            adjacent_seats=[seat_id(table_id, n) for n in neighbours],
        ))
    return Table(id=table_id, table_number=table_number, label=label, shape=shape, seats=seats)


def link_ring(seats: List[Seat]) -> None:
    """Set adjacency so ``seats``, taken in seat-number order, form a ring."""
    ordered = sorted(seats, key=lambda s: s.seat_number)
    graph = nx.cycle_graph(len(ordered))
    for i, seat in enumerate(ordered):
        seat.adjacent_seats = [ordered[n].id for n in sorted(graph.neighbors(i)) if n != i]


def round_table(
    table_id: str,
    table_number: int,
    seat_count: int,
    label: str = "",
    modes: Optional[Dict[int, str]] = None,
) -> Table:
    """Ring of ``seat_count`` seats, each next to the seats on either side."""
    if seat_count < 1:
        raise ValueError("seat_count must be at least 1")
    graph = nx.relabel_nodes(nx.cycle_graph(seat_count), lambda n: n + 1)
    return _table_from_graph(graph, table_id, table_number, label or f"Table {table_number}", "round", modes)


def rectangle_table(
    table_id: str,
    table_number: int,
    top: int,
    bottom: int,
    left: int = 0,
    right: int = 0,
    label: str = "",
    modes: Optional[Dict[int, str]] = None,
) -> Table:
    """Rectangle with seats on up to four sides.

    Neighbours on the same side are adjacent. When two opposite sides have the
    same number of seats, each seat is also adjacent to the one facing it. The
    end seats of perpendicular sides meet at the corners.
    """
    if min(top, bottom, left, right) < 0 or top + bottom + left + right < 1:
        raise ValueError("a rectangle table needs at least one seat")

    # Clockwise numbering: top left->right, right top->bottom, bottom right->left, left bottom->top.
    sides: Dict[str, List[int]] = {}
    number = 1
    for side, count in (("top", top), ("right", right), ("bottom", bottom), ("left", left)):
        sides[side] = list(range(number, number + count))
        number += count

    graph = nx.Graph()
    graph.add_nodes_from(range(1, number))
    for seats in sides.values():
        nx.add_path(graph, seats)

    # Facing pairs, with bottom and left reversed so index i lines up across the table.
    bottom_lr = list(reversed(sides["bottom"]))
    left_tb = list(reversed(sides["left"]))
    if top == bottom:
        graph.add_edges_from(zip(sides["top"], bottom_lr))
    if left == right:
        graph.add_edges_from(zip(left_tb, sides["right"]))

    corners = (
        (sides["top"][-1:], sides["right"][:1]),
        (sides["right"][-1:], sides["bottom"][:1]),
        (sides["bottom"][-1:], sides["left"][:1]),
        (sides["left"][-1:], sides["top"][:1]),
    )
    for a, b in corners:
        if a and b:
            graph.add_edge(a[0], b[0])

    return _table_from_graph(graph, table_id, table_number, label or f"Table {table_number}", "rectangle", modes)
