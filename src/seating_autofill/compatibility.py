"""Seat mode gate shared by every phase that places a guest."""
from __future__ import annotations

from typing import Iterable, Optional, Set

from .models import Guest, MODE_EXTERNAL_ONLY, MODE_HOST_ONLY, Seat


def can_guest_sit_in_mode(from_host: bool, mode: str) -> bool:
    if mode == MODE_HOST_ONLY:
        return from_host
    if mode == MODE_EXTERNAL_ONLY:
        return not from_host
    return True


def can_place_guest_in_seat(guest: Guest, seat: Seat) -> bool:
    """True when the seat's access mode accepts the guest's side."""
    return can_guest_sit_in_mode(guest.from_host, seat.mode)


def eligible_guests(
    candidates: Iterable[Guest],
    assigned: Set[str],
    seat: Seat,
    from_host: Optional[bool] = None,
):
    """Unassigned candidates, in order, that may sit in ``seat``.

    ``from_host`` narrows the result to one side when given.
    """
    for guest in candidates:
        if guest.id in assigned:
            continue
        if from_host is not None and guest.from_host != from_host:
            continue
        if can_place_guest_in_seat(guest, seat):
            yield guest
