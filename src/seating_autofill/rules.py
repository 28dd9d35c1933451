"""Lookups over proximity rules."""
from __future__ import annotations

from typing import List

from .models import ProximityRule


def partners(guest_id: str, rules: List[ProximityRule]) -> List[str]:
    """Every distinct guest paired with ``guest_id``, in rule order."""
    out: List[str] = []
    for rule in rules:
        other = rule.partner_of(guest_id)
        if other is not None and other not in out:
            out.append(other)
    return out
