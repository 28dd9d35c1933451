"""Transitive sit-together clusters and their in-cluster seating order."""
from __future__ import annotations

from typing import Callable, Dict, List

import networkx as nx

from .models import Guest, ProximityRule


class UnionFind:
    """Disjoint sets with path compression and union by rank."""

    def __init__(self) -> None:
        self.parent: Dict[str, str] = {}
        self.rank: Dict[str, int] = {}

    def make_set(self, x: str) -> None:
        if x not in self.parent:
            self.parent[x] = x
            self.rank[x] = 0

    def find(self, x: str) -> str:
        self.make_set(x)
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: str, b: str) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        if self.rank[ra] < self.rank[rb]:
            self.parent[ra] = rb
        elif self.rank[ra] > self.rank[rb]:
            self.parent[rb] = ra
        else:
            self.parent[rb] = ra
            self.rank[ra] += 1

    def groups(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for x in self.parent:
            out.setdefault(self.find(x), []).append(x)
        return out


def build_clusters(rules: List[ProximityRule]) -> Dict[str, List[str]]:
    """Union guests chained by sit-together rules. Keys are union-find roots."""
    uf = UnionFind()
    for rule in rules:
        uf.union(rule.guest1_id, rule.guest2_id)
    return uf.groups()


def optimal_order(
    cluster: List[str],
    rules: List[ProximityRule],
    guest_lookup: Dict[str, Guest],
    sort_key: Callable[[Guest], object],
) -> List[str]:
    """Order a cluster so the most connected member sits in the middle.

    Pairs are simply sorted by priority. For larger clusters the remaining
    members alternate to the right (even index) and left (odd index) of the
    centre.
    """
    def priority(gid: str):
        guest = guest_lookup.get(gid)
        return (guest is None, sort_key(guest) if guest is not None else 0)

    if len(cluster) <= 2:
        return sorted(cluster, key=priority)

    members = set(cluster)
    graph = nx.Graph()
    graph.add_nodes_from(cluster)
    for rule in rules:
        if rule.guest1_id in members and rule.guest2_id in members:
            graph.add_edge(rule.guest1_id, rule.guest2_id)

    ranked = sorted(cluster, key=lambda gid: (-graph.degree(gid), priority(gid)))
    center, others = ranked[0], ranked[1:]

    result: List[str] = []
    for i, gid in enumerate(others):
        if i % 2 == 0:
            result.append(gid)
        else:
            result.insert(0, gid)
    result.insert(len(result) // 2, center)
    return result
