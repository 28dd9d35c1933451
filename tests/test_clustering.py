from seating_autofill.clustering import UnionFind, build_clusters, optimal_order
from seating_autofill.models import SortRule
from seating_autofill.ordering import make_comparator, sort_key

from factories import host, rules


def test_union_find_joins_transitively():
    uf = UnionFind()
    uf.union("a", "b")
    uf.union("b", "c")
    uf.make_set("d")
    assert uf.find("a") == uf.find("c")
    assert uf.find("d") != uf.find("a")
    assert sorted(sorted(m) for m in uf.groups().values()) == [["a", "b", "c"], ["d"]]


def test_build_clusters_from_rules():
    clusters = build_clusters(rules(together=[("a", "b"), ("b", "c"), ("d", "e")]).sit_together)
    assert sorted(sorted(m) for m in clusters.values()) == [["a", "b", "c"], ["d", "e"]]


def test_pair_is_priority_sorted():
    guests = {"a": host("a", ranking=2), "b": host("b", ranking=1)}
    key = sort_key(make_comparator([SortRule()]))
    assert optimal_order(["a", "b"], rules(together=[("a", "b")]).sit_together, guests, key) == ["b", "a"]


def test_most_connected_member_in_the_middle():
    guests = {
        "a": host("a", ranking=1),
        "b": host("b", ranking=2),
        "c": host("c", ranking=9),
        "d": host("d", ranking=3),
    }
    key = sort_key(make_comparator([SortRule()]))
    star = rules(together=[("c", "a"), ("c", "b"), ("c", "d")]).sit_together
    order = optimal_order(["a", "b", "c", "d"], star, guests, key)
    assert order == ["b", "c", "a", "d"]
