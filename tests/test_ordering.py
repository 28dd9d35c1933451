import random

from seating_autofill.models import RandomizeOrder, RandomizePartition, SortRule
from seating_autofill.ordering import (
    apply_randomize_order,
    build_prioritized_pools,
    build_tag_signature,
    is_randomize_applicable,
    make_comparator,
    reorder_for_clusters,
    reorder_for_tag_similarity,
    shuffle,
    sort_key,
    with_host_tie_break,
)

from factories import external, host, rules


def ids(guests):
    return [g.id for g in guests]


def test_ranking_sorts_numerically():
    cmp = make_comparator([SortRule("ranking", "asc")])
    guests = [host("a", 10), host("b", 2), host("c", 1)]
    assert ids(sorted(guests, key=sort_key(cmp))) == ["c", "b", "a"]


def test_name_sort_is_case_insensitive_and_directional():
    guests = [host("x", name="bob"), host("y", name="Alice"), host("z", name="carl")]
    asc = make_comparator([SortRule("name", "asc")])
    desc = make_comparator([SortRule("name", "desc")])
    assert ids(sorted(guests, key=sort_key(asc))) == ["y", "x", "z"]
    assert ids(sorted(guests, key=sort_key(desc))) == ["z", "x", "y"]


def test_ties_fall_back_to_host_then_name():
    cmp = make_comparator([SortRule()])
    guests = [external("e", 5, name="Aaron"), host("h2", 5, name="Zed"), host("h1", 5, name="Amy")]
    assert ids(sorted(guests, key=sort_key(cmp))) == ["h1", "h2", "e"]


def test_organization_reads_company():
    cmp = make_comparator([SortRule("organization")])
    guests = [host("a", company="Zeta"), host("b", company="acme")]
    assert ids(sorted(guests, key=sort_key(cmp))) == ["b", "a"]


def test_host_tie_break_uses_id_last():
    cmp = with_host_tie_break(make_comparator([SortRule()]))
    twins = [host("b", 1, name="Sam"), host("a", 1, name="Sam")]
    assert ids(sorted(twins, key=sort_key(cmp))) == ["a", "b"]


def test_shuffle_is_seeded_permutation():
    items = list(range(20))
    first = shuffle(items, random.Random(7))
    second = shuffle(items, random.Random(7))
    assert first == second
    assert sorted(first) == items
    assert items == list(range(20))


def test_randomize_only_moves_guests_inside_band():
    guests = [host("a", 1), host("b", 1), host("c", 5), host("d", 6), host("e", 7), host("f", 9)]
    config = RandomizeOrder(enabled=True, partitions=[RandomizePartition(5, 9)])
    out = apply_randomize_order(guests, config, random.Random(3))
    assert ids(out[:2]) == ["a", "b"]
    assert out[5].id == "f"
    assert sorted(ids(out[2:5])) == ["c", "d", "e"]


def test_randomize_disabled_returns_input():
    guests = [host("a", 1), host("b", 2)]
    assert apply_randomize_order(guests, RandomizeOrder(enabled=False), random.Random(1)) is guests


def test_randomize_applies_to_single_ranking_rule_only():
    assert is_randomize_applicable([SortRule("ranking")])
    assert not is_randomize_applicable([SortRule("name")])
    assert not is_randomize_applicable([SortRule("ranking"), SortRule("name")])


def test_prioritized_pools_put_rule_guests_first():
    cmp = make_comparator([SortRule()])
    hosts = [host("h1", 1), host("h2", 2), host("h3", 3)]
    externals = [external("e1", 1), external("e2", 2)]
    p_host, p_ext, in_rules = build_prioritized_pools(
        hosts, externals, rules(together=[("h3", "e2")]), cmp
    )
    assert ids(p_host) == ["h3", "h1", "h2"]
    assert ids(p_ext) == ["e2", "e1"]
    assert in_rules == {"h3", "e2"}


def test_cluster_members_follow_their_anchor():
    cmp = make_comparator([SortRule()])
    ordered = [host("a", 1), host("b", 2), host("c", 3), host("d", 4)]
    out = reorder_for_clusters(ordered, rules(together=[("d", "a")]).sit_together, cmp)
    assert ids(out) == ["a", "d", "b", "c"]


def test_identical_tags_are_pulled_together():
    ordered = [
        host("a", 1, tags=["x", "y"]),
        host("b", 2),
        host("c", 3, tags=["z"]),
        host("d", 4, tags=["y", "x"]),
    ]
    assert build_tag_signature(ordered[3]) == "x|y"
    assert ids(reorder_for_tag_similarity(ordered)) == ["a", "d", "b", "c"]
