from seating_autofill.models import MODE_HOST_ONLY, SortRule, TagGroup
from seating_autofill.ordering import make_comparator
from seating_autofill.tag_groups import TagGroupOptimizer, apply_tag_group_optimization, seat_modes_fit

from factories import external, host, lock, ring, rules, state_with, where


CMP = make_comparator([SortRule()])


def test_seat_modes_fit_counts_restricted_seats():
    table = ring("t1", 1, 4, modes={1: MODE_HOST_ONLY, 2: MODE_HOST_ONLY})
    assert seat_modes_fit(table, [host("h"), external("e1"), external("e2")])
    assert not seat_modes_fit(table, [external("e1"), external("e2"), external("e3")])


def test_target_prefers_a_locked_member():
    t1, t2 = ring("t1", 1, 4), ring("t2", 2, 4)
    lock(t1, 1, "a")
    state = state_with([t1, t2], [host("a", 9), host("b", 1)], [(t2, 1, "b")])
    assert TagGroupOptimizer(state, [], CMP).target_table(["a", "b"]) is t1


def test_target_prefers_a_perfect_fit():
    t1, t2, t3 = ring("t1", 1, 4), ring("t2", 2, 2), ring("t3", 3, 4)
    state = state_with([t1, t2, t3], [host("a", 1), host("b", 2)], [(t1, 1, "a"), (t3, 1, "b")])
    assert TagGroupOptimizer(state, [], CMP).target_table(["a", "b"]) is t2


def test_group_is_pulled_onto_best_members_table():
    t1, t2 = ring("t1", 1, 4), ring("t2", 2, 4)
    guests = [host("a", 1), host("b", 2), host("c", 3), host("x1", 50)]
    state = state_with([t1, t2], guests, [(t1, 1, "a"), (t1, 2, "x1"), (t2, 1, "b"), (t2, 2, "c")])

    apply_tag_group_optimization(state, [TagGroup("family", ["a", "b", "c"])], CMP)

    assert {where(state, g)[0] for g in ("a", "b", "c")} == {"t1"}
    assert state.are_adjacent("a", "b")
    assert state.are_adjacent("a", "c")
    assert where(state, "x1")[0] == "t1"


def test_members_of_other_groups_are_never_displaced():
    t1, t2 = ring("t1", 1, 4), ring("t2", 2, 4)
    guests = [host("a", 1), host("b", 2), host("p1", 5), host("p2", 6), host("x", 50)]
    placed = [(t1, 1, "a"), (t1, 2, "p1"), (t1, 3, "x"), (t1, 4, "p2"), (t2, 1, "b")]
    state = state_with([t1, t2], guests, placed)

    groups = [TagGroup("college", ["a", "b"]), TagGroup("work", ["p1", "p2"])]
    apply_tag_group_optimization(state, groups, CMP)

    assert where(state, "p1") == ("t1", 2)
    assert where(state, "p2") == ("t1", 4)
    assert where(state, "b") == ("t1", 3)
    assert where(state, "x")[0] == "t2"


def test_displacement_evicts_lowest_priority_outsiders_first():
    t1, t2 = ring("t1", 1, 4), ring("t2", 2, 4)
    guests = [host("a", 1), host("b", 2), host("c", 3), host("x1", 50), host("x2", 90), host("x3", 70)]
    placed = [(t1, 1, "a"), (t1, 2, "x1"), (t1, 3, "x2"), (t1, 4, "x3"), (t2, 1, "b"), (t2, 2, "c")]
    state = state_with([t1, t2], guests, placed)

    TagGroupOptimizer(state, [], CMP).displace(["a", "b", "c"], t1)

    assert where(state, "b") == ("t1", 3)
    assert where(state, "c") == ("t1", 4)
    assert where(state, "x1") == ("t1", 2)
    assert where(state, "x3") == ("t2", 1)
    assert where(state, "x2") == ("t2", 2)


def test_displacement_skipped_when_group_is_small():
    t1, t2 = ring("t1", 1, 6), ring("t2", 2, 4)
    guests = [host("a", 1), host("b", 2), host("x", 50)]
    state = state_with([t1, t2], guests, [(t1, 1, "a"), (t1, 2, "x"), (t2, 1, "b")])
    before = state.snapshot()
    TagGroupOptimizer(state, [], CMP).displace(["a", "b"], t1)
    assert state.assignment == before


def test_reseat_evicts_worse_guest_and_leaves_them_unplaced():
    t1, t2 = ring("t1", 1, 2), ring("t2", 2, 2)
    guests = [host("y1", 20), host("y2", 80), host("z", 30)]
    state = state_with([t1, t2], guests, [(t2, 1, "y1"), (t2, 2, "y2")])

    assert TagGroupOptimizer(state, [], CMP).reseat("z", t1)

    assert where(state, "z") == ("t2", 2)
    assert where(state, "y1") == ("t2", 1)
    assert state.find_guest_seat("y2") is None


def test_reseat_never_evicts_better_guests():
    t1, t2 = ring("t1", 1, 2), ring("t2", 2, 2)
    guests = [host("y1", 1), host("y2", 2), host("z", 30)]
    state = state_with([t1, t2], guests, [(t2, 1, "y1"), (t2, 2, "y2")])
    assert not TagGroupOptimizer(state, [], CMP).reseat("z", t1)


def test_contiguous_block_on_one_table():
    table = ring("t1", 1, 6)
    guests = [host("a", 1), host("b", 2), host("x", 50)]
    state = state_with([table], guests, [(table, 1, "a"), (table, 4, "b"), (table, 2, "x")])

    apply_tag_group_optimization(state, [TagGroup("team", ["a", "b"])], CMP)

    assert where(state, "b") == ("t1", 2)
    assert where(state, "x") == ("t1", 4)
    assert where(state, "a") == ("t1", 1)


def test_single_seated_member_is_left_alone():
    table = ring("t1", 1, 4)
    state = state_with([table], [host("a", 1), host("b", 2)], [(table, 1, "a")])
    before = state.snapshot()
    apply_tag_group_optimization(state, [TagGroup("solo", ["a", "b", "ghost"])], CMP)
    assert state.assignment == before


def test_reseat_skips_seats_next_to_a_locked_sit_away_partner():
    t1, t2 = ring("t1", 1, 2), ring("t2", 2, 4)
    lock(t2, 1, "x")
    state = state_with([t1, t2], [host("x", 1), host("z", 30)], [])
    optimizer = TagGroupOptimizer(state, [], CMP, rules(away=[("x", "z")]).sit_away)

    assert optimizer.reseat("z", t1)
    assert where(state, "z") == ("t2", 3)


def test_eviction_skips_seats_next_to_a_locked_sit_away_partner():
    t1, t2 = ring("t1", 1, 2), ring("t2", 2, 4)
    lock(t2, 1, "x")
    guests = [host("x", 1), host("y2", 80), host("y3", 20), host("y4", 90), host("z", 30)]
    state = state_with([t1, t2], guests, [(t2, 2, "y2"), (t2, 3, "y3"), (t2, 4, "y4")])
    optimizer = TagGroupOptimizer(state, [], CMP, rules(away=[("x", "z")]).sit_away)

    assert not optimizer.reseat("z", t1)
    assert where(state, "y2") == ("t2", 2)
    assert where(state, "y4") == ("t2", 4)
