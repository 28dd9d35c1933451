import pytest

from seating_autofill.layouts import link_ring, rectangle_table, round_table
from seating_autofill.models import MODE_EXTERNAL_ONLY, Seat


def neighbours(table, number):
    seat = next(s for s in table.seats if s.seat_number == number)
    return sorted(int(sid.rsplit("-s", 1)[1]) for sid in seat.adjacent_seats)


def test_round_table_is_a_ring():
    table = round_table("t1", 1, 8)
    assert table.label == "Table 1"
    assert table.shape == "round"
    assert [s.id for s in table.seats][:2] == ["t1-s1", "t1-s2"]
    assert neighbours(table, 1) == [2, 8]
    assert neighbours(table, 5) == [4, 6]


def test_tiny_round_tables():
    assert neighbours(round_table("t", 1, 2), 1) == [2]
    assert neighbours(round_table("t", 1, 1), 1) == []


def test_round_table_modes_and_label():
    table = round_table("t1", 3, 4, label="Head", modes={2: MODE_EXTERNAL_ONLY})
    assert table.label == "Head"
    assert [s.mode for s in table.seats] == ["default", MODE_EXTERNAL_ONLY, "default", "default"]


def test_two_sided_rectangle_faces_across():
    table = rectangle_table("r", 1, top=3, bottom=3)
    assert table.shape == "rectangle"
    assert neighbours(table, 1) == [2, 6]
    assert neighbours(table, 2) == [1, 3, 5]
    assert neighbours(table, 3) == [2, 4]


def test_four_sided_rectangle_links_corners():
    table = rectangle_table("r", 1, top=2, bottom=2, left=1, right=1)
    assert len(table.seats) == 6
    assert neighbours(table, 1) == [2, 5, 6]
    assert neighbours(table, 3) == [2, 4, 6]


@pytest.mark.parametrize("build", [
    lambda: round_table("t", 1, 0),
    lambda: rectangle_table("r", 1, top=0, bottom=0),
    lambda: rectangle_table("r", 1, top=2, bottom=-1),
])
def test_invalid_layouts(build):
    with pytest.raises(ValueError):
        build()


def test_link_ring_orders_by_seat_number():
    seats = [Seat(id=f"x{n}", seat_number=n) for n in (3, 1, 2, 4)]
    link_ring(seats)
    by_number = {s.seat_number: sorted(s.adjacent_seats) for s in seats}
    assert by_number[1] == ["x2", "x4"]
    assert by_number[3] == ["x2", "x4"]
