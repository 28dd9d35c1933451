import io

import pytest

from seating_autofill.csv_loader import (
    load_all,
    load_guests,
    load_rules,
    load_tables,
    split_guests,
    tag_groups_from_guests,
)
from seating_autofill.models import MODE_HOST_ONLY


GUESTS = """id,name,from_host,ranking,tags,deleted,country,company
g1,Alice,true,1,family|college,,NL,Acme
g2,Bob,false,7,family,,US,
g3,Carol,,3,,yes,,
g4,Dan,no,,college,,,
"""

SEATS = """table_id,table_number,table_label,seat_id,seat_number,mode,locked,assigned_guest_id,adjacent
t1,1,Head,t1-1,1,host-only,true,g1,
t1,1,Head,t1-2,2,,,,
t1,1,Head,t1-3,3,,,,
t2,2,,t2-1,1,,,,t2-2
t2,2,,t2-2,2,,,,t2-1
"""


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_load_guests_reads_every_column(tmp_path):
    guests = load_guests(write(tmp_path, "guests.csv", GUESTS))
    by_id = {g.id: g for g in guests}
    assert [g.id for g in guests] == ["g1", "g2", "g3", "g4"]
    assert by_id["g1"].tags == ["family", "college"]
    assert by_id["g1"].company == "Acme"
    assert by_id["g2"].from_host is False
    assert by_id["g3"].from_host is True
    assert by_id["g3"].deleted is True
    assert by_id["g4"].ranking == 0


def test_split_guests_keeps_file_order(tmp_path):
    host, external = split_guests(load_guests(write(tmp_path, "guests.csv", GUESTS)))
    assert [g.id for g in host] == ["g1", "g3"]
    assert [g.id for g in external] == ["g2", "g4"]


def test_duplicate_guest_id_is_rejected():
    with pytest.raises(ValueError, match="Duplicate"):
        load_guests(io.StringIO("id,name\na,A\na,B\n"))


def test_missing_guest_columns_are_reported():
    with pytest.raises(ValueError, match="name"):
        load_guests(io.StringIO("id\na\n"))


def test_load_tables_links_rings_and_keeps_explicit_adjacency(tmp_path):
    tables = load_tables(write(tmp_path, "seats.csv", SEATS))
    t1, t2 = tables
    assert t1.label == "Head"
    assert t2.label == "Table 2"

    first = t1.seats[0]
    assert first.locked and first.assigned_guest_id == "g1"
    assert first.mode == MODE_HOST_ONLY
    assert sorted(first.adjacent_seats) == ["t1-2", "t1-3"]

    assert t2.seats[0].adjacent_seats == ["t2-2"]
    assert t2.seats[1].adjacent_seats == ["t2-1"]


def test_load_rules_validates_guests(tmp_path):
    path = write(tmp_path, "rules.csv", "guest1_id,guest2_id,kind\ng1,g2,sit-together\ng1,g4,sit-away\n")
    rules = load_rules(path, {"g1", "g2", "g4"})
    assert [(r.guest1_id, r.guest2_id) for r in rules.sit_together] == [("g1", "g2")]
    assert [(r.guest1_id, r.guest2_id) for r in rules.sit_away] == [("g1", "g4")]

    with pytest.raises(ValueError, match="unknown guest"):
        load_rules(path, {"g1", "g2"})


def test_load_rules_rejects_unknown_kind():
    with pytest.raises(ValueError):
        load_rules(io.StringIO("guest1_id,guest2_id,kind\na,b,near\n"))


def test_tag_groups_skip_deleted_guests(tmp_path):
    guests = load_guests(write(tmp_path, "guests.csv", GUESTS))
    groups = tag_groups_from_guests(guests)
    assert [(g.tag, g.guest_ids) for g in groups] == [
        ("college", ["g1", "g4"]),
        ("family", ["g1", "g2"]),
    ]
    assert [g.tag for g in tag_groups_from_guests(guests, ["family"])] == ["family"]


def test_load_all_without_rules(tmp_path):
    host, external, tables, rules = load_all(
        write(tmp_path, "guests.csv", GUESTS), write(tmp_path, "seats.csv", SEATS)
    )
    assert len(host) == 2 and len(external) == 2
    assert len(tables) == 2
    assert rules.sit_together == [] and rules.sit_away == []
