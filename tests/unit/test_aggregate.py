import random

import pytest

from assembly_map.common.models import RawRow
from assembly_map.pipeline.aggregate import (
    aggregate_constituency,
    compute_turnout,
    percentage,
    run_aggregate,
)


def _row(ac_id, name, party, votes, electors=100000, **overrides) -> RawRow:
    fields = {
        "ac_id": ac_id,
        "ac_name": "Alpha",
        "st_name": "Kerala",
        "st_code": "S11",
        "ac_no": 1,
        "candidate_name": name,
        "party": party,
        "age": 40,
        "gender": "MALE",
        "category": "GEN",
        "votes": votes,
        "postal_votes": 0,
        "total_electors": electors,
        "year": 2021,
        "is_bye_election": "NO",
        "wiki_link": None,
    }
    fields.update(overrides)
    return RawRow(**fields)


def test_three_candidate_constituency_reduces_to_expected_record():
    rows = [
        _row(101, "A", "P1", 50000, postal_votes=10),
        _row(101, "B", "P2", 30000, postal_votes=5),
        _row(101, "C", "P3", 5000),
    ]

    record = aggregate_constituency(101, rows)

    assert record.total_votes == 85000
    assert record.turnout == 85.0
    assert record.winner_name == "A"
    assert record.winner_party == "P1"
    assert record.runnerup_party == "P2"
    assert record.margin == 20000
    assert record.total_postal == 15
    assert record.party_vote_shares == {"P1": 58.82, "P2": 35.29, "P3": 5.88}
    assert [candidate.lost_deposit for candidate in record.top_candidates] == [False, False, True]


def test_single_candidate_has_placeholder_runner_up_and_full_margin():
    record = aggregate_constituency(7, [_row(7, "Solo", "IND", 1200, electors=2000)])

    assert record.runnerup_party == "N/A"
    assert record.margin == 1200
    assert record.party_vote_shares == {"IND": 100.0}
    assert record.top_candidates[0].lost_deposit is False


def test_vote_tie_goes_to_the_row_seen_first():
    rows = [_row(3, "First", "P1", 500), _row(3, "Second", "P2", 500)]

    record = aggregate_constituency(3, rows)

    assert record.winner_name == "First"
    assert record.runnerup_party == "P2"
    assert record.margin == 0


def test_missing_or_zero_electors_leave_turnout_empty():
    assert compute_turnout(100, 0) is None
    assert compute_turnout(100, None) is None
    record = aggregate_constituency(4, [_row(4, "A", "P1", 10, electors=0), _row(4, "B", "P2", 5, electors=0)])
    assert record.turnout is None


def test_top_candidates_capped_at_five_and_ordered_by_votes():
    rows = [_row(5, f"C{i}", f"P{i}", votes) for i, votes in enumerate([10, 70, 30, 50, 20, 60, 40])]

    record = aggregate_constituency(5, rows)

    assert [candidate.votes for candidate in record.top_candidates] == [70, 60, 50, 40, 30]


def test_duplicate_party_rows_keep_the_later_share():
    rows = [_row(6, "A", "P1", 60), _row(6, "B", "P2", 30), _row(6, "C", "P2", 10)]

    record = aggregate_constituency(6, rows)

    assert record.party_vote_shares == {"P1": 60.0, "P2": 10.0}


def test_run_aggregate_groups_by_id_and_builds_search_labels():
    rows = [
        _row(20, "X", "P1", 10, ac_name="Zeta", st_name="Goa", st_code="S05"),
        _row(10, "A", "P1", 50),
        _row(10, "B", "P2", 40),
        _row(10, "C", "P2", 10),
    ]

    result = run_aggregate(rows)

    assert list(result["records"]) == [10, 20]
    assert [entry.label for entry in result["search_index"]] == ["Alpha (Kerala)", "Zeta (Goa)"]
    assert result["stats"] == {
        "constituencies": 2,
        "turnout_undefined": 0,
        "uncontested": 1,
        "duplicate_party_rows": 1,
    }


def test_percentage_of_empty_whole_is_zero():
    assert percentage(5, 0) == 0.0


def test_exact_binary_ties_round_half_up():
    # 5000 / 160000 is exactly 3.125 percent.
    record = aggregate_constituency(8, [_row(8, "A", "P1", 155000, electors=200000), _row(8, "B", "P2", 5000, electors=200000)])

    assert record.party_vote_shares["P2"] == 3.13
    assert record.top_candidates[1].share == 3.13
    assert percentage(5000, 160000) == 3.13
    assert compute_turnout(5000, 160000) == 3.13
    assert percentage(1, 3) == 33.33


def test_vote_shares_are_read_only():
    record = aggregate_constituency(9, [_row(9, "A", "P1", 10), _row(9, "B", "P2", 5)])

    with pytest.raises(TypeError):
        record.party_vote_shares["P3"] = 1.0
    payload = record.to_dict()
    assert type(payload["party_vote_shares"]) is dict
    assert payload["top_candidates"][0] == {"name": "A", "party": "P1", "votes": 10, "share": 66.67, "lost_deposit": False}


@pytest.mark.parametrize("seed", range(8))
def test_party_shares_of_a_group_sum_to_about_one_hundred(seed):
    rng = random.Random(seed)
    rows = [_row(seed, f"C{i}", f"P{i}", rng.randint(0, 90000)) for i in range(rng.randint(2, 25))]
    rows.append(_row(seed, "Last", "PX", rng.randint(1, 90000)))

    record = aggregate_constituency(seed, rows)

    assert 99.0 <= sum(record.party_vote_shares.values()) <= 101.0
