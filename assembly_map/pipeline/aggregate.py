"""Reduce candidate rows into one record per constituency."""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from assembly_map.common.constants import (
    DEPOSIT_THRESHOLD_DIVISOR,
    PARTY_UNKNOWN,
    RUNNER_UP_MISSING,
    TOP_CANDIDATE_LIMIT,
)
from assembly_map.common.deterministic import rank_descending
from assembly_map.common.models import CandidateSummary, ConstituencyRecord, RawRow, SearchIndexEntry

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def group_rows(rows: list[RawRow]) -> dict[int, list[RawRow]]:
    grouped: dict[int, list[RawRow]] = defaultdict(list)
    for row in rows:
        grouped[row.ac_id].append(row)
    return {ac_id: grouped[ac_id] for ac_id in sorted(grouped)}


def round_half_up(value: float) -> float:
    """Two decimals, ties away from zero on the exact binary value."""
    return float(Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round_half_up((part / whole) * 100)


def compute_turnout(total_votes: int, total_electors: int | None) -> float | None:
    if not total_electors:
        return None
    return round_half_up((total_votes / total_electors) * 100)


def is_lost_deposit(votes: int, total_votes: int) -> bool:
    return votes < total_votes / DEPOSIT_THRESHOLD_DIVISOR


def _first_present(values) -> int | None:
    for value in values:
        if value is not None:
            return value
    return None


def party_vote_shares(candidates: list[RawRow], total_votes: int) -> dict[str, float]:
    shares: dict[str, float] = {}
    for row in candidates:
        # A party fielding two rows keeps only the later share.
        shares[row.party or PARTY_UNKNOWN] = percentage(row.votes, total_votes)
    return shares


def aggregate_constituency(ac_id: int, candidates: list[RawRow]) -> ConstituencyRecord:
    first = candidates[0]
    ranked = rank_descending(candidates, key=lambda row: row.votes)
    winner = ranked[0]
    runner_up = ranked[1] if len(ranked) > 1 else None

    total_votes = sum(row.votes for row in candidates)
    total_electors = _first_present(row.total_electors for row in candidates)
    turnout = compute_turnout(total_votes, total_electors)
    if turnout is None:
        logger.warning(
            "constituency %s has no elector count; turnout left empty",
            ac_id,
            extra={"stage": "build", "event": "TURNOUT_UNDEFINED"},
        )

    top_candidates = tuple(
        CandidateSummary(
            name=row.candidate_name,
            party=row.party,
            votes=row.votes,
            share=percentage(row.votes, total_votes),
            lost_deposit=is_lost_deposit(row.votes, total_votes),
        )
        for row in ranked[:TOP_CANDIDATE_LIMIT]
    )

    return ConstituencyRecord(
        ac_id=ac_id,
        ac_name=first.ac_name,
        st_name=first.st_name,
        ac_no=first.ac_no,
        winner_name=winner.candidate_name,
        winner_party=winner.party,
        winner_age=winner.age,
        winner_gender=winner.gender,
        winner_category=winner.category,
        runnerup_party=runner_up.party if runner_up else RUNNER_UP_MISSING,
        margin=winner.votes - (runner_up.votes if runner_up else 0),
        turnout=turnout,
        total_votes=total_votes,
        total_electors=total_electors,
        total_postal=sum(row.postal_votes for row in candidates),
        is_bye_election=first.is_bye_election,
        year=first.year,
        wiki_link=first.wiki_link,
        party_vote_shares=party_vote_shares(candidates, total_votes),
        top_candidates=top_candidates,
    )


def search_entry(ac_id: int, candidates: list[RawRow]) -> SearchIndexEntry:
    first = candidates[0]
    return SearchIndexEntry(id=ac_id, label=f"{first.ac_name} ({first.st_name})", st_code=first.st_code)


def run_aggregate(rows: list[RawRow]) -> dict:
    grouped = group_rows(rows)

    records: dict[int, ConstituencyRecord] = {}
    search_index: list[SearchIndexEntry] = []
    for ac_id, candidates in grouped.items():
        records[ac_id] = aggregate_constituency(ac_id, candidates)
        search_index.append(search_entry(ac_id, candidates))

    duplicate_party_rows = sum(
        len(candidates) - len({row.party for row in candidates}) for candidates in grouped.values()
    )
    stats = {
        "constituencies": len(records),
        "turnout_undefined": sum(1 for record in records.values() if record.turnout is None),
        "uncontested": sum(1 for candidates in grouped.values() if len(candidates) == 1),
        "duplicate_party_rows": duplicate_party_rows,
    }
    return {"records": records, "search_index": search_index, "stats": stats}
