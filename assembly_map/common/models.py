"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class RawRow:
    ac_id: int
    ac_name: str | None
    st_name: str | None
    st_code: str | None
    ac_no: int | None
    candidate_name: str | None
    party: str | None
    age: int | None
    gender: str | None
    category: str | None
    votes: int
    postal_votes: int
    total_electors: int | None
    year: int | None
    is_bye_election: Any
    wiki_link: str | None


@dataclass(frozen=True)
class CandidateSummary:
    name: str | None
    party: str | None
    votes: int
    share: float
    lost_deposit: bool


@dataclass(frozen=True)
class ConstituencyRecord:
    ac_id: int
    ac_name: str | None
    st_name: str | None
    ac_no: int | None
    winner_name: str | None
    winner_party: str | None
    winner_age: int | None
    winner_gender: str | None
    winner_category: str | None
    runnerup_party: str | None
    margin: int
    turnout: float | None
    total_votes: int
    total_electors: int | None
    total_postal: int
    is_bye_election: Any
    year: int | None
    wiki_link: str | None
    party_vote_shares: Mapping[str, float] = field(default_factory=dict)
    top_candidates: tuple[CandidateSummary, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "party_vote_shares", MappingProxyType(dict(self.party_vote_shares)))

    def to_dict(self) -> dict[str, Any]:
        payload = {item.name: getattr(self, item.name) for item in fields(self)}
        payload["party_vote_shares"] = dict(self.party_vote_shares)
        payload["top_candidates"] = [asdict(candidate) for candidate in self.top_candidates]
        return payload


@dataclass(frozen=True)
class SearchIndexEntry:
    id: int
    label: str
    st_code: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
