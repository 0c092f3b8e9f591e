"""Choropleth color mapping per display mode."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from assembly_map.explore.filters import as_number, margin_percentage


class Mode(str, Enum):
    WINNER = "WINNER"
    RUNNER_UP = "RUNNER_UP"
    VOTE_SHARE = "VOTE_SHARE"
    MARGIN = "MARGIN"
    TURNOUT = "TURNOUT"
    DEMOGRAPHICS_GENDER = "DEMOGRAPHICS_GENDER"
    DEMOGRAPHICS_CATEGORY = "DEMOGRAPHICS_CATEGORY"
    DEMOGRAPHICS_AGE = "DEMOGRAPHICS_AGE"

    @classmethod
    def parse(cls, value: Any) -> "Mode":
        """Unknown or missing modes fall back to the winner map."""
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.WINNER


def _channel(value: float) -> int:
    return int(math.floor(value * 255 + 0.5))


def resolve_palette_color(value: Any) -> str | None:
    """Render a palette entry as a CSS color.

    Strings pass through; ``[r, g, b, a]`` quadruples in the unit interval
    become ``rgba(R, G, B, a)`` with 8-bit channels.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and len(value) == 4:
        red, green, blue, alpha = value
        return f"rgba({_channel(red)}, {_channel(green)}, {_channel(blue)}, {float(alpha):g})"
    return None


def _descending_band(value: float, thresholds: tuple[float, ...], ramp: tuple[str, ...]) -> str:
    for threshold, color in zip(thresholds, ramp):
        if value > threshold:
            return color
    return ramp[-1]


def _ascending_band(value: float, limits: tuple[float, ...], ramp: tuple[str, ...]) -> str:
    for limit, color in zip(limits, ramp):
        if value <= limit:
            return color
    return ramp[-1]


def _descending_labels(thresholds: tuple[float, ...]) -> list[str]:
    labels = [f"> {thresholds[0]:g}%"]
    for upper, lower in zip(thresholds, thresholds[1:]):
        labels.append(f"{lower:g}-{upper:g}%")
    labels.append(f"< {thresholds[-1]:g}%")
    return labels


def _ascending_labels(limits: tuple[float, ...]) -> list[str]:
    labels = [f"<= {limits[0]:g}"]
    for lower, upper in zip(limits, limits[1:]):
        labels.append(f"{lower + 1:g}-{upper:g}")
    labels.append(f"{limits[-1]:g}+")
    return labels


@dataclass(frozen=True)
class ColorScheme:
    palette: Mapping[str, str]
    default: str
    no_party_selected: str
    not_contested: str
    intensity_ramp: tuple[str, ...]
    vote_share_thresholds: tuple[float, ...]
    margin_thresholds: tuple[float, ...]
    turnout_ramp: tuple[str, ...]
    turnout_thresholds: tuple[float, ...]
    gender: Mapping[str, str]
    category: Mapping[str, str]
    age_ramp: tuple[str, ...]
    age_limits: tuple[float, ...]

    @classmethod
    def from_config(cls, classification_cfg: dict, palette: Mapping[str, Any]) -> "ColorScheme":
        colors = classification_cfg["colors"]
        resolved = {}
        for party, value in palette.items():
            color = resolve_palette_color(value)
            if color is not None:
                resolved[party] = color
        return cls(
            palette=MappingProxyType(resolved),
            default=colors["default"],
            no_party_selected=colors["no_party_selected"],
            not_contested=colors["not_contested"],
            intensity_ramp=tuple(colors["intensity_ramp"]),
            vote_share_thresholds=tuple(float(v) for v in colors["vote_share_thresholds"]),
            margin_thresholds=tuple(float(v) for v in colors["margin_thresholds"]),
            turnout_ramp=tuple(colors["turnout_ramp"]),
            turnout_thresholds=tuple(float(v) for v in colors["turnout_thresholds"]),
            gender=MappingProxyType(dict(colors["gender"])),
            category=MappingProxyType(dict(colors["category"])),
            age_ramp=tuple(colors["age_ramp"]),
            age_limits=tuple(float(v) for v in colors["age_limits"]),
        )

    def party_color(self, party: str | None) -> str:
        if party is None:
            return self.default
        return self.palette.get(party, self.default)

    def _vote_share_color(self, record: Mapping[str, Any], selected_party: str | None) -> str:
        if not selected_party:
            return self.no_party_selected
        shares = record.get("party_vote_shares") or {}
        share = as_number(shares.get(selected_party)) if selected_party in shares else None
        if share is None:
            return self.not_contested
        return _descending_band(share, self.vote_share_thresholds, self.intensity_ramp)

    def color_for(self, record: Mapping[str, Any] | None, mode: Mode | str, selected_party: str | None = None) -> str:
        if record is None:
            return self.default
        mode = Mode.parse(mode)

        if mode is Mode.RUNNER_UP:
            return self.party_color(record.get("runnerup_party"))
        if mode is Mode.VOTE_SHARE:
            return self._vote_share_color(record, selected_party)
        if mode is Mode.MARGIN:
            return _descending_band(margin_percentage(record), self.margin_thresholds, self.intensity_ramp)
        if mode is Mode.TURNOUT:
            turnout = as_number(record.get("turnout")) or 0.0
            return _descending_band(turnout, self.turnout_thresholds, self.turnout_ramp)
        if mode is Mode.DEMOGRAPHICS_GENDER:
            return self.gender.get(record.get("winner_gender"), self.gender["other"])
        if mode is Mode.DEMOGRAPHICS_CATEGORY:
            return self.category.get(record.get("winner_category"), self.category["other"])
        if mode is Mode.DEMOGRAPHICS_AGE:
            age = as_number(record.get("winner_age")) or 0.0
            return _ascending_band(age, self.age_limits, self.age_ramp)
        return self.party_color(record.get("winner_party"))

    def legend(self, mode: Mode | str, parties: list[str] | None = None) -> list[tuple[str, str]]:
        """(color, label) rows describing ``mode``; party modes list ``parties``."""
        mode = Mode.parse(mode)
        if mode in (Mode.WINNER, Mode.RUNNER_UP):
            return [(self.palette[party], party) for party in parties or [] if party in self.palette]
        if mode is Mode.VOTE_SHARE:
            return list(zip(self.intensity_ramp, _descending_labels(self.vote_share_thresholds)))
        if mode is Mode.MARGIN:
            return list(zip(self.intensity_ramp, _descending_labels(self.margin_thresholds)))
        if mode is Mode.TURNOUT:
            return list(zip(self.turnout_ramp, _descending_labels(self.turnout_thresholds)))
        if mode is Mode.DEMOGRAPHICS_GENDER:
            return [(color, label) for label, color in self.gender.items()]
        if mode is Mode.DEMOGRAPHICS_CATEGORY:
            return [(color, label) for label, color in self.category.items()]
        return list(zip(self.age_ramp, _ascending_labels(self.age_limits)))
