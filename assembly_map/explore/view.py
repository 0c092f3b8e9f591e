"""Shareable view state and the derived map view.

A view is the user's mode, selected party, state scope, selected
constituency and filter selections. It round-trips through flat query
parameters so a link reproduces the same map.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlencode

from assembly_map.explore.colors import ColorScheme, Mode
from assembly_map.explore.filters import FilterCatalog, FilterSpec, compile_filter

MODE_PARAM = "mode"
PARTY_PARAM = "party"
STATE_PARAM = "state"
SELECTED_PARAM = "ac"


@dataclass(frozen=True)
class ViewState:
    mode: Mode = Mode.WINNER
    party: str | None = None
    state: str | None = None
    selected_id: int | None = None
    filters: FilterSpec = field(default_factory=FilterSpec)

    @classmethod
    def default(cls, classification_cfg: dict) -> "ViewState":
        defaults = classification_cfg["defaults"]
        return cls(mode=Mode.parse(defaults["mode"]), party=defaults.get("party"))

    def to_query_string(self, catalog: FilterCatalog) -> str:
        params: list[tuple[str, str]] = [(MODE_PARAM, self.mode.value)]
        if self.party:
            params.append((PARTY_PARAM, self.party))
        if self.state:
            params.append((STATE_PARAM, self.state))
        if self.selected_id is not None:
            params.append((SELECTED_PARAM, str(self.selected_id)))
        params.extend(self.filters.to_query_params(catalog).items())
        return urlencode(params)

    @classmethod
    def from_query_string(
        cls,
        query: str,
        catalog: FilterCatalog,
        *,
        defaults: "ViewState | None" = None,
    ) -> "ViewState":
        base = defaults or cls()
        params = dict(parse_qsl(query.lstrip("?"), keep_blank_values=True))

        selected_id = base.selected_id
        raw_selected = params.get(SELECTED_PARAM)
        if raw_selected:
            try:
                selected_id = int(raw_selected)
            except ValueError:
                selected_id = None

        return cls(
            mode=Mode.parse(params[MODE_PARAM]) if params.get(MODE_PARAM) else base.mode,
            party=params.get(PARTY_PARAM) or base.party,
            state=params.get(STATE_PARAM) or base.state,
            selected_id=selected_id,
            filters=FilterSpec.from_query_params(params, catalog),
        )


def visible_features(
    collection: dict,
    view: ViewState,
    catalog: FilterCatalog,
    *,
    state_property: str = "st_name",
) -> list[dict]:
    predicate = compile_filter(view.filters, catalog)
    visible = []
    for feature in collection.get("features", []):
        properties = feature.get("properties") or {}
        if view.state and properties.get(state_property) != view.state:
            continue
        if predicate(properties):
            visible.append(feature)
    return visible


def render_view(
    collection: dict,
    view: ViewState,
    catalog: FilterCatalog,
    scheme: ColorScheme,
    *,
    id_property: str = "ac_id",
    state_property: str = "st_name",
    state_bounds: Mapping[str, Any] | None = None,
) -> dict:
    """Colors, seat tally and framing for everything the view shows."""
    features = visible_features(collection, view, catalog, state_property=state_property)
    rows = []
    for feature in features:
        properties = feature.get("properties") or {}
        rows.append(
            {
                "id": properties.get(id_property),
                "name": properties.get("ac_name"),
                "state": properties.get(state_property),
                "color": scheme.color_for(properties, view.mode, view.party),
            }
        )

    bounds = None
    if view.state and state_bounds:
        bounds = state_bounds.get(view.state)

    return {
        "mode": view.mode.value,
        "party": view.party,
        "state": view.state,
        "count": len(rows),
        "seat_tally": party_tally(feature.get("properties") or {} for feature in features),
        "bounds": bounds,
        "features": rows,
    }


def party_tally(records) -> dict[str, int]:
    tally = Counter(record.get("winner_party") for record in records if record.get("winner_party"))
    return dict(sorted(tally.items(), key=lambda item: (-item[1], item[0])))
