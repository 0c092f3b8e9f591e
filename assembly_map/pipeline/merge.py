"""Join constituency records into their boundary features."""

from __future__ import annotations

import logging
from typing import Any

from assembly_map.common.models import ConstituencyRecord

logger = logging.getLogger(__name__)


def _feature_key(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def merge_features(
    collection: dict,
    records: dict[int, ConstituencyRecord],
    *,
    id_property: str = "ac_id",
) -> tuple[dict, dict]:
    """Overlay each matching record onto its feature's properties.

    Record fields win on key collisions; geometry-only properties survive.
    Features without a record are passed through untouched.
    """
    merged_features: list[dict] = []
    matched_ids: set[int] = set()
    unmatched_ids: list[Any] = []

    for feature in collection.get("features", []):
        properties = dict(feature.get("properties") or {})
        key = _feature_key(properties.get(id_property))
        record = records.get(key) if key is not None else None
        if record is None:
            unmatched_ids.append(properties.get(id_property))
            merged_features.append(feature)
            continue
        matched_ids.add(key)
        merged_features.append({**feature, "properties": {**properties, **record.to_dict()}})

    records_without_feature = sorted(set(records) - matched_ids)
    if unmatched_ids:
        logger.warning(
            "%d boundary features have no results",
            len(unmatched_ids),
            extra={"stage": "build", "source": "boundaries", "event": "FEATURES_UNMATCHED"},
        )

    merged = {**collection, "features": merged_features}
    stats = {
        "matched": len(merged_features) - len(unmatched_ids),
        "unmatched": len(unmatched_ids),
        "unmatched_ids": sorted(unmatched_ids, key=str),
        "records_without_feature": records_without_feature,
    }
    return merged, stats
