"""
JSON shapes for engine results.

Engine results are dataclasses holding dates, frozensets and nested offers;
responses flatten them to plain JSON and replace embedded offers with ids.
"""

import dataclasses
from datetime import date
from typing import Any

from offer_engine.models import (
    Offer,
    Overlap,
    Phase,
    Recommendation,
    TrackedOffer,
)
from offer_engine.needs import describe_plan


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Offer):
        return offer_to_dict(value)
    if isinstance(value, TrackedOffer):
        return {"id": value.id, "name": value.name}
    if isinstance(value, Overlap):
        return overlap_to_dict(value)
    if isinstance(value, Recommendation):
        return recommendation_to_dict(value)
    if isinstance(value, Phase):
        return phase_to_dict(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(to_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    return value


def offer_to_dict(offer: Offer) -> dict:
    data = {f.name: to_jsonable(getattr(offer, f.name)) for f in dataclasses.fields(offer)}
    data["type"] = offer.type
    return data


def overlap_to_dict(overlap: Overlap) -> dict:
    return {
        "offer_ids": list(overlap.offer_ids),
        "offer_names": [t.name for t in overlap.offers],
        "offer_count": overlap.offer_count,
        "start": overlap.start.isoformat(),
        "end": overlap.end.isoformat(),
        "window_days": overlap.window_days,
        "categories": sorted(overlap.compatibility.categories),
        "min_transaction": overlap.compatibility.min_transaction,
    }


def recommendation_to_dict(rec: Recommendation) -> dict:
    data = {f.name: to_jsonable(getattr(rec, f.name)) for f in dataclasses.fields(rec)}
    data["offer_count"] = rec.offer_count
    data["summary"] = describe_plan(rec.plan, rec.categories, rec.min_transaction)
    return data


def phase_to_dict(phase: Phase) -> dict:
    data = {f.name: to_jsonable(getattr(phase, f.name)) for f in dataclasses.fields(phase)}
    data["summary"] = describe_plan(phase.plan, phase.categories, phase.min_transaction)
    return data
