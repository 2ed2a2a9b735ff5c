from typing import Dict, Iterable

from app.models.entities import Resource


def aggregate_capacity(resources: Iterable[Resource]) -> Dict[str, int]:
    """Sum available capacity per resource id, in first-seen id order."""
    capacity: Dict[str, int] = {}
    for r in resources:
        capacity[r.id] = capacity.get(r.id, 0) + r.available_capacity
    return capacity


def representative_resources(resources: Iterable[Resource]) -> Dict[str, Resource]:
    """First record seen for each resource id, used for name and cost lookups."""
    reps: Dict[str, Resource] = {}
    for r in resources:
        reps.setdefault(r.id, r)
    return reps
