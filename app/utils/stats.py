import csv
import io
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from app.engine.completion import assigned_totals
from app.engine.pool import aggregate_capacity, representative_resources
from app.models.entities import AllocationResult, Project, Resource


@dataclass
class ResourceUsage:
    resource_id: str
    quantity: int


@dataclass
class GlobalStats:
    total_capacity: int
    total_used: int
    unused: int
    utilization_rate: float
    average_per_project: float
    most_assigned: Optional[ResourceUsage] = None
    least_assigned: Optional[ResourceUsage] = None


@dataclass
class ProjectStats:
    project_id: str
    completion: float
    assigned_units: int
    missing: Dict[str, int] = field(default_factory=dict)


@dataclass
class ResourceStats:
    resource_id: str
    name: str
    total_capacity: int
    used: int
    available: int
    unit_cost: int


def round_significant(value: float, digits: int = 3) -> float:
    """Round half-up to a number of significant digits (81.818 -> 81.8)."""
    if value == 0:
        return 0.0
    d = Decimal(repr(value))
    exponent = d.adjusted() - digits + 1
    return float(d.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_HALF_UP))


def used_by_resource(result: AllocationResult) -> Dict[str, int]:
    used: Dict[str, int] = {}
    for chunks in result.allocations.values():
        for resource_id, quantity in assigned_totals(chunks).items():
            used[resource_id] = used.get(resource_id, 0) + quantity
    return used


def global_stats(result: AllocationResult, resources: List[Resource], projects: List[Project]) -> GlobalStats:
    capacity = aggregate_capacity(resources)
    used = used_by_resource(result)
    total_capacity = sum(capacity.values())
    total_used = sum(used.values())

    # Ties resolved by first-seen resource order
    ranked = [ResourceUsage(rid, used[rid]) for rid in capacity if used.get(rid, 0) > 0]
    most = max(ranked, key=lambda u: u.quantity) if ranked else None
    least = min(ranked, key=lambda u: u.quantity) if ranked else None

    return GlobalStats(
        total_capacity=total_capacity,
        total_used=total_used,
        unused=total_capacity - total_used,
        utilization_rate=total_used / total_capacity * 100 if total_capacity else 0.0,
        average_per_project=total_used / len(projects) if projects else 0.0,
        most_assigned=most,
        least_assigned=least,
    )


def project_stats(result: AllocationResult, projects: List[Project]) -> List[ProjectStats]:
    """Stats for every served project, in input order."""
    stats = []
    for p in projects:
        if p.id not in result.allocations:
            continue
        assigned = assigned_totals(result.allocations[p.id])
        missing = {
            rid: required - assigned.get(rid, 0)
            for rid, required in sorted(p.requirements.items())
            if assigned.get(rid, 0) < required
        }
        stats.append(ProjectStats(
            project_id=p.id,
            completion=result.completion_rates[p.id],
            assigned_units=sum(assigned.values()),
            missing=missing,
        ))
    return stats


def resource_stats(result: AllocationResult, resources: List[Resource]) -> List[ResourceStats]:
    capacity = aggregate_capacity(resources)
    reps = representative_resources(resources)
    used = used_by_resource(result)
    return [
        ResourceStats(
            resource_id=rid,
            name=reps[rid].name,
            total_capacity=total,
            used=used.get(rid, 0),
            available=total - used.get(rid, 0),
            unit_cost=reps[rid].cost,
        )
        for rid, total in capacity.items()
    ]


def export_csv(result: AllocationResult, resources: List[Resource], projects: List[Project]) -> str:
    """
    Resource x project matrix of allocated units.

    Columns are served projects sorted by name, rows are distinct resource
    ids in first-seen order; a Row Sum column and a Column Sum row close it.
    """
    served = sorted((p for p in projects if p.id in result.allocations), key=lambda p: p.name)
    per_project = {p.id: assigned_totals(result.allocations[p.id]) for p in served}

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["Resource"] + [p.name for p in served] + ["Row Sum"])

    column_sums = [0] * len(served)
    for rid in aggregate_capacity(resources):
        row = [per_project[p.id].get(rid, 0) for p in served]
        column_sums = [a + b for a, b in zip(column_sums, row)]
        writer.writerow([rid] + row + [sum(row)])
    writer.writerow(["Column Sum"] + column_sums + [sum(column_sums)])
    return buf.getvalue()
