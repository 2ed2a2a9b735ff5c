from abc import ABC, abstractmethod
from typing import Dict, Iterable

from app.models.entities import AllocationChunk, Project


def assigned_totals(chunks: Iterable[AllocationChunk]) -> Dict[str, int]:
    """Sum allocated quantity per resource id across chunks."""
    totals: Dict[str, int] = {}
    for c in chunks:
        totals[c.resource_id] = totals.get(c.resource_id, 0) + c.quantity
    return totals


class CompletionPolicy(ABC):
    """
    Abstract base class for project completion formulas.
    Extend this to swap the metric used by the solvers and reporting.
    """

    name = "base"

    @abstractmethod
    def evaluate(self, project: Project, chunks: Iterable[AllocationChunk]) -> float:
        """
        Percentage of the project's demand met by the given chunks.
        Returns a value in [0, 100]; 100 when the project has no positive requirements.
        """
        pass


class WeightedCompletion(CompletionPolicy):
    """Default: requirement-weighted average of per-resource fulfillment, capped at 1.0 each."""

    name = "weighted"

    def evaluate(self, project: Project, chunks: Iterable[AllocationChunk]) -> float:
        assigned = assigned_totals(chunks)
        total_required = 0
        total_fulfilled = 0.0
        for resource_id, required in project.requirements.items():
            if required <= 0:
                continue
            ratio = min(assigned.get(resource_id, 0) / required, 1.0)
            total_fulfilled += ratio * required
            total_required += required
        if total_required == 0:
            return 100.0
        return total_fulfilled / total_required * 100.0


class MeanRatioCompletion(CompletionPolicy):
    """
    Unweighted mean of capped per-resource fulfillment ratios.
    A project needing 1 unit of A and 100 of B counts both resources equally.
    """

    name = "mean_ratio"

    def evaluate(self, project: Project, chunks: Iterable[AllocationChunk]) -> float:
        assigned = assigned_totals(chunks)
        ratios = [
            min(assigned.get(resource_id, 0) / required, 1.0)
            for resource_id, required in project.requirements.items()
            if required > 0
        ]
        if not ratios:
            return 100.0
        return sum(ratios) / len(ratios) * 100.0


_POLICIES = {
    WeightedCompletion.name: WeightedCompletion,
    MeanRatioCompletion.name: MeanRatioCompletion,
}

DEFAULT_POLICY = WeightedCompletion()


def get_completion_policy(name: str) -> CompletionPolicy:
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ValueError(f"unknown completion policy {name!r}, expected one of {sorted(_POLICIES)}")


def completion(project: Project, chunks: Iterable[AllocationChunk]) -> float:
    """Canonical completion rate (requirement-weighted, capped)."""
    return DEFAULT_POLICY.evaluate(project, chunks)
