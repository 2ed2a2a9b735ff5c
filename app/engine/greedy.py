"""
Greedy Assignment Solver

Single-pass, order-dependent allocator. Projects are ranked once, then each
project takes what it needs from the remaining pool, first come first served.

Time Complexity: O(p log p + p * r log r) where:
    p = number of projects
    r = requirement entries per project

Key Properties:
- Stable ranking: ties keep input order
- Requirements visited in sorted resource id order, so partial allocations
  are reproducible
- No backtracking: an earlier project's allocation is never revisited

Trade-offs:
- Fast and predictable, but the outcome depends heavily on the ranking;
  use the optimization solver when utility-weighted quality matters.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from app.engine.completion import CompletionPolicy, DEFAULT_POLICY
from app.engine.pool import aggregate_capacity, representative_resources
from app.models.entities import (
    AllocationChunk,
    AllocationResult,
    Project,
    RankingCriterion,
    RankingDirection,
    Resource,
    SolveStatus,
    Strategy,
)
from app.models.validation import validate_strategy

logger = logging.getLogger(__name__)


def ranking_key(criterion: RankingCriterion) -> Optional[Callable[[Project], int]]:
    """
    Sort key for a ranking criterion.

    Returns:
        Key function, or None when the criterion keeps input order
    """
    if criterion == RankingCriterion.BY_TOTAL_SIZE:
        return lambda p: p.total_size
    if criterion == RankingCriterion.BY_PRIORITY:
        return lambda p: p.priority
    return None


def rank_projects(projects: Iterable[Project], strategy: Strategy) -> List[Project]:
    """
    Order projects for processing.

    SMALLEST_FIRST sorts ascending, LARGEST_FIRST descending. Python's sort is
    stable in both directions, so equal keys preserve input order.
    """
    key = ranking_key(strategy.criterion)
    ordered = list(projects)
    if key is None:
        return ordered
    return sorted(ordered, key=key, reverse=strategy.direction == RankingDirection.LARGEST_FIRST)


def allocate_project(
    project: Project,
    remaining: Dict[str, int],
    unit_costs: Dict[str, int],
) -> List[AllocationChunk]:
    """
    Take a project's requirements from the remaining pool.

    Mutates `remaining`: a fully consumed partial grant removes the resource id.

    Args:
        project: Project to serve
        remaining: Working copy of the capacity map
        unit_costs: Resource id to unit cost

    Returns:
        Chunks granted, in resource id order (no zero-quantity chunks)
    """
    chunks: List[AllocationChunk] = []
    for resource_id in sorted(project.requirements):
        required = project.requirements[resource_id]
        if required <= 0:
            continue
        available = remaining.get(resource_id)
        if not available:
            continue  # unknown or exhausted
        cost = unit_costs.get(resource_id, 0)
        if available >= required:
            chunks.append(AllocationChunk(resource_id, required, cost))
            remaining[resource_id] = available - required
        else:
            chunks.append(AllocationChunk(resource_id, available, cost))
            del remaining[resource_id]
    return chunks


def solve_greedy(
    resources: Iterable[Resource],
    projects: Iterable[Project],
    strategy: Strategy,
    completion: Optional[CompletionPolicy] = None,
) -> AllocationResult:
    """
    Allocate resources greedily in ranked project order.

    Never fails for a valid strategy: with no capacity every project simply receives nothing and
    is left out of the result.

    Args:
        resources: Resource records, ids may repeat
        projects: Projects, assumed validated
        strategy: Ranking criterion and direction; unknown values raise
            InvalidAllocationInput naming the field
        completion: Completion policy (default: requirement-weighted)

    Returns:
        AllocationResult with status HEURISTIC, or EMPTY when no project has
        positive demand
    """
    policy = completion or DEFAULT_POLICY
    strategy = validate_strategy(strategy)
    resources = list(resources)
    projects = list(projects)

    remaining = aggregate_capacity(resources)
    unit_costs = {rid: r.cost for rid, r in representative_resources(resources).items()}

    ranked = rank_projects(projects, strategy)
    logger.debug(
        f"Greedy order ({strategy.criterion.value}, {strategy.direction.value}): "
        f"{[p.id for p in ranked]}"
    )

    allocations = {}
    completion_rates = {}
    for project in ranked:
        chunks = allocate_project(project, remaining, unit_costs)
        if chunks:
            allocations[project.id] = tuple(chunks)
            completion_rates[project.id] = policy.evaluate(project, chunks)

    has_demand = any(q > 0 for p in projects for q in p.requirements.values())
    status = SolveStatus.HEURISTIC if has_demand else SolveStatus.EMPTY
    logger.info(f"Greedy allocation served {len(allocations)}/{len(projects)} projects")
    return AllocationResult(status=status, allocations=allocations, completion_rates=completion_rates)
