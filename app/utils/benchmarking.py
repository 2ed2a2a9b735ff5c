import time
from dataclasses import dataclass
from itertools import product
from typing import List, Optional

from app.engine.completion import CompletionPolicy
from app.engine.greedy import solve_greedy
from app.engine.optimization import solve_optimal
from app.models.entities import (
    AllocationResult,
    Project,
    RankingCriterion,
    RankingDirection,
    Resource,
    Strategy,
)

# BY_CREATION_ORDER ranks exactly like NONE, so it is not benchmarked separately
BENCHMARK_CRITERIA = (RankingCriterion.BY_TOTAL_SIZE, RankingCriterion.BY_PRIORITY, RankingCriterion.NONE)


@dataclass
class BenchmarkResult:
    solver_name: str
    time_seconds: float
    mean_completion: float
    projects_fulfilled: int
    status: str
    success: bool


def mean_completion(result: AllocationResult, num_projects: int) -> float:
    """Average completion over all input projects; unserved projects count as 0."""
    if num_projects == 0:
        return 100.0
    return sum(result.completion_rates.values()) / num_projects


def _summarize(name: str, elapsed: float, result: AllocationResult, num_projects: int) -> BenchmarkResult:
    return BenchmarkResult(
        solver_name=name,
        time_seconds=elapsed,
        mean_completion=mean_completion(result, num_projects),
        projects_fulfilled=sum(1 for rate in result.completion_rates.values() if rate >= 100.0),
        status=result.status.value,
        success=result.succeeded,
    )


def benchmark_solvers(
    resources: List[Resource],
    projects: List[Project],
    completion: Optional[CompletionPolicy] = None,
    time_limit_seconds: Optional[float] = None,
) -> List[BenchmarkResult]:
    """
    Compare every greedy strategy and the optimizer on the same instance.
    Returns list of BenchmarkResult, greedy runs first.
    """
    results = []

    for criterion, direction in product(BENCHMARK_CRITERIA, RankingDirection):
        strategy = Strategy(criterion, direction)
        start = time.time()
        result = solve_greedy(resources, projects, strategy, completion)
        elapsed = time.time() - start
        results.append(_summarize(f"greedy:{criterion.value}:{direction.value}", elapsed, result, len(projects)))

    start = time.time()
    result = solve_optimal(resources, projects, completion, time_limit_seconds=time_limit_seconds)
    elapsed = time.time() - start
    results.append(_summarize("optimal", elapsed, result, len(projects)))

    return results
