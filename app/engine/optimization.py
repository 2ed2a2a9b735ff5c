import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple

from ortools.linear_solver import pywraplp

from app.config.settings import get_settings
from app.engine.completion import CompletionPolicy, DEFAULT_POLICY
from app.engine.pool import aggregate_capacity, representative_resources
from app.models.entities import AllocationChunk, AllocationResult, Project, Resource, SolveStatus

logger = logging.getLogger(__name__)

VarKey = Tuple[str, str]  # (resource_id, project_id)

_STATUS_MAP = {
    pywraplp.Solver.OPTIMAL: SolveStatus.OPTIMAL,
    pywraplp.Solver.FEASIBLE: SolveStatus.FEASIBLE,
    pywraplp.Solver.INFEASIBLE: SolveStatus.INFEASIBLE,
    pywraplp.Solver.UNBOUNDED: SolveStatus.INFEASIBLE,
}


def project_weight(project: Project) -> int:
    """Marginal utility per allocated unit; negative priorities count as 0."""
    return 1 + max(project.priority, 0)


def round_and_clamp(
    values: Dict[VarKey, float],
    upper_bounds: Dict[VarKey, int],
    capacity: Dict[str, int],
    weights: Dict[str, int],
) -> Dict[VarKey, int]:
    """
    Turn engine solution values into whole units that respect every bound.

    Values are rounded half-up and clipped to [0, upper bound]. If a resource
    is then over capacity, the excess is taken back from the lowest-weight
    projects first (later variables first among equal weights).
    """
    granted: Dict[VarKey, int] = {}
    for key, value in values.items():
        granted[key] = min(max(int(math.floor(value + 0.5)), 0), upper_bounds[key])

    by_resource: Dict[str, List[VarKey]] = {}
    for key in granted:
        by_resource.setdefault(key[0], []).append(key)

    for resource_id, keys in by_resource.items():
        excess = sum(granted[k] for k in keys) - capacity.get(resource_id, 0)
        if excess <= 0:
            continue
        logger.warning(f"Rounding pushed {resource_id} over capacity by {excess}, clamping")
        order = sorted(range(len(keys)), key=lambda i: (weights[keys[i][1]], -i))
        for i in order:
            if excess <= 0:
                break
            key = keys[i]
            take = min(granted[key], excess)
            granted[key] -= take
            excess -= take
    return granted


def solve_optimal(
    resources: Iterable[Resource],
    projects: Iterable[Project],
    completion: Optional[CompletionPolicy] = None,
    backend: Optional[str] = None,
    integer: Optional[bool] = None,
    time_limit_seconds: Optional[float] = None,
) -> AllocationResult:
    """
    Allocate resources by maximizing priority-weighted utilization.

    Model:
        x[r, p] for each positive requirement of project p on resource r,
        0 <= x[r, p] <= min(capacity[r], requirement[p][r])
        maximize   sum (1 + max(priority_p, 0)) * x[r, p]
        subject to sum_p x[r, p] <= capacity[r]   for each resource r

    Each call builds its own engine instance, so concurrent calls are safe.

    Args:
        resources: Resource records, ids may repeat
        projects: Projects, assumed validated (unique ids, no negatives)
        completion: Completion policy (default: requirement-weighted)
        backend: pywraplp engine name (default from settings)
        integer: Declare integer variables (default from settings)
        time_limit_seconds: Engine deadline (default from settings)

    Returns:
        AllocationResult tagged OPTIMAL/FEASIBLE with the decoded allocation,
        EMPTY when there is no positive demand, or INFEASIBLE/ABORTED with
        an empty allocation
    """
    settings = get_settings()
    integer = settings.lp_integer if integer is None else integer
    if backend is None:
        backend = settings.lp_backend if integer else settings.lp_continuous_backend
    if time_limit_seconds is None:
        time_limit_seconds = settings.lp_time_limit_seconds
    policy = completion or DEFAULT_POLICY

    resources = list(resources)
    projects = list(projects)
    capacity = aggregate_capacity(resources)
    reps = representative_resources(resources)
    weights = {p.id: project_weight(p) for p in projects}

    demand: List[Tuple[str, Project]] = [
        (resource_id, p)
        for p in projects
        for resource_id in sorted(p.requirements)
        if p.requirements[resource_id] > 0
    ]
    if not demand:
        return AllocationResult(status=SolveStatus.EMPTY)

    solver = pywraplp.Solver.CreateSolver(backend)
    if not solver:
        logger.error(f"LP backend {backend} is not available")
        return AllocationResult(status=SolveStatus.ABORTED)
    solver.SetTimeLimit(int(time_limit_seconds * 1000))

    # Variables: x[r, p], bounded by what the project needs and the pool holds
    x: Dict[VarKey, pywraplp.Variable] = {}
    upper_bounds: Dict[VarKey, int] = {}
    for resource_id, p in demand:
        key = (resource_id, p.id)
        upper_bounds[key] = min(capacity.get(resource_id, 0), p.requirements[resource_id])
        name = f"x_{resource_id}_{p.id}"
        if integer:
            x[key] = solver.IntVar(0, upper_bounds[key], name)
        else:
            x[key] = solver.NumVar(0, upper_bounds[key], name)

    objective = solver.Objective()
    for key, var in x.items():
        objective.SetCoefficient(var, weights[key[1]])
    objective.SetMaximization()

    # Shared capacity per resource id
    constraints: Dict[str, pywraplp.Constraint] = {}
    for (resource_id, _), var in x.items():
        if resource_id not in constraints:
            constraints[resource_id] = solver.Constraint(0, capacity.get(resource_id, 0), f"capacity_{resource_id}")
        constraints[resource_id].SetCoefficient(var, 1)

    logger.info(
        f"Solving LP with {backend} ({'integer' if integer else 'continuous'}): "
        f"{solver.NumVariables()} variables, {solver.NumConstraints()} constraints"
    )
    status = _STATUS_MAP.get(solver.Solve(), SolveStatus.ABORTED)
    if status not in (SolveStatus.OPTIMAL, SolveStatus.FEASIBLE):
        logger.warning(f"LP solve ended without a solution: {status.value}")
        return AllocationResult(status=status)

    granted = round_and_clamp(
        {key: var.solution_value() for key, var in x.items()},
        upper_bounds,
        capacity,
        weights,
    )

    allocations = {}
    completion_rates = {}
    for p in projects:
        chunks = tuple(
            AllocationChunk(resource_id, granted[(resource_id, p.id)], reps[resource_id].cost)
            for resource_id in sorted(p.requirements)
            if granted.get((resource_id, p.id), 0) > 0
        )
        if chunks:
            allocations[p.id] = chunks
            completion_rates[p.id] = policy.evaluate(p, chunks)

    # value of the rounded assignment actually returned, not the engine's relaxation
    objective_value = float(sum(weights[pid] * q for (_, pid), q in granted.items()))
    if abs(objective_value - objective.Value()) > 0.5:
        logger.debug(f"Rounding moved objective from {objective.Value():.2f} to {objective_value:.2f}")
    logger.info(f"LP {status.value}: objective={objective_value:.2f}, {len(allocations)}/{len(projects)} projects served")
    return AllocationResult(
        status=status,
        allocations=allocations,
        completion_rates=completion_rates,
        objective_value=objective_value,
    )
