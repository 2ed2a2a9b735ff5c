from typing import Dict, List, Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, field_validator

from app.config.settings import get_settings
from app.engine.completion import get_completion_policy
from app.engine.greedy import solve_greedy
from app.engine.optimization import solve_optimal
from app.models.entities import (
    AllocationResult,
    Project,
    RankingCriterion,
    RankingDirection,
    Resource,
    SolveStatus,
    Strategy,
)
from app.models.validation import InvalidAllocationInput, validate_inputs
from app.utils.benchmarking import benchmark_solvers
from app.utils.generators import (
    CapacityDistribution,
    ProjectGenerator,
    RequirementProfile,
    ResourceGenerator,
)
from app.utils.stats import (
    GlobalStats,
    ProjectStats,
    ResourceStats,
    export_csv,
    global_stats,
    project_stats,
    resource_stats,
    round_significant,
)

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


class ResourceDTO(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    capacity: int
    cost: int = 0

    @field_validator("capacity", "cost")
    @classmethod
    def validate_non_negative(cls, v: int):
        """Capacities and costs are counts of units and money, never negative."""
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    def to_domain(self) -> Resource:
        return Resource(id=self.id, name=self.name or self.id, available_capacity=self.capacity, cost=self.cost)

    @classmethod
    def from_domain(cls, r: Resource) -> "ResourceDTO":
        return cls(id=r.id, name=r.name, capacity=r.available_capacity, cost=r.cost)


class ProjectDTO(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    requirements: Dict[str, int]
    priority: int = 0

    @field_validator("requirements")
    @classmethod
    def validate_requirements(cls, v: Dict[str, int]):
        """Every required quantity must be non-negative."""
        for resource_id, quantity in v.items():
            if quantity < 0:
                raise ValueError(f"requirement for {resource_id} must be >= 0")
        return v

    def to_domain(self) -> Project:
        return Project(id=self.id, name=self.name or self.id, requirements=dict(self.requirements), priority=self.priority)

    @classmethod
    def from_domain(cls, p: Project) -> "ProjectDTO":
        return cls(id=p.id, name=p.name, requirements=dict(p.requirements), priority=p.priority)


class StrategyDTO(BaseModel):
    criterion: RankingCriterion = RankingCriterion.NONE
    direction: RankingDirection = RankingDirection.SMALLEST_FIRST

    def to_domain(self) -> Strategy:
        return Strategy(criterion=self.criterion, direction=self.direction)


class AllocationRequest(BaseModel):
    resources: List[ResourceDTO]
    projects: List[ProjectDTO]


class GreedyRequest(AllocationRequest):
    strategy: StrategyDTO = Field(default_factory=StrategyDTO)


class ChunkDTO(BaseModel):
    resource_id: str
    quantity: int
    unit_cost: int


class ProjectAllocationDTO(BaseModel):
    project_id: str
    completion_rate: float
    chunks: List[ChunkDTO]


class AllocationResponse(BaseModel):
    allocation_id: str
    status: SolveStatus
    solver_used: str
    objective_value: Optional[float] = None
    allocations: List[ProjectAllocationDTO]
    global_stats: GlobalStats
    project_stats: List[ProjectStats]
    resource_stats: List[ResourceStats]


class BenchmarkEntry(BaseModel):
    solver_name: str
    time_seconds: float
    mean_completion: float
    projects_fulfilled: int
    status: str
    success: bool


class BenchmarkResponse(BaseModel):
    results: List[BenchmarkEntry]
    num_projects: int


class WorkloadRequest(BaseModel):
    num_resources: int = Field(10, ge=1, le=5000)
    min_capacity: int = Field(10, ge=0)
    max_capacity: int = Field(100, ge=0)
    distribution: CapacityDistribution = CapacityDistribution.UNIFORM
    num_projects: int = Field(5, ge=1, le=5000)
    profile: RequirementProfile = RequirementProfile.BALANCED
    utilization_target: float = Field(0.7, gt=0, le=10)
    seed: int = 42

    @field_validator("max_capacity")
    @classmethod
    def validate_capacity_range(cls, v: int, info):
        """max_capacity must not be below min_capacity."""
        min_capacity = info.data.get("min_capacity")
        if min_capacity is not None and v < min_capacity:
            raise ValueError("max_capacity must be >= min_capacity")
        return v


class WorkloadResponse(BaseModel):
    resources: List[ResourceDTO]
    projects: List[ProjectDTO]


def _to_domain(req: AllocationRequest):
    try:
        return validate_inputs(
            [r.to_domain() for r in req.resources],
            [p.to_domain() for p in req.projects],
        )
    except InvalidAllocationInput as e:
        logger.warning(f"Rejected allocation input: {e}")
        raise HTTPException(status_code=400, detail=str(e))


def _build_response(
    result: AllocationResult,
    resources: List[Resource],
    projects: List[Project],
    solver_used: str,
) -> AllocationResponse:
    digits = settings.completion_significant_digits
    allocations = [
        ProjectAllocationDTO(
            project_id=pid,
            completion_rate=round_significant(result.completion_rates[pid], digits),
            chunks=[ChunkDTO(resource_id=c.resource_id, quantity=c.quantity, unit_cost=c.unit_cost) for c in chunks],
        )
        for pid, chunks in result.allocations.items()
    ]
    per_project = project_stats(result, projects)
    for s in per_project:
        s.completion = round_significant(s.completion, digits)
    return AllocationResponse(
        allocation_id=str(uuid.uuid4()),
        status=result.status,
        solver_used=solver_used,
        objective_value=result.objective_value,
        allocations=allocations,
        global_stats=global_stats(result, resources, projects),
        project_stats=per_project,
        resource_stats=resource_stats(result, resources),
    )


@router.post("/allocate/greedy", response_model=AllocationResponse, summary="Allocate resources greedily")
def allocate_greedy(req: GreedyRequest):
    """
    Allocate resources with the greedy heuristic.

    **Algorithm**:
    1. Validate input (DTO validators, then duplicate project ids)
    2. Rank projects by the strategy's criterion and direction (stable)
    3. Serve projects in order, first come first served, no backtracking

    **Strategy:**
    - `criterion`: `by_total_size`, `by_priority`, `by_creation_order` (same as `none`), `none`
    - `direction`: `largest_first` or `smallest_first`

    **Error Handling:**
    - 400: Invalid input (duplicate project ids)
    - 422: Malformed request (negative capacity or requirement, unknown strategy value)

    Never fails for valid input: unserved projects are simply absent from `allocations`.
    """
    resources, projects = _to_domain(req)
    strategy = req.strategy.to_domain()
    logger.info(
        f"Greedy request: {len(resources)} resources, {len(projects)} projects, "
        f"strategy={strategy.criterion.value}/{strategy.direction.value}"
    )

    result = solve_greedy(resources, projects, strategy, get_completion_policy(settings.completion_policy))
    return _build_response(result, resources, projects, "greedy")


@router.post("/allocate/optimal", response_model=AllocationResponse, summary="Allocate resources optimally")
def allocate_optimal(req: AllocationRequest):
    """
    Allocate resources by solving a linear/integer program.

    Maximizes sum of (1 + max(priority, 0)) * allocated units subject to
    per-resource capacity. Engine and integrality come from settings.

    **Error Handling:**
    - 400: Invalid input (duplicate project ids)
    - 422: Malformed request, or no feasible allocation (engine infeasible/aborted)

    **Returns:**
    - `status`: `optimal`, `feasible` (deadline hit with a solution) or `empty` (no demand)
    - `objective_value`: Weighted utilization reached
    """
    resources, projects = _to_domain(req)
    logger.info(f"Optimal request: {len(resources)} resources, {len(projects)} projects")

    result = solve_optimal(resources, projects, get_completion_policy(settings.completion_policy))
    if not result.succeeded:
        logger.warning(f"No feasible allocation found: {result.status.value}")
        raise HTTPException(status_code=422, detail=f"No feasible allocation found ({result.status.value})")
    return _build_response(result, resources, projects, "optimal")


@router.post("/allocate/export", response_class=PlainTextResponse, summary="Export allocation as CSV")
def export_allocation(
    req: GreedyRequest,
    method: str = Query("greedy", pattern="^(greedy|optimal)$", description="Solver: greedy or optimal"),
):
    """
    Run a solver and return the resource x project matrix as CSV.
    The request `strategy` is only used by the greedy method.
    """
    resources, projects = _to_domain(req)
    policy = get_completion_policy(settings.completion_policy)
    if method == "optimal":
        result = solve_optimal(resources, projects, policy)
        if not result.succeeded:
            raise HTTPException(status_code=422, detail=f"No feasible allocation found ({result.status.value})")
    else:
        result = solve_greedy(resources, projects, req.strategy.to_domain(), policy)
    logger.info(f"Exporting {method} allocation for {len(result.allocations)} projects")
    return PlainTextResponse(export_csv(result, resources, projects), media_type="text/csv")


@router.post("/allocate/benchmark", response_model=BenchmarkResponse, summary="Benchmark solvers")
def benchmark(req: AllocationRequest):
    """
    Compare every greedy strategy and the optimizer on the same input.

    **Returns:**
    - Timing, mean completion, fully served projects and status per run
    """
    resources, projects = _to_domain(req)
    logger.info(f"Benchmark request: {len(projects)} projects")

    results = benchmark_solvers(resources, projects, get_completion_policy(settings.completion_policy))

    logger.info(f"Benchmark complete: {len(results)} runs compared")
    return {
        "results": [
            BenchmarkEntry(
                solver_name=r.solver_name,
                time_seconds=r.time_seconds,
                mean_completion=r.mean_completion,
                projects_fulfilled=r.projects_fulfilled,
                status=r.status,
                success=r.success,
            )
            for r in results
        ],
        "num_projects": len(projects),
    }


@router.post("/workload/generate", response_model=WorkloadResponse, summary="Generate a synthetic workload")
def generate_workload(req: WorkloadRequest):
    """
    Produce resources and projects under a capacity distribution and demand profile.
    The response body can be posted back to any /allocate endpoint.
    """
    resources = ResourceGenerator(
        num_resources=req.num_resources,
        min_capacity=req.min_capacity,
        max_capacity=req.max_capacity,
        distribution=req.distribution,
        seed=req.seed,
    ).generate()
    projects = ProjectGenerator(
        resources,
        num_projects=req.num_projects,
        profile=req.profile,
        utilization_target=req.utilization_target,
        seed=req.seed,
    ).generate()
    logger.info(f"Generated workload: {len(resources)} resources ({req.distribution.value}), {len(projects)} projects ({req.profile.value})")
    return {
        "resources": [ResourceDTO.from_domain(r) for r in resources],
        "projects": [ProjectDTO.from_domain(p) for p in projects],
    }
