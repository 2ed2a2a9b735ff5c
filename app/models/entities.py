from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Optional, Tuple


class RankingCriterion(str, Enum):
    BY_TOTAL_SIZE = "by_total_size"
    BY_PRIORITY = "by_priority"
    BY_CREATION_ORDER = "by_creation_order"  # no ordering key exists, ranks like NONE
    NONE = "none"


class RankingDirection(str, Enum):
    LARGEST_FIRST = "largest_first"
    SMALLEST_FIRST = "smallest_first"


class SolveStatus(str, Enum):
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    HEURISTIC = "heuristic"
    INFEASIBLE = "infeasible"
    ABORTED = "aborted"
    EMPTY = "empty"


@dataclass(frozen=True)
class Resource:
    id: str
    name: str
    available_capacity: int
    cost: int = 0


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    requirements: Dict[str, int] = field(hash=False)  # resource_id -> required quantity
    priority: int = 0

    @property
    def total_size(self) -> int:
        return sum(self.requirements.values())


@dataclass(frozen=True)
class Strategy:
    criterion: RankingCriterion = RankingCriterion.NONE
    direction: RankingDirection = RankingDirection.SMALLEST_FIRST


@dataclass(frozen=True)
class AllocationChunk:
    resource_id: str
    quantity: int
    unit_cost: int = 0


@dataclass(frozen=True)
class AllocationResult:
    status: SolveStatus
    allocations: Dict[str, Tuple[AllocationChunk, ...]] = field(default_factory=dict)  # project_id -> chunks
    completion_rates: Dict[str, float] = field(default_factory=dict)  # project_id -> percentage
    objective_value: Optional[float] = None

    def __post_init__(self):
        # read-only views so a returned result cannot be edited in place
        object.__setattr__(self, "allocations", MappingProxyType(dict(self.allocations)))
        object.__setattr__(self, "completion_rates", MappingProxyType(dict(self.completion_rates)))

    @property
    def succeeded(self) -> bool:
        return self.status not in (SolveStatus.INFEASIBLE, SolveStatus.ABORTED)

    def allocated_quantity(self, project_id: str, resource_id: str) -> int:
        return sum(c.quantity for c in self.allocations.get(project_id, ()) if c.resource_id == resource_id)
