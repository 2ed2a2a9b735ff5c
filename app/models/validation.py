from typing import Iterable, List

from app.models.entities import Project, RankingCriterion, RankingDirection, Resource, Strategy


class InvalidAllocationInput(ValueError):
    """Raised when resources or projects cannot be handed to a solver."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def validate_resources(resources: Iterable[Resource]) -> List[Resource]:
    checked = list(resources)
    for i, r in enumerate(checked):
        if not r.id:
            raise InvalidAllocationInput(f"resources[{i}].id", "must not be empty")
        if r.available_capacity < 0:
            raise InvalidAllocationInput(
                f"resources[{i}].available_capacity", f"must be >= 0, got {r.available_capacity}"
            )
        if r.cost < 0:
            raise InvalidAllocationInput(f"resources[{i}].cost", f"must be >= 0, got {r.cost}")
    return checked


def validate_projects(projects: Iterable[Project]) -> List[Project]:
    checked = list(projects)
    seen = set()
    for i, p in enumerate(checked):
        if not p.id:
            raise InvalidAllocationInput(f"projects[{i}].id", "must not be empty")
        if p.id in seen:
            raise InvalidAllocationInput(f"projects[{i}].id", f"duplicate project id {p.id!r}")
        seen.add(p.id)
        for resource_id, quantity in p.requirements.items():
            if quantity < 0:
                raise InvalidAllocationInput(
                    f"projects[{i}].requirements.{resource_id}", f"must be >= 0, got {quantity}"
                )
    return checked


def validate_strategy(strategy: Strategy) -> Strategy:
    """Coerce criterion and direction to their enums, rejecting unknown values."""
    try:
        criterion = RankingCriterion(strategy.criterion)
    except ValueError:
        raise InvalidAllocationInput(
            "strategy.criterion",
            f"unknown value {strategy.criterion!r}, expected one of {[c.value for c in RankingCriterion]}",
        )
    try:
        direction = RankingDirection(strategy.direction)
    except ValueError:
        raise InvalidAllocationInput(
            "strategy.direction",
            f"unknown value {strategy.direction!r}, expected one of {[d.value for d in RankingDirection]}",
        )
    return Strategy(criterion=criterion, direction=direction)


def validate_inputs(resources: Iterable[Resource], projects: Iterable[Project]):
    """
    Reject malformed input before it reaches a solver.

    Solvers assume non-negative capacities and requirements and unique project
    ids; they never clamp. The first offending field is reported.

    Returns:
        Tuple of (resources, projects) as lists
    """
    return validate_resources(resources), validate_projects(projects)
