import pytest
from app.models.entities import Project, Resource


@pytest.fixture
def order_scenario():
    """Two resources, two projects whose outcome depends on processing order."""
    resources = [
        Resource(id="R1", name="Engineers", available_capacity=8, cost=3),
        Resource(id="R2", name="Servers", available_capacity=5, cost=7),
    ]
    projects = [
        Project(id="P1", name="Alpha", requirements={"R1": 6, "R2": 5}, priority=2),
        Project(id="P2", name="Beta", requirements={"R1": 4}, priority=1),
    ]
    return resources, projects


@pytest.fixture
def weighting_scenario():
    """Single over-subscribed resource, projects with different priorities."""
    resources = [Resource(id="R1", name="Engineers", available_capacity=8, cost=1)]
    projects = [
        Project(id="P1", name="Alpha", requirements={"R1": 6}, priority=2),
        Project(id="P2", name="Beta", requirements={"R1": 4}, priority=1),
    ]
    return resources, projects


@pytest.fixture
def split_pool():
    """Capacity for one resource id contributed by several records."""
    resources = [
        Resource(id="gpu", name="GPU rack A", available_capacity=3, cost=10),
        Resource(id="cpu", name="CPU pool", available_capacity=20, cost=1),
        Resource(id="gpu", name="GPU rack B", available_capacity=4, cost=12),
    ]
    projects = [
        Project(id="train", name="Training", requirements={"gpu": 6, "cpu": 4}, priority=5),
        Project(id="serve", name="Serving", requirements={"gpu": 2, "cpu": 8}, priority=1),
    ]
    return resources, projects


@pytest.fixture
def zero_capacity_scenario():
    """Positive demand, nothing to give."""
    resources = [
        Resource(id="R1", name="Engineers", available_capacity=0),
        Resource(id="R2", name="Servers", available_capacity=0),
    ]
    projects = [
        Project(id="P1", name="Alpha", requirements={"R1": 3, "R2": 1}, priority=1),
        Project(id="P2", name="Beta", requirements={"R2": 2}, priority=0),
    ]
    return resources, projects


@pytest.fixture
def contested_workload():
    """Hand-built over-subscribed instance with ties, zeros and unknown resources."""
    resources = [
        Resource(id="a", name="A", available_capacity=10),
        Resource(id="b", name="B", available_capacity=7),
        Resource(id="c", name="C", available_capacity=0),
        Resource(id="a", name="A extra", available_capacity=5),
        Resource(id="d", name="D", available_capacity=3),
    ]
    projects = [
        Project(id="p0", name="P0", requirements={"a": 9, "b": 4, "c": 2}, priority=3),
        Project(id="p1", name="P1", requirements={"a": 6, "d": 5}, priority=3),
        Project(id="p2", name="P2", requirements={"b": 6, "x": 4}, priority=-2),
        Project(id="p3", name="P3", requirements={"a": 0, "b": 0}, priority=0),
        Project(id="p4", name="P4", requirements={"a": 4, "b": 1, "d": 1}, priority=7),
    ]
    return resources, projects
