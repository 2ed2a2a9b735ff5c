import pytest
from app.engine.completion import (
    MeanRatioCompletion,
    WeightedCompletion,
    completion,
    get_completion_policy,
)
from app.engine.greedy import solve_greedy
from app.engine.pool import aggregate_capacity, representative_resources
from app.models.entities import (
    AllocationChunk,
    Project,
    RankingCriterion,
    RankingDirection,
    Resource,
    Strategy,
)
from app.utils.generators import (
    CapacityDistribution,
    ProjectGenerator,
    RequirementProfile,
    ResourceGenerator,
)
from app.utils.stats import (
    export_csv,
    global_stats,
    project_stats,
    resource_stats,
    round_significant,
)


SMALLEST_BY_SIZE = Strategy(RankingCriterion.BY_TOTAL_SIZE, RankingDirection.SMALLEST_FIRST)


class TestPool:
    """Unit tests for resource pool aggregation."""

    def test_capacity_summed_per_id(self, split_pool):
        resources, _ = split_pool
        assert aggregate_capacity(resources) == {"gpu": 7, "cpu": 20}

    def test_first_record_is_representative(self, split_pool):
        resources, _ = split_pool
        reps = representative_resources(resources)
        assert reps["gpu"].name == "GPU rack A"
        assert reps["gpu"].cost == 10

    def test_empty_pool(self):
        assert aggregate_capacity([]) == {}


class TestCompletion:
    """Unit tests for completion policies."""

    def test_fully_met(self):
        project = Project(id="p", name="p", requirements={"A": 2, "B": 3})
        chunks = [AllocationChunk("A", 2), AllocationChunk("B", 3)]
        assert completion(project, chunks) == pytest.approx(100.0)

    def test_requirement_weighted(self):
        """The larger requirement dominates the average."""
        project = Project(id="p", name="p", requirements={"A": 6, "B": 5})
        chunks = [AllocationChunk("A", 4), AllocationChunk("B", 5)]
        assert completion(project, chunks) == pytest.approx(9 / 11 * 100)

    def test_chunks_for_same_resource_add_up(self):
        project = Project(id="p", name="p", requirements={"A": 4})
        chunks = [AllocationChunk("A", 1), AllocationChunk("A", 2)]
        assert completion(project, chunks) == pytest.approx(75.0)

    def test_over_fulfillment_capped(self):
        project = Project(id="p", name="p", requirements={"A": 2, "B": 2})
        chunks = [AllocationChunk("A", 10)]
        assert completion(project, chunks) == pytest.approx(50.0)

    def test_no_positive_requirements(self):
        assert completion(Project(id="p", name="p", requirements={}), []) == 100.0
        assert completion(Project(id="p", name="p", requirements={"A": 0}), []) == 100.0

    def test_zero_requirements_ignored(self):
        project = Project(id="p", name="p", requirements={"A": 0, "B": 2})
        assert completion(project, [AllocationChunk("B", 1)]) == pytest.approx(50.0)

    def test_nothing_assigned(self):
        project = Project(id="p", name="p", requirements={"A": 3})
        assert completion(project, []) == 0.0

    def test_mean_ratio_counts_resources_equally(self):
        project = Project(id="p", name="p", requirements={"A": 1, "B": 99})
        chunks = [AllocationChunk("A", 1)]
        assert WeightedCompletion().evaluate(project, chunks) == pytest.approx(1.0)
        assert MeanRatioCompletion().evaluate(project, chunks) == pytest.approx(50.0)

    def test_policy_lookup(self):
        assert isinstance(get_completion_policy("weighted"), WeightedCompletion)
        assert isinstance(get_completion_policy("mean_ratio"), MeanRatioCompletion)
        with pytest.raises(ValueError):
            get_completion_policy("fastest")

    def test_solver_uses_given_policy(self):
        resources = [Resource(id="A", name="A", available_capacity=1)]
        projects = [Project(id="p", name="p", requirements={"A": 1, "B": 99})]
        result = solve_greedy(resources, projects, Strategy(), MeanRatioCompletion())
        assert result.completion_rates["p"] == pytest.approx(50.0)


class TestStats:
    """Allocation statistics derived from a result."""

    def test_global_stats(self, order_scenario):
        resources, projects = order_scenario
        result = solve_greedy(resources, projects, SMALLEST_BY_SIZE)
        stats = global_stats(result, resources, projects)

        assert stats.total_capacity == 13
        assert stats.total_used == 13
        assert stats.unused == 0
        assert stats.utilization_rate == pytest.approx(100.0)
        assert stats.average_per_project == pytest.approx(6.5)
        assert (stats.most_assigned.resource_id, stats.most_assigned.quantity) == ("R1", 8)
        assert (stats.least_assigned.resource_id, stats.least_assigned.quantity) == ("R2", 5)

    def test_global_stats_when_nothing_assigned(self, zero_capacity_scenario):
        resources, projects = zero_capacity_scenario
        result = solve_greedy(resources, projects, SMALLEST_BY_SIZE)
        stats = global_stats(result, resources, projects)

        assert stats.total_used == 0
        assert stats.utilization_rate == 0.0
        assert stats.most_assigned is None and stats.least_assigned is None

    def test_project_stats_missing_resources(self, order_scenario):
        resources, projects = order_scenario
        result = solve_greedy(resources, projects, SMALLEST_BY_SIZE)
        stats = {s.project_id: s for s in project_stats(result, projects)}

        assert stats["P1"].missing == {"R1": 2}
        assert stats["P1"].assigned_units == 9
        assert stats["P2"].missing == {}
        assert stats["P2"].completion == pytest.approx(100.0)

    def test_resource_stats(self, split_pool):
        resources, projects = split_pool
        result = solve_greedy(resources, projects, Strategy())
        stats = {s.resource_id: s for s in resource_stats(result, resources)}

        assert stats["gpu"].total_capacity == 7
        assert stats["gpu"].used == 7
        assert stats["gpu"].available == 0
        assert stats["cpu"].used == 12
        assert stats["cpu"].unit_cost == 1

    def test_export_csv(self, order_scenario):
        resources, projects = order_scenario
        result = solve_greedy(resources, projects, SMALLEST_BY_SIZE)

        assert export_csv(result, resources, projects).splitlines() == [
            "Resource,Alpha,Beta,Row Sum",
            "R1,4,4,8",
            "R2,5,0,5",
            "Column Sum,9,4,13",
        ]

    @pytest.mark.parametrize("value,expected", [
        (9 / 11 * 100, 81.8),
        (200 / 3, 66.7),
        (100.0, 100.0),
        (50.0, 50.0),
        (0.0, 0.0),
        (0.12345, 0.123),
    ])
    def test_round_significant(self, value, expected):
        assert round_significant(value, 3) == pytest.approx(expected)


class TestGenerators:
    """Synthetic workload generation."""

    @pytest.mark.parametrize("distribution", list(CapacityDistribution))
    def test_capacities_within_range(self, distribution):
        resources = ResourceGenerator(num_resources=50, min_capacity=10, max_capacity=60, distribution=distribution).generate()
        assert len(resources) == 50
        assert [r.id for r in resources[:3]] == ["res0", "res1", "res2"]
        for r in resources:
            assert r.available_capacity >= 10
            if distribution != CapacityDistribution.EXPONENTIAL:
                assert r.available_capacity <= 60

    def test_same_seed_same_workload(self):
        first = ResourceGenerator(num_resources=20, seed=3).generate()
        second = ResourceGenerator(num_resources=20, seed=3).generate()
        assert first == second
        assert ProjectGenerator(first, seed=3).generate() == ProjectGenerator(second, seed=3).generate()

    @pytest.mark.parametrize("profile", list(RequirementProfile))
    def test_requirements_keyed_by_resource_id(self, profile):
        resources = ResourceGenerator(num_resources=10).generate()
        projects = ProjectGenerator(resources, num_projects=4, profile=profile).generate()
        ids = {r.id for r in resources}

        assert [p.id for p in projects] == ["proj0", "proj1", "proj2", "proj3"]
        for p in projects:
            assert p.requirements
            assert set(p.requirements) <= ids
            assert all(q >= 0 for q in p.requirements.values())

    def test_sparse_profile_uses_a_fifth_of_resources(self):
        resources = ResourceGenerator(num_resources=10).generate()
        projects = ProjectGenerator(resources, num_projects=3, profile=RequirementProfile.SPARSE).generate()
        assert all(len(p.requirements) == 2 for p in projects)

    def test_seasonal_priorities_wrap(self):
        resources = ResourceGenerator(num_resources=8).generate()
        projects = ProjectGenerator(resources, num_projects=11, profile=RequirementProfile.SEASONAL).generate()
        assert [p.priority for p in projects][8:] == [8, 0, 1]

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            ResourceGenerator(min_capacity=50, max_capacity=10)
        with pytest.raises(ValueError):
            ProjectGenerator([], num_projects=0)
