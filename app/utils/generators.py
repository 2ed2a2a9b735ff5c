"""
Synthetic workload generation for benchmarking and demos.

Resource capacities follow a configurable statistical distribution; project
requirements follow a demand profile relative to those capacities. Both
generators are seeded and fully deterministic for a given configuration.
"""

import math
import random
from enum import Enum
from typing import Dict, List, Sequence

from app.models.entities import Project, Resource


class CapacityDistribution(str, Enum):
    UNIFORM = "uniform"
    NORMAL = "normal"
    PARETO = "pareto"  # few high, many low
    EXPONENTIAL = "exponential"
    CLUSTERED = "clustered"


class RequirementProfile(str, Enum):
    BALANCED = "balanced"  # similar requirements across resources
    SPARSE = "sparse"  # each project needs a fifth of the resources
    COMPLEMENTARY = "complementary"  # projects favour disjoint resource groups
    COMPETITIVE = "competitive"  # everyone wants the first third of resources
    SEASONAL = "seasonal"  # demand follows a sine pattern across resources


def _jitter(rng: random.Random, base: int) -> int:
    """base plus up to half of base again; the spread is never empty."""
    return base + rng.randrange(max(1, base // 2))


class ResourceGenerator:
    def __init__(
        self,
        num_resources: int = 100,
        min_capacity: int = 10,
        max_capacity: int = 100,
        distribution: CapacityDistribution = CapacityDistribution.UNIFORM,
        seed: int = 42,
        clusters: Sequence[int] = (20, 50, 80),
    ):
        if min_capacity < 0 or max_capacity < min_capacity:
            raise ValueError("capacities must satisfy 0 <= min_capacity <= max_capacity")
        self.num_resources = num_resources
        self.min_capacity = min_capacity
        self.max_capacity = max_capacity
        self.distribution = distribution
        self.seed = seed
        self.clusters = list(clusters)

    def generate(self) -> List[Resource]:
        rng = random.Random(self.seed)
        resources = []
        for i in range(self.num_resources):
            capacity = self._capacity(rng)
            resources.append(Resource(id=f"res{i}", name=f"Resource{i}", available_capacity=capacity, cost=capacity % (i + 1)))
        return resources

    def _capacity(self, rng: random.Random) -> int:
        lo, hi = self.min_capacity, self.max_capacity
        if self.distribution == CapacityDistribution.NORMAL:
            mean = (lo + hi) / 2
            std_dev = (hi - lo) / 6  # 99.7% within range
            while True:
                capacity = round(rng.gauss(mean, std_dev))
                if lo <= capacity <= hi:
                    return capacity
        if self.distribution == CapacityDistribution.PARETO:
            alpha = 1.16
            if hi < max(lo, 1):
                return lo
            while True:
                capacity = int(max(lo, 1) / math.pow(1.0 - rng.random(), 1 / alpha))
                if capacity <= hi:
                    return capacity
        if self.distribution == CapacityDistribution.EXPONENTIAL:
            lam = 1.0 / max((hi - lo) / 4.0, 1e-9)
            return lo + int(-math.log(1 - rng.random()) / lam)
        if self.distribution == CapacityDistribution.CLUSTERED:
            cluster = rng.choice(self.clusters)
            variation = int(cluster * 0.2)
            return max(lo, min(hi, cluster + rng.randint(-variation, variation)))
        return rng.randint(lo, hi)


class ProjectGenerator:
    def __init__(
        self,
        resources: List[Resource],
        num_projects: int = 5,
        profile: RequirementProfile = RequirementProfile.BALANCED,
        utilization_target: float = 0.7,
        seed: int = 42,
    ):
        if num_projects < 1:
            raise ValueError("num_projects must be at least 1")
        self.resources = resources
        self.num_projects = num_projects
        self.profile = profile
        self.utilization_target = utilization_target
        self.seed = seed

    def generate(self) -> List[Project]:
        rng = random.Random(self.seed)
        builders = {
            RequirementProfile.BALANCED: self._balanced,
            RequirementProfile.SPARSE: self._sparse,
            RequirementProfile.COMPLEMENTARY: self._complementary,
            RequirementProfile.COMPETITIVE: self._competitive,
            RequirementProfile.SEASONAL: self._seasonal,
        }
        requirement_sets = builders[self.profile](rng)
        return [
            Project(
                id=f"proj{i}",
                name=f"Project{i}",
                requirements=reqs,
                priority=i % 9 if self.profile == RequirementProfile.SEASONAL else i,
            )
            for i, reqs in enumerate(requirement_sets)
        ]

    def _share(self, resource: Resource, factor: float = 1.0) -> int:
        return int(resource.available_capacity * self.utilization_target * factor)

    def _balanced(self, rng: random.Random) -> List[Dict[str, int]]:
        return [
            {r.id: _jitter(rng, self._share(r, 1 / self.num_projects)) for r in self.resources}
            for _ in range(self.num_projects)
        ]

    def _sparse(self, rng: random.Random) -> List[Dict[str, int]]:
        count = max(1, len(self.resources) // 5)
        sets = []
        for _ in range(self.num_projects):
            picked = list(self.resources)
            rng.shuffle(picked)
            sets.append({r.id: _jitter(rng, self._share(r)) for r in picked[:count]})
        return sets

    def _complementary(self, rng: random.Random) -> List[Dict[str, int]]:
        group_size = max(1, len(self.resources) // self.num_projects)
        groups = [self.resources[i:i + group_size] for i in range(0, len(self.resources), group_size)] or [[]]
        sets = []
        for i in range(self.num_projects):
            primary = groups[i % len(groups)]
            primary_ids = {r.id for r in primary}
            reqs = {r.id: _jitter(rng, self._share(r)) for r in primary}
            for r in self.resources:
                if r.id not in primary_ids:
                    reqs[r.id] = rng.randrange(max(1, self._share(r, 0.2)))
            sets.append(reqs)
        return sets

    def _competitive(self, rng: random.Random) -> List[Dict[str, int]]:
        contested = self.resources[:max(1, len(self.resources) // 3)]
        contested_ids = {r.id for r in contested}
        sets = []
        for _ in range(self.num_projects):
            reqs = {r.id: _jitter(rng, self._share(r)) for r in contested}
            for r in self.resources:
                if r.id not in contested_ids:
                    reqs[r.id] = rng.randrange(max(1, self._share(r, 1 / self.num_projects)))
            sets.append(reqs)
        return sets

    def _seasonal(self, rng: random.Random) -> List[Dict[str, int]]:
        n = len(self.resources)
        season_length = max(1, n // 4)
        pattern = [0.5 + 0.5 * math.sin(2 * math.pi * j / season_length) for j in range(n)]
        return [
            {r.id: _jitter(rng, self._share(r, pattern[(j + i) % n])) for j, r in enumerate(self.resources)}
            for i in range(self.num_projects)
        ]
