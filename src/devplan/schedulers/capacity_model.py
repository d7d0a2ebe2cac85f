"""
Capacity Model

Turns a team roster into per-sprint skill-pool capacity.

Each sprint slot starts from the same template snapshot. Snapshots are
immutable: assigning a task returns a new snapshot with the pool and the
teammate decremented, so no two sprint slots can ever share mutable state.

Usage:
    template = CapacityModel().run(team_members)
    index = template.find_teammate("Backend", 5)
    after = template.allocate(index, "Backend", 5)
"""

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from devplan.schemas import TeamMember

from .base import SchedulerBase
from .skill_matcher import skill_pool_shares


@dataclass(frozen=True)
class TeammateCapacity:
    """One person's capacity within one sprint."""
    user_id: str
    specialty: str
    skill_pools: FrozenSet[str]
    total_capacity: int
    remaining_capacity: int

    def can_take(self, skill: str, story_point: int, owner_user_id: Optional[str] = None) -> bool:
        if owner_user_id and owner_user_id != self.user_id:
            return False
        return skill in self.skill_pools and self.remaining_capacity >= story_point

    def consume(self, story_point: int) -> "TeammateCapacity":
        return replace(self, remaining_capacity=self.remaining_capacity - story_point)


@dataclass(frozen=True)
class SkillCapacity:
    """Remaining capacity of one sprint, per skill pool and per teammate."""
    pools: Mapping[str, float]
    teammates: Tuple[TeammateCapacity, ...]

    def remaining(self, skill: str) -> float:
        return self.pools.get(skill, 0)

    def find_teammate(
        self,
        skill: Optional[str],
        story_point: int,
        owner_user_id: Optional[str] = None
    ) -> Optional[int]:
        """
        First-fit search for a teammate able to take the work.

        Args:
            skill: Required skill pool
            story_point: Size of the work
            owner_user_id: When set, only this teammate is considered

        Returns:
            Index into ``teammates`` or None when the pool or every teammate is short
        """
        if not skill:
            return None
        pool_remaining = self.remaining(skill)
        if pool_remaining <= 0 or pool_remaining < story_point:
            return None
        for index, teammate in enumerate(self.teammates):
            if teammate.can_take(skill, story_point, owner_user_id):
                return index
        return None

    def allocate(self, teammate_index: int, skill: str, story_point: int) -> "SkillCapacity":
        """Return a new snapshot with the work charged to the pool and the teammate."""
        pools = dict(self.pools)
        pools[skill] = pools.get(skill, 0) - story_point
        teammates = list(self.teammates)
        teammates[teammate_index] = teammates[teammate_index].consume(story_point)
        return SkillCapacity(pools=MappingProxyType(pools), teammates=tuple(teammates))


class CapacityModel(SchedulerBase):
    """
    Aggregates a roster into skill-pool capacity.

    Full-stack members contribute half their points to Frontend and half
    to Backend; every other specialty feeds exactly one pool.
    """

    def run(self, team_members: List[TeamMember]) -> SkillCapacity:
        return self.build_template(team_members)

    def build_template(self, team_members: List[TeamMember]) -> SkillCapacity:
        pools: Dict[str, float] = {}
        teammates = []
        for member in team_members:
            shares = skill_pool_shares(member.specialty)
            for pool, share in shares.items():
                pools[pool] = pools.get(pool, 0) + member.story_points_per_sprint * share
            teammates.append(TeammateCapacity(
                user_id=member.user_id,
                specialty=member.specialty,
                skill_pools=frozenset(shares),
                total_capacity=member.story_points_per_sprint,
                remaining_capacity=member.story_points_per_sprint,
            ))

        self.logger.info("team_capacity_per_sprint", pools=pools, teammates=len(teammates))
        return SkillCapacity(pools=MappingProxyType(pools), teammates=tuple(teammates))
