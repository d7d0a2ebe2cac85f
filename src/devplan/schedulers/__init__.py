"""
Devplan - Schedulers

This package contains the scheduling components of the development plan
engine, evaluated in dependency order:

- CapacityModel: roster -> per-sprint skill-pool capacity
- SprintAllocator: first-fit assignment of tasks to sprints and teammates
- MilestoneGrouper: sprints -> milestone roadmap
- RollupCalculator: bottom-up story point totals (used around allocation)

Plus:
- ImpactAnalyzer: delivery impact of a change between two plans
"""

from .capacity_model import CapacityModel, SkillCapacity, TeammateCapacity
from .impact_analyzer import DeliveryImpact, ImpactAnalyzer
from .milestone_grouper import MilestoneGrouper
from .rollup_calculator import RollupCalculator, rollup_story_points
from .skill_matcher import SkillGap, identify_skill_gaps, skill_pool_shares
from .sprint_allocator import AllocationResult, PartiallyScheduled, Scheduled, SprintAllocator

__all__ = [
    "CapacityModel",
    "SkillCapacity",
    "TeammateCapacity",
    "SprintAllocator",
    "AllocationResult",
    "Scheduled",
    "PartiallyScheduled",
    "MilestoneGrouper",
    "RollupCalculator",
    "rollup_story_points",
    "ImpactAnalyzer",
    "DeliveryImpact",
    "SkillGap",
    "identify_skill_gaps",
    "skill_pool_shares",
]
