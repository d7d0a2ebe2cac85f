"""
Skill Matcher

Maps team specialties to the skill pools tasks are tagged with, and finds
work whose skill has no capacity on the team.

Pool resolution:
```
FULLSTACK_ENGINEER -> {Frontend: 0.5, Backend: 0.5}
BACKEND_ENGINEER   -> {Backend: 1.0}
SECURITY_ENGINEER  -> {Security: 1.0}   (derived from the specialty name)
```
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from devplan.schemas import Epic, iter_tasks

# Specialty -> skill pool
SPECIALTY_TO_SKILL_POOL: Dict[str, str] = {
    "PRODUCT_MANAGEMENT": "Product",
    "UI_DESIGN": "UI/UX",
    "FRONTEND_ENGINEER": "Frontend",
    "BACKEND_ENGINEER": "Backend",
    "MOBILE_ENGINEER_IOS": "iOS",
    "MOBILE_ENGINEER_ANDROID": "Android",
    "MOBILE_ENGINEER_WINDOWS": "Windows",
    "INFRA_ENGINEER": "Infra",
    "QA_ENGINEER": "QA",
    "ML_ENGINEER": "ML",
    "DATA_ENGINEER": "DE",
    "RELEASE_ENGINEER": "Release",
    "DATA_SCIENTIST": "DS",
}

FULLSTACK_SPECIALTIES = frozenset({
    "FULLSTACK_ENGINEER",
    "FULL_STACK_ENGINEER",
    "FULLSTACK",
    "FULL_STACK",
})

# Full-stack capacity is split evenly between these pools
FULLSTACK_POOLS = ("Frontend", "Backend")


def normalize_specialty(specialty: str) -> str:
    """``full-stack engineer`` -> ``FULL_STACK_ENGINEER``."""
    return re.sub(r"[\s\-]+", "_", (specialty or "").strip()).upper()


def _derive_pool_name(specialty: str) -> str:
    name = specialty.replace("_", " ").lower()
    name = re.sub(r"\bengineers?\b", "", name)
    return " ".join(word.capitalize() for word in name.split())


def skill_pool_shares(specialty: str) -> Dict[str, float]:
    """
    Resolve a specialty to the pools it contributes capacity to.

    Returns:
        Mapping of pool name to the fraction of the member's capacity it receives
    """
    key = normalize_specialty(specialty)
    if key in FULLSTACK_SPECIALTIES:
        share = 1.0 / len(FULLSTACK_POOLS)
        return {pool: share for pool in FULLSTACK_POOLS}
    pool = SPECIALTY_TO_SKILL_POOL.get(key) or _derive_pool_name(specialty)
    return {pool: 1.0} if pool else {}


@dataclass
class SkillGap:
    """Work tagged with a skill the team has no capacity for."""
    skill: str
    story_points: int
    task_keys: List[str] = field(default_factory=list)


def identify_skill_gaps(epics: List[Epic], pool_capacity: Mapping[str, float]) -> List[SkillGap]:
    """
    Find required skills with no (or zero) per-sprint capacity.

    Tasks without a skill tag are reported under the empty skill name.
    Every task listed here is guaranteed to be dropped by allocation.
    """
    gaps: Dict[str, SkillGap] = {}
    for _, _, task in iter_tasks(epics):
        skill = task.required_skill or ""
        if skill and pool_capacity.get(skill, 0) > 0:
            continue
        gap = gaps.setdefault(skill, SkillGap(skill=skill, story_points=0))
        gap.story_points += task.story_point
        gap.task_keys.append(task.key or task.name)
    return list(gaps.values())
