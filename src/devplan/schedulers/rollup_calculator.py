"""
Rollup Calculator

Recomputes aggregate story points bottom-up: every node with children gets
the sum of its children's story points (zero when it has none). Leaves are
left untouched.
"""

from typing import Any, Sequence

from .base import SchedulerBase


def rollup_story_points(nodes: Sequence[Any]) -> Sequence[Any]:
    for node in nodes or []:
        children = getattr(node, "children", None)
        if children is None:
            continue
        rollup_story_points(children)
        node.story_point = sum(child.story_point for child in children)
    return nodes


class RollupCalculator(SchedulerBase):
    """Keeps epic and story totals consistent with their tasks."""

    def run(self, nodes: Sequence[Any]) -> Sequence[Any]:
        rollup_story_points(nodes)
        self.logger.debug(
            "story_points_rolled_up",
            nodes=len(nodes or []),
            story_points=sum(node.story_point for node in nodes or []),
        )
        return nodes
