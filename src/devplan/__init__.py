"""
Development Plan Scheduler

Turns an unscheduled work breakdown (epics -> stories -> tasks) into a
time-boxed sprint plan and a milestone roadmap:
- schemas: plan document models (work items, sprints, milestones, parameters)
- schedulers: capacity model, sprint allocator, milestone grouper, rollup, impact analysis
- service: plan document parsing and end-to-end re-planning
- platform: cross-cutting concerns (configuration, logging)
"""

__version__ = "0.1.0"
