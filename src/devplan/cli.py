"""
Schedule a development plan document from the command line.

Reads a plan document (epics with tasks), re-plans it into sprints and
milestones and writes the scheduled document back out.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from devplan.platform.logging import configure_logging
from devplan.schemas import parse_plan_date
from devplan.service import parse_dev_plan_contents, recreate_dev_plan, serialize_dev_plan


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devplan-schedule",
        description="Re-plan a development plan document into sprints and milestones",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    devplan-schedule plan.json --meta meta.json
    devplan-schedule plan.json --meta meta.json --weeks 3 --start 01/01/2024
    devplan-schedule plan.json --meta meta.json --output scheduled.json
        """
    )
    parser.add_argument("plan", type=Path, help="Plan document (JSON)")
    parser.add_argument("--meta", type=Path, help="Scheduling metadata record (JSON)")
    parser.add_argument("--weeks", type=int, help="Override weeks per sprint")
    parser.add_argument("--start", help="Override sprint start date (MM/DD/YYYY)")
    parser.add_argument("--output", type=Path, help="Write the scheduled plan here instead of stdout")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(stream=sys.stderr)

    try:
        raw_meta = json.loads(args.meta.read_text(encoding="utf-8")) if args.meta else None
        dev_plan, parameters = parse_dev_plan_contents(args.plan.read_bytes(), raw_meta)
        if args.weeks is not None:
            parameters.weeks_per_sprint = args.weeks
        if args.start:
            parameters.sprint_start_date = parse_plan_date(args.start)
    except (OSError, ValueError) as e:
        print(f"Error: could not read plan document: {e}", file=sys.stderr)
        return 2

    if parameters.weeks_per_sprint < 1:
        print("Error: --weeks must be at least 1", file=sys.stderr)
        return 2

    outcome = recreate_dev_plan(dev_plan.epics, parameters)
    payload = serialize_dev_plan(outcome.plan)
    if args.output:
        args.output.write_bytes(payload)
    else:
        sys.stdout.write(payload.decode("utf-8") + "\n")

    plan = outcome.plan
    print(
        f"Scheduled {sum(s.story_point for s in plan.sprints)} story points into "
        f"{len(plan.sprints)} sprint(s) and {len(plan.milestones)} milestone(s)",
        file=sys.stderr,
    )
    if not outcome.is_complete:
        print(
            f"Warning: {len(outcome.dropped_task_keys)} task(s) could not be scheduled: "
            + ", ".join(outcome.dropped_task_keys),
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
