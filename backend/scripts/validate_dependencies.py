"""Check a ticket's step hierarchy and dependency graph for corruption"""
import argparse
import sys
from collections import Counter
from typing import List

from stepgate.domain.models import WorkflowStep, DependencyEdge
from stepgate.engine.dependency_graph import find_cycle
from stepgate.repositories.step_repo import StepRepository


def find_problems(steps: List[WorkflowStep], edges: List[DependencyEdge]) -> List[str]:
    """Human readable list of everything wrong with one ticket"""
    problems = []
    by_id = {s.step_id: s for s in steps}

    counts = Counter(s.step_number for s in steps)
    for number, count in sorted(counts.items()):
        if count > 1:
            problems.append(f"Coordinate {number} is used by {count} steps")

    for step in steps:
        if step.parent_step_id:
            parent = by_id.get(step.parent_step_id)
            if parent is None:
                problems.append(f"Step {step.step_number} points to missing parent {step.parent_step_id}")
            elif parent.depth != step.depth - 1:
                problems.append(
                    f"Step {step.step_number} sits at depth {step.depth} under {parent.step_number}"
                )

    for edge in edges:
        if edge.depends_on_step_id not in by_id:
            problems.append(
                f"Dependency {edge.dependency_id} names unknown step {edge.depends_on_step_id}"
            )

    cycle = find_cycle(edges)
    if cycle:
        problems.append("Dependency cycle: " + " -> ".join(cycle))

    return problems


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Validate the steps and dependencies of a ticket")
    parser.add_argument("ticket_id", help="Ticket to check")
    args = parser.parse_args(argv)

    repo = StepRepository()
    steps = repo.list_steps_by_ticket(args.ticket_id)
    if not steps:
        print(f"Ticket {args.ticket_id} has no steps")
        return 1

    edges = repo.list_active_edges_for_ticket(args.ticket_id)
    print(f"Ticket {args.ticket_id}: {len(steps)} steps, {len(edges)} active dependencies")

    problems = find_problems(steps, edges)
    if not problems:
        print("OK")
        return 0

    for problem in problems:
        print(f"  - {problem}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
