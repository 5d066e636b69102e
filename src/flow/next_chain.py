"""Derivation of every step's `next` field from container and step order.

This is the only code that writes `Step.next` and `Container.next_container_id`.
It runs after every structural mutation and is idempotent.
"""

from itertools import pairwise
from typing import Sequence

from src.flow.flow_types import STEP_REFERENCE_SEPARATOR, Connection, Container


def step_reference(container: Container, step_key: str) -> str:
    return f"{container.full_key}{STEP_REFERENCE_SEPARATOR}{step_key}"


def link_container_steps(container: Container, successor: Container | None) -> None:
    steps = container.steps
    last = len(steps) - 1
    for index, step in enumerate(steps):
        if step.is_condition:
            continue
        if index < last:
            step.next = steps[index + 1].step_key
        elif successor is None or not successor.steps:
            step.next = None
        else:
            step.next = step_reference(successor, successor.steps[0].step_key)


def relink_next(containers: Sequence[Container]) -> list[Connection]:
    """Recompute `next` on every non-conditional step and the successor cache.

    Args:
        containers: All containers in global order.

    Returns:
        The inter-container connections implied by the order, one per adjacent pair.
    """
    connections = [
        Connection(source_container_id=source.id, target_container_id=target.id)
        for source, target in pairwise(containers)
    ]
    for index, container in enumerate(containers):
        successor = containers[index + 1] if index + 1 < len(containers) else None
        container.next_container_id = successor.id if successor else None
        link_container_steps(container, successor)
    return connections
