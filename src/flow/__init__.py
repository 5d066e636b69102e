"""Flow graph editing and synchronization.

This package keeps an editable graph of an automation flow (ordered
containers, each owning ordered steps) consistent with the persisted
step-graph JSON document.

Main components:
  - ContainerGraphStore: ordered containers/steps and their connections
  - StepGraphSynchronizer: graph <-> document projection, next-chain linking
  - LayoutAssigner: deterministic placement for display
  - GraphValidator: structural checks on a persisted document
  - EditorSession: the aggregate tying them together for one flow file
  - Key helpers: short_key_for, instance_number_for
"""

from src.flow.container_store import ContainerGraphStore
from src.flow.flow_types import (
    Connection,
    Container,
    ObjectContext,
    Step,
    StepAction,
    StringContext,
)
from src.flow.helpers.keys import instance_number_for, short_key_for
from src.flow.layout import LayoutAssigner, LayoutConfig
from src.flow.session import EditorSession
from src.flow.step_synchronizer import StepGraphSynchronizer
from src.flow.validator import GraphValidator

__all__ = [
    "Connection",
    "Container",
    "ContainerGraphStore",
    "EditorSession",
    "GraphValidator",
    "LayoutAssigner",
    "LayoutConfig",
    "ObjectContext",
    "Step",
    "StepAction",
    "StepGraphSynchronizer",
    "StringContext",
    "instance_number_for",
    "short_key_for",
]
