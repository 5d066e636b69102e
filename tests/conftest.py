"""
Global test configuration and fixtures for flow graph tests.

Provides common documents, controls and builders used across test modules.
"""

import copy

import pytest

from src.flow.container_store import ContainerGraphStore
from src.flow.flow_types import Container, Step
from src.flow.layout import LayoutAssigner, LayoutConfig
from src.flow.session import EditorSession
from src.flow.step_synchronizer import StepGraphSynchronizer
from src.flow.validator import GraphValidator
from src.models.schemas.catalog import TargetControl


SAMPLE_DOCUMENT = {
    "$meta": {"tcode": "CJI3", "description": "Project actual cost line items"},
    "targetContext": {
        "CJI3": {
            "friendlyName": "CJI3",
            "deepAliases": {
                "Project": "wnd[0]/usr/ctxtCN_PROJN-LOW",
                "Execute": "wnd[0]/tbar[1]/btn[8]",
            },
        },
        "SFS": "Select Further Settings",
        "CJI3::2": {"friendlyName": "CJI3"},
    },
    "steps": {
        "CJI3": {
            "project": {
                "action": "set",
                "target": "Project",
                "paramKey": "projectId",
                "next": "stale-reference",
            },
            "execute": {"target": "Execute"},
        },
        "SFS": {
            "layout": {"action": "set", "target": "Layout", "value": "/DEFAULT"},
        },
        "CJI3::2": {},
    },
}


@pytest.fixture
def sample_document() -> dict:
    """A three-container flow: CJI3, SFS and an empty second CJI3 instance."""
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture
def layout() -> LayoutAssigner:
    return LayoutAssigner(LayoutConfig())


@pytest.fixture
def synchronizer(layout: LayoutAssigner) -> StepGraphSynchronizer:
    return StepGraphSynchronizer(layout)


@pytest.fixture
def validator() -> GraphValidator:
    return GraphValidator()


@pytest.fixture
def store() -> ContainerGraphStore:
    return ContainerGraphStore()


@pytest.fixture
def session() -> EditorSession:
    return EditorSession(flow_name="CJI3_flow.json", flow_path="/flows/CJI3_flow.json")


@pytest.fixture
def project_field_control() -> TargetControl:
    return TargetControl(
        Id="wnd[0]/usr/ctxtCN_PROJN-LOW",
        FriendlyName="Project",
        FriendlyGroup="Selection",
        ControlType="GuiCTextField",
    )


@pytest.fixture
def execute_button_control() -> TargetControl:
    return TargetControl(
        Id="wnd[0]/tbar[1]/btn[8]",
        FriendlyName="Execute",
        FriendlyGroup="Toolbar",
        ControlType="GuiButton",
    )


@pytest.fixture
def make_container():
    """Factory appending a container that holds one `set` step per key."""

    def _make(store: ContainerGraphStore, base_key: str, *step_keys: str, instance_number: int = 1) -> Container:
        container = store.append_container(
            store.create_container(base_key, base_key, instance_number)
        )
        for step_key in step_keys:
            store.add_step(container, Step(step_key=step_key, action="set", target_name=step_key))
        return container

    return _make
