"""Type definitions for containers, steps and the persisted step-graph document."""

import dataclasses
import enum
import uuid
from typing import Any, Literal, TypedDict, Union

INSTANCE_SEPARATOR = "::"
STEP_REFERENCE_SEPARATOR = "."


def new_id() -> str:
    return uuid.uuid4().hex


class StepAction(enum.StrEnum):
    """ The closed action vocabulary a step may carry """

    set = "set"
    click = "click"
    wait_for = "waitFor"
    condition = "condition"
    columns = "columns"
    columns_sum = "columnsSum"
    saveas = "saveas"
    reset = "reset"
    call_subflow = "callSubflow"


ALLOWED_ACTIONS: frozenset[str] = frozenset(action.value for action in StepAction)

# Actions that legitimately have no target control.
TARGETLESS_ACTIONS: frozenset[str] = frozenset({"reset", "exit"})


@dataclasses.dataclass(frozen=True)
class StringContext:
    """ A targetContext entry persisted as a bare friendly-name string

    Attributes:
        key: The targetContext key (a container full key)
        friendly_name: The human-readable name
    """

    key: str
    friendly_name: str
    kind: Literal["string"] = "string"


@dataclasses.dataclass(frozen=True)
class ObjectContext:
    """ A targetContext entry persisted as an object

    Attributes:
        key: The targetContext key (a container full key)
        friendly_name: The human-readable name
        deep_aliases: Alias name -> opaque control locator
    """

    key: str
    friendly_name: str
    deep_aliases: dict[str, str] = dataclasses.field(default_factory=dict)
    kind: Literal["object"] = "object"


TargetContextEntry = Union[StringContext, ObjectContext]


@dataclasses.dataclass
class Step:
    """ One control placement inside exactly one container

    Attributes:
        step_key: Label of the step in its container's step map, unique per container
        action: Explicit action, or None to infer one from the control type
        target_name: The control's human-facing name (emitted as `target`)
        locator_path: Opaque control locator, only used to infer the control type
        control_type: Catalog control type (e.g. GuiButton), when known
        next: Derived successor reference, maintained by the next-chain linker only
        extra: Record fields outside the modelled set (condition branches, ...),
            carried through unchanged
    """

    step_key: str
    action: str | None = None
    target_name: str | None = None
    locator_path: str | None = None
    control_type: str | None = None
    param_key: str | None = None
    operator: str | None = None
    value: Any = None
    timeout: Any = None
    default: Any = None
    target_map: Any = None
    next: str | None = None
    extra: dict[str, Any] = dataclasses.field(default_factory=dict)
    x: float = 0.0
    y: float = 0.0
    id: str = dataclasses.field(default_factory=new_id)

    @property
    def is_condition(self) -> bool:
        return self.action == StepAction.condition


@dataclasses.dataclass
class Container:
    """ The live, editable projection of one TargetContext instance

    Attributes:
        base_key: Short stable key of the target context
        instance_number: 1 for the first instance, N >= 2 otherwise
        friendly_name: Human-readable name, falls back to base_key
        steps: Ordered steps; the order is the execution order
        deep_aliases: Alias -> locator map, or None when the context is a plain string
        next_container_id: Cached id of the successor container in the global order
    """

    base_key: str
    instance_number: int = 1
    friendly_name: str = ""
    steps: list[Step] = dataclasses.field(default_factory=list)
    deep_aliases: dict[str, str] | None = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    next_container_id: str | None = None
    id: str = dataclasses.field(default_factory=new_id)

    def __post_init__(self):
        if self.instance_number < 1:
            raise ValueError(f"instance_number must be >= 1, got {self.instance_number}")
        if not self.friendly_name:
            self.friendly_name = self.base_key

    @property
    def full_key(self) -> str:
        if self.instance_number == 1:
            return self.base_key
        return f"{self.base_key}{INSTANCE_SEPARATOR}{self.instance_number}"

    def step_keys(self) -> list[str]:
        return [step.step_key for step in self.steps]

    def index_of(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return -1

    def to_context_entry(self) -> TargetContextEntry:
        if self.deep_aliases is None:
            return StringContext(key=self.full_key, friendly_name=self.friendly_name)
        return ObjectContext(
            key=self.full_key,
            friendly_name=self.friendly_name,
            deep_aliases=dict(self.deep_aliases),
        )


@dataclasses.dataclass(frozen=True)
class Connection:
    """ "source precedes target" between two containers; a cache of container order """

    source_container_id: str
    target_container_id: str


class FlowMetaDict(TypedDict, total=False):
    tcode: str
    description: str


class ObjectContextDict(TypedDict, total=False):
    friendlyName: str
    deepAliases: dict[str, str]


class StepRecordDict(TypedDict, total=False):
    action: str
    target: str
    paramKey: str
    operator: str
    value: Any
    timeout: Any
    default: Any
    targetMap: Any
    next: str


StepGraphDocument = TypedDict(
    "StepGraphDocument",
    {
        "$meta": FlowMetaDict,
        "targetContext": dict[str, Union[str, ObjectContextDict]],
        "steps": dict[str, dict[str, StepRecordDict]],
    },
)
