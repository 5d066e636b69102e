"""Editing session: the one aggregate that owns a flow while it is being edited.

An EditorSession holds the ContainerGraphStore and the last document synced
from it. Every store mutation is re-projected into ``document`` and re-laid
out, so callers never have to sync by hand.

Loading follows the parse-failure policy: empty or trivial content starts a
blank flow; anything else that cannot be read raises FlowDocumentParseError
and leaves the current flow untouched.

Saving validates first (all errors are raised together) and holds a
re-entrancy guard until the persistence call completes, so the external-change
notification caused by our own save does not re-import a stale snapshot.
"""

import dataclasses
import json
from typing import Any, Mapping, Protocol

from src.flow.container_store import ContainerGraphStore
from src.flow.exceptions import (
    CollaboratorError,
    DuplicateContainerKeyError,
    FlowDocumentParseError,
    FlowValidationError,
    NextFieldAssignmentError,
)
from src.flow.flow_types import Container, Step
from src.flow.helpers.keys import (
    allocate_base_key,
    instance_number_for,
    short_key_for,
    step_key_for,
)
from src.flow.layout import LayoutAssigner
from src.flow.step_synchronizer import StepGraphSynchronizer
from src.flow.validator import GraphValidator
from src.models.schemas.catalog import FlowFile, TargetControl
from src.models.schemas.flow_document import blank_document
from src.models.schemas.flow_validation import ValidationResult
from src.utils.logging import Logger

TRIVIAL_CONTENT = frozenset({"", "{}", "null", "[]", '""'})

EDITABLE_STEP_FIELDS = frozenset({
    "action",
    "target_name",
    "locator_path",
    "control_type",
    "param_key",
    "operator",
    "value",
    "timeout",
    "default",
    "target_map",
    "extra",
})


class FlowPersistence(Protocol):
    """The persistence collaborator. Only success or failure matters."""

    async def persist(self, file: FlowFile) -> bool: ...


@dataclasses.dataclass
class TargetRegistration:
    base_key: str
    friendly_name: str
    deep_aliases: dict[str, str] | None = None


class EditorSession:
    """Store + last-synced document for one flow file."""

    def __init__(
        self,
        flow_name: str = "",
        flow_path: str = "",
        layout: LayoutAssigner | None = None,
        synchronizer: StepGraphSynchronizer | None = None,
        validator: GraphValidator | None = None,
    ):
        self.flow_name = flow_name
        self.flow_path = flow_path
        self.layout = layout or LayoutAssigner()
        self.synchronizer = synchronizer or StepGraphSynchronizer(self.layout)
        self.validator = validator or GraphValidator()
        self.logger = Logger("EditorSession", {"flow_file": flow_name, "flow_path": flow_path})

        self.store = ContainerGraphStore(listener=self)
        self.targets: dict[str, TargetRegistration] = {}
        self.meta: dict[str, Any] = {}
        self.document: dict[str, Any] = {}
        self._save_in_flight = False
        self.new_flow()

    @property
    def save_in_flight(self) -> bool:
        return self._save_in_flight

    # ------------------------------------------------------------------
    # Store listener
    # ------------------------------------------------------------------

    def container_deleted(self, container: Container) -> None:
        self.synchronizer.remove_container_entries(self.document, container.full_key)

    def containers_reordered(self, store: ContainerGraphStore) -> None:
        # Document order first; layout and relinking run afterwards.
        self.synchronizer.rewrite_order(self.document, [c.full_key for c in store.containers])
        self.layout.assign(store)

    def structure_changed(self, store: ContainerGraphStore) -> None:
        self.layout.assign(store)
        self.document = dict(self.synchronizer.project(store, self.meta))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def new_flow(self, tcode: str = "", description: str = "New flow") -> dict[str, Any]:
        blank = blank_document(tcode, description)
        self.meta = blank["$meta"]
        self.targets = {}
        self.store = ContainerGraphStore(listener=self)
        self.document = blank
        return self.document

    def load_json(self, content: str | None) -> dict[str, Any]:
        text = (content or "").strip()
        if text in TRIVIAL_CONTENT:
            self.logger.info("Empty flow content, starting a blank flow")
            return self.new_flow()

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            self.logger.error(f"Could not parse flow JSON: {e}")
            raise FlowDocumentParseError(f"Flow is not valid JSON: {e}", text[:200]) from e

        if not isinstance(raw, dict):
            raise FlowDocumentParseError("Flow JSON must be an object", text[:200])
        return self.load_document(raw)

    def load_document(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        # Hydrate into a fresh store so a failure keeps the current flow.
        store = self.synchronizer.hydrate(raw, ContainerGraphStore())

        meta = raw.get("$meta", raw.get("meta"))
        self.meta = dict(meta) if isinstance(meta, Mapping) else {"tcode": "", "description": ""}
        self.targets = {
            c.base_key: TargetRegistration(c.base_key, c.friendly_name, c.deep_aliases)
            for c in store.containers
        }
        store.listener = self
        self.store = store
        self.document = dict(self.synchronizer.project(store, self.meta))
        self.logger.info(f"Loaded flow with {len(store)} containers")
        return self.document

    def reconcile_order(self) -> bool:
        """Re-derive container order from the document when the two disagree.

        Returns True when the store was reordered.
        """
        if self.synchronizer.order_matches(self.store, self.document):
            return False
        self.store.reorder_containers(self.synchronizer.document_order(self.document))
        return True

    def on_external_change(self, content: str) -> bool:
        """Reload after the flow file changed outside the editor.

        Ignored while our own save is still in flight.
        """
        if self._save_in_flight:
            self.logger.info("Ignoring external change while a save is in flight")
            return False
        self.load_json(content)
        return True

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def register_target(
        self,
        friendly_name: str,
        original_key: str | None = None,
        deep_aliases: dict[str, str] | None = None,
    ) -> str:
        """Register a target context and return its base key.

        When the short key is taken by a different target, the original key
        is used instead and the context is kept as a plain string entry.
        """
        for registration in self.targets.values():
            if registration.friendly_name == friendly_name:
                return registration.base_key

        original_key = original_key or friendly_name
        existing = {key: reg.friendly_name for key, reg in self.targets.items()}
        existing.update({c.base_key: c.friendly_name for c in self.store.containers})
        base_key = allocate_base_key(friendly_name, original_key, existing)
        if existing.get(base_key, friendly_name) != friendly_name:
            raise DuplicateContainerKeyError(base_key)

        collided = base_key != short_key_for(friendly_name)
        self.targets[base_key] = TargetRegistration(
            base_key=base_key,
            friendly_name=friendly_name,
            deep_aliases=None if collided else dict(deep_aliases or {}),
        )
        self.logger.info(f"Registered target {friendly_name} as {base_key}")
        return base_key

    def add_instance(self, base_key: str) -> Container:
        """Append a new, empty instance of a registered target."""
        registration = self.targets.get(base_key) or TargetRegistration(base_key, base_key, {})
        container = self.store.create_container(
            base_key,
            registration.friendly_name,
            instance_number_for(base_key, self.store.containers),
            dict(registration.deep_aliases) if registration.deep_aliases is not None else None,
        )
        return self.store.append_container(container)

    def place_control(
        self,
        base_key: str,
        control: TargetControl | None = None,
        *,
        step_key: str | None = None,
        action: str | None = None,
        target_name: str | None = None,
        container_id: str | None = None,
        **fields: Any,
    ) -> Step:
        """Place a control as a new step.

        The step goes into ``container_id`` when given, else into the last live
        instance of ``base_key``; the first placement into a target with no live
        container creates instance 1.
        """
        if "next" in fields:
            raise NextFieldAssignmentError(step_key or "")
        unknown = set(fields) - EDITABLE_STEP_FIELDS
        if unknown:
            raise TypeError(f"Unknown step fields: {', '.join(sorted(unknown))}")

        if container_id is not None:
            container = self.store.get_container(container_id)
        else:
            instances = self.store.instances_of(base_key)
            container = instances[-1] if instances else self.add_instance(base_key)

        name = target_name or (control.FriendlyName if control else None)
        locator = fields.pop("locator_path", None)
        control_type = fields.pop("control_type", None)
        if control is not None:
            locator = control.Id
            control_type = control.ControlType or None

        step = Step(
            step_key=step_key or step_key_for(name),
            action=action,
            target_name=name,
            locator_path=locator,
            control_type=control_type,
            **fields,
        )
        if container.deep_aliases is not None and name and locator:
            container.deep_aliases.setdefault(name, locator)
        return self.store.add_step(container, step)

    def update_step(self, step_id: str, **fields: Any) -> Step:
        if "next" in fields:
            raise NextFieldAssignmentError(step_id)
        owner = self.store.find_step_owner(step_id)
        step_key = fields.pop("step_key", None)
        unknown = set(fields) - EDITABLE_STEP_FIELDS
        if unknown:
            raise TypeError(f"Unknown step fields: {', '.join(sorted(unknown))}")

        step = owner.steps[owner.index_of(step_id)]
        for name, value in fields.items():
            setattr(step, name, value)
        if step_key is not None and step_key != step.step_key:
            # rename_step relinks and re-projects
            return self.store.rename_step(owner, step_id, step_key)
        if "action" in fields:
            # a step turning into (or out of) a condition changes the chain
            self.store.relink()
        else:
            self.structure_changed(self.store)
        return step

    def remove_step(self, step_id: str) -> Step:
        owner = self.store.find_step_owner(step_id)
        return self.store.remove_step(owner, step_id)

    def reorder_step(self, container_id: str, from_index: int, to_index: int) -> None:
        self.store.reorder_step(self.store.get_container(container_id), from_index, to_index)

    def move_container(self, container_id: str, to_index: int) -> None:
        self.store.move_container(self.store.get_container(container_id), to_index)

    def delete_container(self, container_id: str) -> bool:
        return self.store.delete_container(container_id) is not None

    # ------------------------------------------------------------------
    # Validation and persistence
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        return json.dumps(self.document, indent=2, ensure_ascii=False)

    def validate(self) -> ValidationResult:
        return self.validator.validate(self.document)

    async def save(self, persistence: FlowPersistence) -> ValidationResult:
        """Validate and hand the document to the persistence collaborator.

        Raises:
            FlowValidationError: the document has errors (all of them attached)
            CollaboratorError: the collaborator failed; in-memory state is kept
        """
        result = self.validate()
        if not result.is_valid:
            self.logger.warning(f"Save blocked by {len(result.errors)} validation errors")
            raise FlowValidationError(result)

        flow_file = FlowFile(name=self.flow_name, path=self.flow_path, content=self.to_json())
        self._save_in_flight = True
        try:
            saved = await persistence.persist(flow_file)
        except CollaboratorError as e:
            self.logger.error(f"Saving flow failed: {e}")
            raise
        finally:
            self._save_in_flight = False

        if not saved:
            self.logger.error("Persistence collaborator rejected the flow")
            raise CollaboratorError("persist", f"could not save {self.flow_name or 'flow'}")
        self.logger.info(f"Saved flow ({len(result.warnings)} warnings)")
        return result
