"""Bidirectional sync between the container graph and the step-graph JSON.

Graph -> document (``project``): containers in order become ``targetContext``
entries and step maps; every step is emitted with its resolved action.

Document -> graph (``hydrate``): ``targetContext`` key order is the container
order. Persisted ``next`` values are never trusted; the chain is regenerated
from order once every container is built.

Reordering re-entry (``rewrite_order``): after a container move the document's
``targetContext`` and ``steps`` key order is rewritten to the new order before
layout and relinking run, so order comparisons against the document stay
meaningful.
"""

import copy
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from src.flow.container_store import ContainerGraphStore
from src.flow.exceptions import FlowDocumentParseError
from src.flow.flow_types import (
    Container,
    ObjectContext,
    Step,
    StepGraphDocument,
    StepRecordDict,
    StringContext,
    TargetContextEntry,
)
from src.flow.helpers.keys import parse_full_key
from src.flow.helpers.locators import infer_control_type, resolve_action
from src.flow.layout import LayoutAssigner
from src.models.schemas.flow_document import (
    FlowDocument,
    ObjectContextModel,
    StepRecord,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

META_KEY = "$meta"

# Persisted field name -> Step attribute, in emission order.
_OPTIONAL_FIELDS: tuple[tuple[str, str], ...] = (
    ("paramKey", "param_key"),
    ("operator", "operator"),
    ("value", "value"),
    ("timeout", "timeout"),
    ("default", "default"),
    ("targetMap", "target_map"),
)


def to_context_entry(key: str, raw: str | ObjectContextModel) -> TargetContextEntry:
    """Close the string-or-object union of a targetContext value."""
    base_key, _ = parse_full_key(key)
    match raw:
        case str():
            return StringContext(key=key, friendly_name=raw.strip() or base_key)
        case ObjectContextModel():
            return ObjectContext(
                key=key,
                friendly_name=(raw.friendly_name or "").strip() or base_key,
                deep_aliases=dict(raw.deep_aliases),
            )
        case _:
            raise FlowDocumentParseError(f"Unsupported targetContext value for {key}")


class StepGraphSynchronizer:
    """Projects a ContainerGraphStore onto the persisted document and back."""

    def __init__(self, layout: LayoutAssigner | None = None):
        self.layout = layout or LayoutAssigner()

    # ------------------------------------------------------------------
    # Graph -> document
    # ------------------------------------------------------------------

    def project(
        self,
        store: ContainerGraphStore,
        meta: Mapping[str, Any] | None = None,
    ) -> StepGraphDocument:
        target_context: dict[str, Any] = {}
        steps: dict[str, dict[str, StepRecordDict]] = {}

        for container in store.containers:
            entry = container.to_context_entry()
            match entry:
                case StringContext():
                    target_context[entry.key] = entry.friendly_name
                case ObjectContext():
                    value: dict[str, Any] = {"friendlyName": entry.friendly_name}
                    if entry.deep_aliases:
                        value["deepAliases"] = dict(entry.deep_aliases)
                    target_context[entry.key] = value
            # Empty instances keep an explicit {} so placeholders survive.
            steps[container.full_key] = {
                step.step_key: self.step_record(step) for step in container.steps
            }

        return {
            META_KEY: dict(meta) if meta else {"tcode": "", "description": ""},
            "targetContext": target_context,
            "steps": steps,
        }

    @staticmethod
    def step_record(step: Step) -> StepRecordDict:
        record: dict[str, Any] = {"action": resolve_action(step.action, step.control_type)}
        if step.target_name:
            record["target"] = step.target_name
        for field_name, attribute in _OPTIONAL_FIELDS:
            value = getattr(step, attribute)
            if value is not None:
                record[field_name] = value
        for key, value in step.extra.items():
            record.setdefault(key, value)
        if step.next and not step.is_condition:
            record["next"] = step.next
        return record

    # ------------------------------------------------------------------
    # Document -> graph
    # ------------------------------------------------------------------

    def parse_document(self, document: Mapping[str, Any]) -> FlowDocument:
        try:
            return FlowDocument.model_validate(document)
        except ValidationError as e:
            raise FlowDocumentParseError(f"Flow document has an invalid shape: {e}") from e

    def hydrate(
        self,
        document: Mapping[str, Any],
        store: ContainerGraphStore | None = None,
    ) -> ContainerGraphStore:
        """Build (or refill) a store from a persisted document.

        Containers follow ``targetContext`` key order. A ``steps`` entry with no
        matching ``targetContext`` key is appended after the declared ones so no
        steps are lost.
        """
        parsed = self.parse_document(document)
        store = store if store is not None else ContainerGraphStore()

        containers: list[Container] = []
        seen: set[str] = set()
        entries = [to_context_entry(key, raw) for key, raw in parsed.target_context.items()]
        for key in parsed.steps:
            if key not in parsed.target_context:
                logger.warning(f"Steps for {key} have no targetContext entry, keeping them")
                entries.append(StringContext(key=key, friendly_name=parse_full_key(key)[0]))

        for entry in entries:
            container = self._build_container(entry, parsed.steps.get(entry.key, {}))
            if container.full_key in seen:
                raise FlowDocumentParseError(f"Duplicate container key {container.full_key}")
            seen.add(container.full_key)
            containers.append(container)

        store.replace_all(containers)
        self.layout.assign(store)
        logger.info(
            f"Hydrated {len(containers)} containers with "
            f"{sum(len(c.steps) for c in containers)} steps"
        )
        return store

    def _build_container(
        self,
        entry: TargetContextEntry,
        records: Mapping[str, StepRecord],
    ) -> Container:
        base_key, instance_number = parse_full_key(entry.key)
        deep_aliases = entry.deep_aliases if isinstance(entry, ObjectContext) else None
        container = Container(
            base_key=base_key,
            instance_number=instance_number,
            friendly_name=entry.friendly_name,
            deep_aliases=deep_aliases,
        )
        for step_key, record in records.items():
            container.steps.append(self._build_step(step_key, record, deep_aliases or {}))
        return container

    @staticmethod
    def _build_step(step_key: str, record: StepRecord, deep_aliases: Mapping[str, str]) -> Step:
        locator_path = deep_aliases.get(record.target) if record.target else None
        # An explicit action wins; the locator only fills in a missing one.
        control_type = infer_control_type(locator_path) if not record.action else None
        return Step(
            step_key=step_key,
            action=record.action,
            target_name=record.target,
            locator_path=locator_path,
            control_type=control_type,
            param_key=record.param_key,
            operator=record.operator,
            value=record.value,
            timeout=record.timeout,
            default=record.default,
            target_map=record.target_map,
            extra=dict(record.model_extra or {}),
        )

    # ------------------------------------------------------------------
    # Document maintenance
    # ------------------------------------------------------------------

    @staticmethod
    def document_order(document: Mapping[str, Any]) -> list[str]:
        return list((document.get("targetContext") or {}).keys())

    @staticmethod
    def order_matches(store: ContainerGraphStore, document: Mapping[str, Any]) -> bool:
        """True when the store's container order equals the document's key order."""
        return [c.full_key for c in store.containers] == StepGraphSynchronizer.document_order(document)

    @staticmethod
    def rewrite_order(document: dict[str, Any], full_keys: Sequence[str]) -> dict[str, Any]:
        """Rewrite ``targetContext`` and ``steps`` in place to follow ``full_keys``.

        Keys not listed keep their relative order after the listed ones, and a
        container without steps keeps an explicit empty step map.
        """
        for section in ("targetContext", "steps"):
            current = document.get(section) or {}
            reordered = {key: current[key] for key in full_keys if key in current}
            for key, value in current.items():
                reordered.setdefault(key, value)
            if section == "steps":
                for key in full_keys:
                    if key in (document.get("targetContext") or {}):
                        reordered.setdefault(key, {})
            document[section] = reordered
        return document

    @staticmethod
    def remove_container_entries(document: dict[str, Any], full_key: str) -> dict[str, Any]:
        """Drop both the targetContext and steps entries of a deleted container."""
        (document.get("targetContext") or {}).pop(full_key, None)
        (document.get("steps") or {}).pop(full_key, None)
        return document

    @staticmethod
    def copy_document(document: Mapping[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(dict(document))
