"""Structural validation of a persisted step-graph document.

The validator works on the document, never on the live store, and never
mutates its input. Findings land in three buckets; only errors make the
document invalid.
"""

import json
from typing import Any, Mapping

from src.flow.flow_types import (
    ALLOWED_ACTIONS,
    INSTANCE_SEPARATOR,
    STEP_REFERENCE_SEPARATOR,
    TARGETLESS_ACTIONS,
)
from src.models.schemas.flow_validation import ValidationResult
from src.utils.logging import get_logger

logger = get_logger(__name__)


class KeyTrackingDict(dict):
    """A JSON object that remembers keys it saw more than once."""

    def __init__(self, pairs: list[tuple[str, Any]]):
        super().__init__()
        self.duplicate_keys: list[str] = []
        for key, value in pairs:
            if key in self and key not in self.duplicate_keys:
                self.duplicate_keys.append(key)
            self[key] = value


def split_step_reference(reference: str, current_container: str) -> tuple[str, str]:
    """Split ``"Container::2.step"`` on the first dot; no dot means the same container."""
    if STEP_REFERENCE_SEPARATOR in reference:
        container_key, step_key = reference.split(STEP_REFERENCE_SEPARATOR, 1)
        return container_key, step_key
    return current_container, reference


def _step_maps(steps: Any):
    if not isinstance(steps, Mapping):
        return
    for container_key, container_steps in steps.items():
        if isinstance(container_steps, Mapping):
            yield container_key, container_steps


class GraphValidator:
    """Checks a flow document for every way graph and JSON can drift apart."""

    allowed_actions = ALLOWED_ACTIONS

    def validate(self, document: Any) -> ValidationResult:
        result = ValidationResult()

        if not document or not isinstance(document, Mapping):
            result.add_error("flow is empty or not an object")
            result.is_valid = False
            return result

        meta = self._meta_section(document)
        target_context = document.get("targetContext")
        steps = document.get("steps")

        self._validate_structure(document, meta, result)
        self._validate_meta(meta, result)
        self._validate_target_context(target_context, result)
        self._validate_steps(steps, target_context, result)
        self._validate_step_references(steps, result)
        self._validate_container_connections(steps, result)
        self._validate_duplicate_names(steps, result)

        result.is_valid = not result.errors
        logger.info(
            f"Validated flow: {len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def validate_json(self, content: str) -> ValidationResult:
        """Validate raw JSON text, catching repeated keys inside a step map."""
        try:
            document = json.loads(content, object_pairs_hook=KeyTrackingDict)
        except (json.JSONDecodeError, TypeError) as e:
            result = ValidationResult(is_valid=False)
            result.add_error(f"could not parse JSON: {e}")
            return result
        return self.validate(document)

    @staticmethod
    def _meta_section(document: Mapping[str, Any]) -> Any:
        if "$meta" in document:
            return document["$meta"]
        return document.get("meta")

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _validate_structure(self, document: Mapping[str, Any], meta: Any, result: ValidationResult) -> None:
        if not meta:
            result.add_error("missing $meta section", field="$meta")
        if not document.get("targetContext"):
            result.add_warning("no targetContext defined (the flow is empty)", field="targetContext")
        if not document.get("steps"):
            result.add_warning("no steps defined (the flow is empty)", field="steps")

    def _validate_meta(self, meta: Any, result: ValidationResult) -> None:
        if not meta:
            return
        if not isinstance(meta, Mapping):
            result.add_error("$meta must be an object", field="$meta")
            return

        tcode = meta.get("tcode")
        if tcode is None or tcode == "":
            result.add_error("missing tcode in $meta", field="$meta.tcode")
        elif not isinstance(tcode, str) or not tcode.strip():
            result.add_error("tcode in $meta must be a non-empty string", field="$meta.tcode")

        description = meta.get("description")
        if description is not None and not isinstance(description, str):
            result.add_warning("description in $meta must be a string", field="$meta.description")

    def _validate_target_context(self, target_context: Any, result: ValidationResult) -> None:
        if not isinstance(target_context, Mapping):
            return
        result.summary.total_containers = len(target_context)
        for key in target_context:
            if not key or not key.strip():
                result.add_error("empty key in targetContext", container=key)

    def _validate_steps(self, steps: Any, target_context: Any, result: ValidationResult) -> None:
        if not isinstance(steps, Mapping):
            return
        result.summary.total_steps = len(steps)
        contexts = target_context if isinstance(target_context, Mapping) else None

        for container_key, container_steps in steps.items():
            if not isinstance(container_steps, Mapping):
                result.add_warning(
                    f"container {container_key} has no steps defined", container=container_key
                )
                continue

            base_key = container_key.split(INSTANCE_SEPARATOR)[0]
            if contexts is not None and container_key not in contexts and base_key not in contexts:
                result.add_warning(
                    f"container {container_key} has steps but is not in targetContext",
                    container=container_key,
                )

            for step_key, step in container_steps.items():
                result.summary.total_controls += 1
                location = {"step": step_key, "container": container_key}
                if not isinstance(step, Mapping):
                    result.add_error(f"step {step_key} in {container_key} is not an object", **location)
                    continue

                action = step.get("action")
                if action is not None and not isinstance(action, str):
                    result.add_error(
                        f"step {step_key} in {container_key} has a non-string action", **location
                    )
                    continue
                if not action:
                    result.add_error(f"step {step_key} in {container_key} has no action", **location)
                elif action not in self.allowed_actions:
                    result.add_warning(
                        f"step {step_key} in {container_key} has an unknown action: {action}",
                        **location,
                    )

                if not step.get("target") and action not in TARGETLESS_ACTIONS:
                    result.add_warning(f"step {step_key} in {container_key} has no target", **location)

    def _validate_step_references(self, steps: Any, result: ValidationResult) -> None:
        for container_key, container_steps in _step_maps(steps):
            for step_key, step in container_steps.items():
                if not isinstance(step, Mapping) or not step.get("next"):
                    continue
                reference = step["next"]
                if not isinstance(reference, str):
                    result.add_error(
                        f"step {step_key} in {container_key} has a non-string next",
                        step=step_key,
                        container=container_key,
                    )
                    continue
                next_container, next_step = split_step_reference(reference, container_key)
                referenced = steps.get(next_container)
                if referenced is None:
                    result.add_error(
                        f"step {step_key} in {container_key} references a missing container: {next_container}",
                        step=step_key,
                        container=container_key,
                    )
                elif not isinstance(referenced, Mapping) or next_step not in referenced:
                    # Forward references to steps not materialized yet are tolerated.
                    result.add_warning(
                        f"step {step_key} in {container_key} references a step that may not exist: {reference}",
                        step=step_key,
                        container=container_key,
                    )

    def _validate_container_connections(self, steps: Any, result: ValidationResult) -> None:
        if not isinstance(steps, Mapping):
            return
        containers = list(steps.keys())
        outgoing: dict[str, set[str]] = {}

        for container_key, container_steps in _step_maps(steps):
            for step in container_steps.values():
                if not isinstance(step, Mapping) or not isinstance(step.get("next"), str):
                    continue
                next_container, _ = split_step_reference(step["next"], container_key)
                if next_container != container_key and next_container in steps:
                    outgoing.setdefault(container_key, set()).add(next_container)

        if len(containers) <= 1:
            return
        incoming = set().union(*outgoing.values()) if outgoing else set()
        for container_key in containers:
            if not outgoing.get(container_key) and container_key not in incoming:
                result.add_warning(
                    f"container {container_key} has no connections to other containers",
                    container=container_key,
                )
                result.summary.missing_connections += 1

    def _validate_duplicate_names(self, steps: Any, result: ValidationResult) -> None:
        # The same step key in different containers is legal.
        for container_key, container_steps in _step_maps(steps):
            for step_key in getattr(container_steps, "duplicate_keys", ()):
                result.add_error(
                    f"step {step_key} is duplicated in container {container_key}",
                    step=step_key,
                    container=container_key,
                )
                result.summary.duplicate_names += 1
