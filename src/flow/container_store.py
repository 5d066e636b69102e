"""In-memory container graph.

The store owns the ordered list of containers; each container owns its
ordered steps by value. Cross references ("which container owns this step")
are resolved by scanning owners, never through back-pointers held by steps.

Every structural mutation ends with a full relink of the next chain
(see ``next_chain.relink_next``) so that invariants hold between calls:
  * full keys are unique, instance 1 uses the bare base key
  * step keys are unique within a container
  * ``next`` always mirrors container/step order
  * container order is a simple chain
"""

from typing import Protocol, Sequence

from src.flow.exceptions import (
    DuplicateContainerKeyError,
    InvalidStepIndexError,
    UnknownContainerError,
    UnknownStepError,
)
from src.flow.flow_types import Connection, Container, Step
from src.flow.next_chain import relink_next
from src.utils.logging import get_logger

logger = get_logger(__name__)


class StoreListener(Protocol):
    """Receives structural change notifications from a ContainerGraphStore."""

    def container_deleted(self, container: Container) -> None: ...

    def containers_reordered(self, store: "ContainerGraphStore") -> None: ...

    def structure_changed(self, store: "ContainerGraphStore") -> None: ...


class ContainerGraphStore:
    """Ordered containers, their steps and the derived inter-container connections."""

    def __init__(self, listener: StoreListener | None = None):
        self._containers: list[Container] = []
        self._connections: list[Connection] = []
        self.listener = listener

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def containers(self) -> Sequence[Container]:
        return tuple(self._containers)

    @property
    def connections(self) -> Sequence[Connection]:
        return tuple(self._connections)

    def __len__(self) -> int:
        return len(self._containers)

    def get_container(self, container_id: str) -> Container:
        for container in self._containers:
            if container.id == container_id:
                return container
        raise UnknownContainerError(container_id)

    def find_container(self, full_key: str) -> Container | None:
        for container in self._containers:
            if container.full_key == full_key:
                return container
        return None

    def instances_of(self, base_key: str) -> list[Container]:
        return [c for c in self._containers if c.base_key == base_key]

    def index_of(self, container: Container) -> int:
        for index, candidate in enumerate(self._containers):
            if candidate.id == container.id:
                return index
        raise UnknownContainerError(container.id)

    def find_step_owner(self, step_id: str) -> Container:
        for container in self._containers:
            if container.index_of(step_id) >= 0:
                return container
        raise UnknownStepError(step_id)

    # ------------------------------------------------------------------
    # Container mutations
    # ------------------------------------------------------------------

    def create_container(
        self,
        base_key: str,
        friendly_name: str,
        instance_number: int = 1,
        deep_aliases: dict[str, str] | None = None,
    ) -> Container:
        """Build a container with no steps. It is not inserted into the order."""
        return Container(
            base_key=base_key,
            instance_number=instance_number,
            friendly_name=friendly_name,
            deep_aliases=deep_aliases,
        )

    def append_container(self, container: Container) -> Container:
        if self.find_container(container.full_key) is not None:
            raise DuplicateContainerKeyError(container.full_key)
        self._containers.append(container)
        logger.info(f"Appended container {container.full_key} at position {len(self._containers) - 1}")
        self.relink()
        return container

    def move_container(self, container: Container, to_index: int) -> None:
        """Move a container to ``to_index`` keeping the relative order of the others.

        A single move can change up to three successor links, so the whole
        chain is relinked rather than patched.
        """
        from_index = self.index_of(container)
        to_index = max(0, min(to_index, len(self._containers) - 1))
        if from_index == to_index:
            return
        moved = self._containers.pop(from_index)
        self._containers.insert(to_index, moved)
        logger.info(f"Moved container {moved.full_key} from {from_index} to {to_index}")
        if self.listener is not None:
            self.listener.containers_reordered(self)
        self.relink()

    def reorder_containers(self, full_keys: Sequence[str]) -> None:
        """Rearrange containers to follow ``full_keys``; unknown keys are skipped
        and containers not listed keep their relative order at the end."""
        by_key = {c.full_key: c for c in self._containers}
        ordered = [by_key.pop(key) for key in full_keys if key in by_key]
        ordered.extend(c for c in self._containers if c.full_key in by_key)
        if [c.id for c in ordered] == [c.id for c in self._containers]:
            return
        self._containers = ordered
        if self.listener is not None:
            self.listener.containers_reordered(self)
        self.relink()

    def delete_container(self, container_id: str) -> Container | None:
        """Remove a container and its steps. Unknown ids are ignored."""
        for index, container in enumerate(self._containers):
            if container.id == container_id:
                break
        else:
            return None
        removed = self._containers.pop(index)
        logger.info(f"Deleted container {removed.full_key} with {len(removed.steps)} steps")
        if self.listener is not None:
            self.listener.container_deleted(removed)
        self.relink()
        return removed

    def replace_all(self, containers: Sequence[Container]) -> None:
        """Swap in a complete, ordered container list and relink once."""
        keys = [c.full_key for c in containers]
        duplicates = {key for key in keys if keys.count(key) > 1}
        if duplicates:
            raise DuplicateContainerKeyError(sorted(duplicates)[0])
        self._containers = list(containers)
        self.relink()

    def clear(self) -> None:
        self._containers = []
        self.relink()

    # ------------------------------------------------------------------
    # Step mutations
    # ------------------------------------------------------------------

    def add_step(self, container: Container, step: Step, index: int | None = None) -> Step:
        """Insert ``step`` into ``container`` (at the end by default).

        A step key already used in the container is never overwritten: the
        new step is renamed ``key_2``, ``key_3``, ... until it is unique.
        """
        owner = self.get_container(container.id)
        unique_key = self._unique_step_key(owner, step.step_key)
        if unique_key != step.step_key:
            logger.warning(
                f"Step key {step.step_key} already used in {owner.full_key}, renamed to {unique_key}"
            )
            step.step_key = unique_key
        if index is None:
            owner.steps.append(step)
        else:
            owner.steps.insert(max(0, min(index, len(owner.steps))), step)
        self.relink()
        return step

    def remove_step(self, container: Container, step_id: str) -> Step:
        owner = self.get_container(container.id)
        index = owner.index_of(step_id)
        if index < 0:
            raise UnknownStepError(step_id, owner.full_key)
        removed = owner.steps.pop(index)
        removed.next = None
        self.relink()
        return removed

    def reorder_step(self, container: Container, from_index: int, to_index: int) -> None:
        owner = self.get_container(container.id)
        size = len(owner.steps)
        for index in (from_index, to_index):
            if not 0 <= index < size:
                raise InvalidStepIndexError(index, size, owner.full_key)
        if from_index == to_index:
            return
        step = owner.steps.pop(from_index)
        owner.steps.insert(to_index, step)
        self.relink()

    def rename_step(self, container: Container, step_id: str, step_key: str) -> Step:
        owner = self.get_container(container.id)
        index = owner.index_of(step_id)
        if index < 0:
            raise UnknownStepError(step_id, owner.full_key)
        step = owner.steps[index]
        if step.step_key == step_key:
            return step
        step.step_key = self._unique_step_key(owner, step_key)
        self.relink()
        return step

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _unique_step_key(container: Container, step_key: str) -> str:
        used = set(container.step_keys())
        if step_key not in used:
            return step_key
        suffix = 2
        while f"{step_key}_{suffix}" in used:
            suffix += 1
        return f"{step_key}_{suffix}"

    def relink(self) -> None:
        self._connections = relink_next(self._containers)
        if self.listener is not None:
            self.listener.structure_changed(self)
