"""
Target catalog loading.

Reads every catalog file from the remote collaborator concurrently and
collects the target controls they describe into one TargetCatalog.

Requests complete in any order; the load is done when every request has
completed (successfully or not). A target whose resolved name is already in
the catalog is skipped on insert, so no later dedup pass is needed.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import ValidationError

from src.flow.exceptions import CollaboratorError
from src.flow.flow_types import Container
from src.flow.helpers.locators import infer_control_type
from src.models.schemas.catalog import (
    CatalogFile,
    CatalogFileResponse,
    CatalogListResponse,
    TargetCatalogFile,
    TargetControl,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Control types suggested for each action.
ACTION_CONTROL_TYPES: Dict[str, List[str]] = {
    "click": ["GuiButton", "GuiMenu", "GuiMenuItem"],
    "set": ["GuiTextField", "GuiCTextField", "GuiCheckBox", "GuiRadioButton"],
    "select": ["GuiComboBox", "GuiListBox", "GuiTable"],
    "waitFor": ["GuiModalWindow", "GuiMainWindow", "GuiUserArea"],
}


class CatalogSource(Protocol):
    async def list_catalog_files(self) -> CatalogListResponse: ...

    async def read_catalog_file(self, path: str) -> CatalogFileResponse: ...


class TargetCatalog:
    """Target name -> control descriptors, in first-seen order."""

    def __init__(self):
        self._targets: Dict[str, List[TargetControl]] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    @property
    def names(self) -> List[str]:
        return list(self._targets)

    def add_target(self, name: str, controls: Iterable[TargetControl]) -> bool:
        """Insert a target unless one with the same resolved name exists."""
        resolved = name.strip()
        if not resolved or resolved in self._targets:
            return False
        self._targets[resolved] = list(controls)
        return True

    def controls_for(self, name: str) -> List[TargetControl]:
        return list(self._targets.get(name.strip(), []))

    def all_controls(self) -> List[TargetControl]:
        return [control for controls in self._targets.values() for control in controls]

    def search(self, query: str) -> List[TargetControl]:
        if not query:
            return []
        term = query.lower()
        return [
            control
            for control in self.all_controls()
            if term in control.FriendlyName.lower()
            or term in control.Id.lower()
            or term in control.ControlType.lower()
            or term in control.FriendlyGroup.lower()
        ]

    def filter_by_type(self, control_types: Iterable[str]) -> List[TargetControl]:
        wanted = set(control_types)
        return [control for control in self.all_controls() if control.ControlType in wanted]

    def suggested_for_action(self, action: str) -> List[TargetControl]:
        return self.filter_by_type(ACTION_CONTROL_TYPES.get(action, []))


@dataclass
class CatalogLoadReport:
    total_files: int = 0
    completed: int = 0
    targets_added: int = 0
    duplicates_skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.completed == self.total_files


def parse_catalog_content(content: str) -> TargetCatalogFile:
    return TargetCatalogFile.model_validate(json.loads(content))


class CatalogService:
    def __init__(self, source: CatalogSource, max_concurrency: int = 8):
        self.source = source
        self.max_concurrency = max(1, max_concurrency)

    @staticmethod
    def is_catalog_file(file: CatalogFile) -> bool:
        return not file.is_directory and file.name.lower().endswith(".json")

    async def load_all_targets(self, catalog: Optional[TargetCatalog] = None) -> tuple[TargetCatalog, CatalogLoadReport]:
        """Read every catalog file and merge its targets into ``catalog``.

        Raises:
            CollaboratorError: the file listing itself failed
        """
        catalog = catalog if catalog is not None else TargetCatalog()
        listing = await self.source.list_catalog_files()
        if not listing.status:
            raise CollaboratorError("list catalog files", listing.message or "listing failed")

        files = [f for f in listing.files if self.is_catalog_file(f)]
        report = CatalogLoadReport(total_files=len(files))
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def load_one(file: CatalogFile) -> None:
            try:
                async with semaphore:
                    response = await self.source.read_catalog_file(file.path)
                if not response.status or response.content is None:
                    report.errors.append(f"{file.path}: {response.message or 'no content'}")
                    return
                parsed = parse_catalog_content(response.content)
                for name, controls in parsed.TargetControls.items():
                    if catalog.add_target(name, controls):
                        report.targets_added += 1
                    else:
                        report.duplicates_skipped += 1
            except (ValueError, ValidationError) as e:
                report.errors.append(f"{file.path}: invalid catalog file: {e}")
            finally:
                report.completed += 1

        await asyncio.gather(*(load_one(f) for f in files))

        for error in report.errors:
            logger.error(f"Catalog load error: {error}")
        logger.info(
            f"Loaded {report.targets_added} targets from {report.total_files} catalog files "
            f"({report.duplicates_skipped} duplicates skipped, {len(report.errors)} errors)"
        )
        return catalog, report


def controls_for_context(container: Container, catalog: Optional[TargetCatalog]) -> List[TargetControl]:
    """Controls available in a container.

    Live catalog data wins; without it the container's deep aliases are the
    fallback source (alias -> locator, type inferred from the locator).
    """
    if catalog is not None and container.friendly_name in catalog:
        return catalog.controls_for(container.friendly_name)
    return [
        TargetControl(
            Id=locator,
            FriendlyName=alias,
            FriendlyGroup=container.friendly_name,
            ControlType=infer_control_type(locator) or "",
        )
        for alias, locator in (container.deep_aliases or {}).items()
    ]
