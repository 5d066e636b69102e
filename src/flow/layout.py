"""Deterministic 2-D placement of containers and steps.

Containers sit left-to-right on one row in container order, each advanced by
the previous container's width plus a gutter. Steps stack vertically inside
their container. Sizes come from step counts only, never from content.
"""

import dataclasses
from typing import TYPE_CHECKING

from src.flow.flow_types import Container

if TYPE_CHECKING:
    from src.core.config import Settings
    from src.flow.container_store import ContainerGraphStore


@dataclasses.dataclass(frozen=True)
class LayoutConfig:
    origin_x: float = 50.0
    origin_y: float = 50.0
    gutter: float = 80.0
    step_width: float = 220.0
    step_height: float = 56.0
    step_spacing: float = 12.0
    padding: float = 16.0
    header_height: float = 40.0

    @classmethod
    def from_settings(cls, settings: "Settings") -> "LayoutConfig":
        return cls(
            origin_x=settings.LAYOUT_ORIGIN_X,
            origin_y=settings.LAYOUT_ORIGIN_Y,
            gutter=settings.LAYOUT_GUTTER,
            step_width=settings.LAYOUT_STEP_WIDTH,
            step_height=settings.LAYOUT_STEP_HEIGHT,
            step_spacing=settings.LAYOUT_STEP_SPACING,
            padding=settings.LAYOUT_PADDING,
            header_height=settings.LAYOUT_HEADER_HEIGHT,
        )


class LayoutAssigner:
    def __init__(self, config: LayoutConfig | None = None):
        self.config = config or LayoutConfig()

    def container_size(self, step_count: int) -> tuple[float, float]:
        cfg = self.config
        width = cfg.step_width + 2 * cfg.padding
        # An empty container still reserves one step slot.
        slots = max(step_count, 1)
        height = (
            cfg.header_height
            + 2 * cfg.padding
            + slots * cfg.step_height
            + (slots - 1) * cfg.step_spacing
        )
        return width, height

    def place_container(self, container: Container, x: float, y: float) -> None:
        cfg = self.config
        container.x, container.y = x, y
        container.width, container.height = self.container_size(len(container.steps))
        for index, step in enumerate(container.steps):
            step.x = x + cfg.padding
            step.y = y + cfg.header_height + cfg.padding + index * (cfg.step_height + cfg.step_spacing)

    def assign(self, store: "ContainerGraphStore") -> None:
        x = self.config.origin_x
        for container in store.containers:
            self.place_container(container, x, self.config.origin_y)
            x += container.width + self.config.gutter
