"""Drill-down navigation state: which level is shown, what is selected, and how to step back.

Transitions are total. Selecting something that has no data is a valid state
(the map just renders empty); a selection made at a level where it does not
apply is ignored and reported as ``False``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from region_features import HierarchyLevel, RegionFeature
from utils.logger_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class NavigationFrame:
    level: HierarchyLevel
    name: str


class NavigationState:
    """
    Current view of the drill-down map.

    Attributes:
        current_level (HierarchyLevel): level whose features are on screen
        selected_region_name (str | None): city (District level) or district
            (Neighborhood level) whose children are shown
        selected_subregion_name (str | None): focused neighborhood; only set
            at Neighborhood level
        history (tuple[NavigationFrame, ...]): frames pushed by descending
            selections, oldest first

    Example:
        >>> state = NavigationState.seeded('Berlin')
        >>> state.snapshot()[:2]
        (<HierarchyLevel.DISTRICT: 1>, 'Berlin')
    """

    def __init__(
        self,
        current_level: HierarchyLevel = HierarchyLevel.REGION,
        selected_region_name: Optional[str] = None,
        selected_subregion_name: Optional[str] = None,
        history: Tuple[NavigationFrame, ...] = (),
    ) -> None:
        self.current_level = HierarchyLevel(current_level)
        self.selected_region_name = selected_region_name
        self.selected_subregion_name = selected_subregion_name
        self._history: List[NavigationFrame] = []
        for frame in history:
            self._push(frame)

    @classmethod
    def seeded(cls, city_name: Optional[str]) -> 'NavigationState':
        state = cls()
        if city_name:
            state.reset_to_default_city(city_name)
        return state

    @property
    def history(self) -> Tuple[NavigationFrame, ...]:
        return tuple(self._history)

    @property
    def can_go_back(self) -> bool:
        return self.current_level != HierarchyLevel.REGION or bool(self._history)

    def snapshot(self) -> Tuple[HierarchyLevel, Optional[str], Optional[str], Tuple[NavigationFrame, ...]]:
        return (self.current_level, self.selected_region_name, self.selected_subregion_name, self.history)

    def breadcrumb(self) -> List[str]:
        crumbs = [frame.name for frame in self._history]
        if self.selected_subregion_name:
            crumbs.append(self.selected_subregion_name)
        return crumbs

    def _push(self, frame: NavigationFrame) -> None:
        if self._history and self._history[-1] == frame:
            return
        self._history.append(frame)

    def _wrong_level(self, action: str, expected: HierarchyLevel) -> bool:
        if self.current_level == expected:
            return False
        logger.debug(f'Ignoring {action}: expected {expected.label} level, at {self.current_level.label}')
        return True

    def select_region(self, name: str) -> bool:
        if self._wrong_level('select_region', HierarchyLevel.REGION):
            return False
        self._push(NavigationFrame(HierarchyLevel.REGION, name))
        self.current_level = HierarchyLevel.DISTRICT
        self.selected_region_name = name
        self.selected_subregion_name = None
        return True

    def select_district(self, feature: RegionFeature) -> bool:
        if self._wrong_level('select_district', HierarchyLevel.DISTRICT):
            return False
        self._push(NavigationFrame(HierarchyLevel.DISTRICT, feature.name))
        self.current_level = HierarchyLevel.NEIGHBORHOOD
        self.selected_region_name = feature.name
        self.selected_subregion_name = None
        return True

    def select_neighborhood(self, feature: RegionFeature) -> bool:
        # Re-selecting the focused neighborhood keeps it selected (no toggle).
        if self._wrong_level('select_neighborhood', HierarchyLevel.NEIGHBORHOOD):
            return False
        self.selected_subregion_name = feature.name
        return True

    def go_back(self) -> bool:
        """Unwind one drill step; returns False when already at the root."""
        self.selected_subregion_name = None
        if not self._history:
            moved = self.current_level != HierarchyLevel.REGION or self.selected_region_name is not None
            self.current_level = HierarchyLevel.REGION
            self.selected_region_name = None
            return moved
        popped = self._history.pop()
        if self._history:
            self.current_level = popped.level
            self.selected_region_name = self._history[-1].name
        else:
            self.current_level = HierarchyLevel.REGION
            self.selected_region_name = None
        return True

    def reset_to_root(self) -> None:
        self._history.clear()
        self.current_level = HierarchyLevel.REGION
        self.selected_region_name = None
        self.selected_subregion_name = None

    def reset_to_default_city(self, city_name: str) -> None:
        self._history = [NavigationFrame(HierarchyLevel.REGION, city_name)]
        self.current_level = HierarchyLevel.DISTRICT
        self.selected_region_name = city_name
        self.selected_subregion_name = None

    def __repr__(self) -> str:
        return (
            f'NavigationState(level={self.current_level.name}, region={self.selected_region_name!r}, '
            f'subregion={self.selected_subregion_name!r}, history={self.history!r})'
        )
