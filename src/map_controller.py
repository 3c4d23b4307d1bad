"""Single owner of the rent map session: navigation, data, camera and the drawing surface.

The surface only draws what it is handed and reports clicks back by name; all
state changes go through `RentMapController` methods.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from navigation_state import NavigationState
from region_dataset import RegionDataset
from region_features import CityMarker, HierarchyLevel, RegionFeature
from rent_lookup import RentLookup
from utils.logger_config import setup_logger
from utils.naming import normalize_name
from viewport_controller import CameraCommand, ViewportController, geometry_centroid

logger = setup_logger(__name__)


@dataclass(frozen=True)
class StyledFeature:
    feature: RegionFeature
    rent: float
    fill_color: str
    label: Optional[str] = None
    centroid: Optional[Tuple[float, float]] = None

    @property
    def name(self) -> str:
        return self.feature.name

    @property
    def rent_text(self) -> str:
        return f'{self.rent:.0f}€' if self.rent > 0 else 'No data'


@dataclass(frozen=True)
class MapView:
    level: HierarchyLevel
    title: str
    features: Tuple[StyledFeature, ...] = ()
    markers: Tuple[CityMarker, ...] = ()
    selected_name: Optional[str] = None
    selected_subregion: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.features and not self.markers


class MapSurface(Protocol):
    def draw(self, view: MapView) -> None:
        ...

    def move_camera(self, command: CameraCommand) -> None:
        ...


class RentMapController:
    """
    Drives the drill-down map for one user session.

    Attributes:
        dataset (RegionDataset): boundary features per level
        rents (RentLookup): rent figures and colors
        viewport (ViewportController): camera framing
        surface (MapSurface | None): drawing target; None for headless use
        state (NavigationState): current navigation state
        camera (CameraCommand | None): last camera command issued
        revision (int): bumped on every handled action

    Example:
        >>> controller = RentMapController(dataset, rents, ViewportController.from_config())
        >>> controller.start('Berlin')
        >>> controller.handle_click('Pankow')
        True
    """

    def __init__(
        self,
        dataset: RegionDataset,
        rents: RentLookup,
        viewport: ViewportController,
        surface: Optional[MapSurface] = None,
        state: Optional[NavigationState] = None,
    ) -> None:
        self.dataset = dataset
        self.rents = rents
        self.viewport = viewport
        self.surface = surface
        self.state = state or NavigationState()
        self.camera: Optional[CameraCommand] = None
        self.revision = 0

    # --- actions -----------------------------------------------------------

    def start(self, default_city: Optional[str] = None) -> None:
        if default_city:
            self.reset_to_default_city(default_city)
        else:
            self.reset_to_root()

    def handle_click(self, name: Optional[str]) -> bool:
        """Dispatch a click on the feature or city marker called `name`."""
        if not name:
            return False
        if self.state.current_level == HierarchyLevel.REGION:
            return self.click_city(name)
        for feature in self.active_features():
            if feature.name == name:
                return self.click_feature(feature)
        logger.info(f'Ignoring click on {name!r}: not part of the current view')
        return False

    def click_city(self, name: str) -> bool:
        if not self.state.select_region(name):
            return False
        if not self.dataset.districts_of(name):
            logger.info(f'No district data for {name}; showing an empty view')
        self.refresh(self.viewport.for_state(self.state, self.active_features()))
        return True

    def click_feature(self, feature: RegionFeature) -> bool:
        if feature.level == HierarchyLevel.DISTRICT:
            moved = self.state.select_district(feature)
        elif feature.level == HierarchyLevel.NEIGHBORHOOD:
            moved = self.state.select_neighborhood(feature)
        else:
            moved = False
        if not moved:
            return False
        camera = self.viewport.for_feature(feature)
        self.refresh(camera or self.viewport.for_state(self.state, self.active_features()))
        return True

    def back(self) -> bool:
        moved = self.state.go_back()
        self.refresh(self.viewport.for_state(self.state, self.active_features()))
        return moved

    def reset_to_root(self) -> None:
        self.state.reset_to_root()
        self.refresh(self.viewport.default_view())

    def reset_to_default_city(self, city_name: str) -> None:
        self.state.reset_to_default_city(city_name)
        self.refresh(self.viewport.for_state(self.state, self.active_features()))

    # --- queries -----------------------------------------------------------

    def active_features(self) -> Tuple[RegionFeature, ...]:
        return self.dataset.features_for(self.state.current_level, self.state.selected_region_name)

    def rent_for(self, feature: RegionFeature) -> float:
        if feature.level == HierarchyLevel.DISTRICT:
            return self.rents.average_for_district(normalize_name(feature.name))
        if feature.level == HierarchyLevel.NEIGHBORHOOD and feature.parent_name:
            return self.rents.average_for_neighborhood(normalize_name(feature.parent_name), feature.name)
        return 0

    def region_info(self) -> Optional[Tuple[str, float]]:
        """(name, average rent) for the info panel, or None when there is nothing to show.

        The most specific selection wins: focused neighborhood, then the
        district being drilled into, then the city.
        """
        state = self.state
        name = state.selected_region_name
        if not name:
            return None
        if state.current_level == HierarchyLevel.DISTRICT:
            rent = self.rents.average_for_city(name)
        elif state.selected_subregion_name:
            rent = self.rents.average_for_neighborhood(normalize_name(name), state.selected_subregion_name)
            name = state.selected_subregion_name
        else:
            rent = self.rents.average_for_district(normalize_name(name))
        if not rent:
            return None
        return (name, rent)

    def style_feature(self, feature: RegionFeature) -> StyledFeature:
        rent = self.rent_for(feature)
        centroid = geometry_centroid(feature.geometry)
        if centroid is None:
            logger.warning(f'No label position for {feature.name!r}: degenerate geometry')
        label = feature.name if rent > 0 and centroid is not None else None
        return StyledFeature(feature, rent, self.rents.color_for_rent(rent), label, centroid)

    def build_view(self) -> MapView:
        state = self.state
        if state.current_level == HierarchyLevel.REGION:
            return MapView(HierarchyLevel.REGION, 'Germany', markers=self.dataset.cities)
        features = tuple(self.style_feature(feature) for feature in self.active_features())
        title = f'{state.current_level.local_plural} · {state.selected_region_name}'
        return MapView(
            state.current_level,
            title,
            features=features,
            selected_name=state.selected_region_name,
            selected_subregion=state.selected_subregion_name,
        )

    def refresh(self, camera: Optional[CameraCommand] = None) -> MapView:
        self.revision += 1
        if camera is not None:
            self.camera = camera
        view = self.build_view()
        if self.surface is not None:
            if self.camera is not None:
                self.surface.move_camera(self.camera)
            self.surface.draw(view)
        return view
