import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from conftest import square
from map_controller import MapView, RentMapController
from region_dataset import RegionDataset
from region_features import DistrictFeature, HierarchyLevel
from rent_lookup import NO_DATA_COLOR, color_for_rent
from viewport_controller import FitBounds, SetView, ViewportController

ROOT_VIEW = SetView(51.1657, 10.4515, 5.5)
BERLIN_VIEW = SetView(52.52, 13.405, 11.0)


class RecordingSurface:
    def __init__(self):
        self.calls = []

    def move_camera(self, command):
        self.calls.append(('camera', command))

    def draw(self, view):
        self.calls.append(('draw', view))

    @property
    def views(self):
        return [payload for kind, payload in self.calls if kind == 'draw']

    @property
    def cameras(self):
        return [payload for kind, payload in self.calls if kind == 'camera']


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def controller(dataset, rent_lookup, surface):
    viewport = ViewportController(
        root_view=ROOT_VIEW,
        city_views={'Berlin': BERLIN_VIEW},
        level_padding={'district': 10, 'neighborhood': -30},
        max_zoom=13.0,
    )
    controller = RentMapController(dataset, rent_lookup, viewport, surface=surface)
    controller.start('Berlin')
    return controller


def names(view):
    return sorted(styled.name for styled in view.features)


class TestStart:
    def test_starts_on_default_city(self, controller, surface):
        assert controller.state.current_level == HierarchyLevel.DISTRICT
        assert controller.state.selected_region_name == 'Berlin'
        assert controller.revision == 1
        assert surface.cameras == [BERLIN_VIEW]
        assert names(surface.views[-1]) == ['Friedrichshain-Kreuzberg', 'Mitte', 'Neukölln', 'Pankow']

    def test_camera_moves_before_draw(self, controller, surface):
        assert [kind for kind, _ in surface.calls] == ['camera', 'draw']

    def test_start_without_city_shows_overview(self, dataset, rent_lookup):
        controller = RentMapController(dataset, rent_lookup, ViewportController(ROOT_VIEW))
        controller.start()
        view = controller.build_view()
        assert view.level == HierarchyLevel.REGION
        assert view.title == 'Germany'
        assert len(view.markers) == 10
        assert view.features == ()
        assert controller.camera == ROOT_VIEW


class TestClicks:
    def test_district_click_drills_down(self, controller, surface):
        assert controller.handle_click('Pankow') is True
        view = surface.views[-1]
        assert view.level == HierarchyLevel.NEIGHBORHOOD
        assert view.title == 'Ortsteile · Pankow'
        assert names(view) == ['Buch', 'Prenzlauer Berg']
        assert isinstance(controller.camera, FitBounds)
        assert controller.camera.padding == 10

    def test_neighborhood_click_focuses(self, controller, surface):
        controller.handle_click('Pankow')
        assert controller.handle_click('Buch') is True
        assert controller.state.selected_subregion_name == 'Buch'
        assert surface.views[-1].selected_subregion == 'Buch'
        assert controller.camera.padding == -30
        assert controller.camera.max_zoom == 13.0

    def test_reclicking_neighborhood_keeps_selection(self, controller):
        controller.handle_click('Pankow')
        controller.handle_click('Buch')
        revision = controller.revision
        assert controller.handle_click('Buch') is True
        assert controller.state.selected_subregion_name == 'Buch'
        assert controller.revision == revision + 1

    def test_click_outside_current_view_is_ignored(self, controller):
        controller.handle_click('Pankow')
        before = controller.state.snapshot()
        revision = controller.revision
        assert controller.handle_click('Moabit') is False
        assert controller.handle_click(None) is False
        assert controller.handle_click('') is False
        assert controller.state.snapshot() == before
        assert controller.revision == revision

    def test_unattributed_neighborhood_is_never_clickable(self, controller):
        controller.handle_click('Pankow')
        assert controller.handle_click('Irgendwo') is False

    def test_city_click_from_overview(self, controller, surface):
        controller.reset_to_root()
        assert controller.handle_click('Berlin') is True
        assert controller.state.current_level == HierarchyLevel.DISTRICT
        assert controller.camera == BERLIN_VIEW

    def test_city_without_data_renders_empty(self, controller, surface):
        controller.reset_to_root()
        assert controller.handle_click('Munich') is True
        view = surface.views[-1]
        assert view.level == HierarchyLevel.DISTRICT
        assert view.is_empty
        assert controller.camera == ROOT_VIEW
        assert controller.region_info() is None


class TestBackAndReset:
    def test_back_from_focused_neighborhood(self, controller, surface):
        controller.handle_click('Pankow')
        controller.handle_click('Buch')
        assert controller.back() is True
        assert controller.state.current_level == HierarchyLevel.DISTRICT
        assert controller.state.selected_region_name == 'Berlin'
        assert controller.state.selected_subregion_name is None
        assert controller.camera == BERLIN_VIEW
        assert len(surface.views[-1].features) == 4

    def test_back_to_overview(self, controller, surface):
        assert controller.back() is True
        assert controller.state.current_level == HierarchyLevel.REGION
        assert controller.camera == ROOT_VIEW
        assert surface.views[-1].markers

    def test_back_at_root_still_redraws(self, controller):
        controller.reset_to_root()
        revision = controller.revision
        assert controller.back() is False
        assert controller.revision == revision + 1

    def test_reset_to_root_clears_history(self, controller):
        controller.handle_click('Pankow')
        controller.reset_to_root()
        assert controller.state.snapshot() == (HierarchyLevel.REGION, None, None, ())
        assert controller.camera == ROOT_VIEW

    def test_reset_to_default_city(self, controller):
        controller.handle_click('Pankow')
        controller.handle_click('Buch')
        controller.reset_to_default_city('Berlin')
        assert controller.state.current_level == HierarchyLevel.DISTRICT
        assert [frame.name for frame in controller.state.history] == ['Berlin']
        assert controller.camera == BERLIN_VIEW


class TestStylingAndInfo:
    def test_district_styles_use_normalized_keys(self, controller, surface):
        styled = {item.name: item for item in surface.views[-1].features}
        assert styled['Neukölln'].rent == 760.0
        assert styled['Neukölln'].fill_color == color_for_rent(760.0)
        assert styled['Friedrichshain-Kreuzberg'].rent_text == '990€'
        assert styled['Mitte'].label == 'Mitte'
        assert styled['Mitte'].centroid is not None

    def test_missing_rent_is_gray_and_unlabelled(self, controller, surface):
        controller.handle_click('Mitte')
        styled = {item.name: item for item in surface.views[-1].features}
        assert styled['Wedding'].fill_color == NO_DATA_COLOR
        assert styled['Wedding'].label is None
        assert styled['Wedding'].rent_text == 'No data'
        assert styled['Moabit'].label == 'Moabit'
        assert styled['Moabit'].fill_color == color_for_rent(905.0)

    def test_region_info_follows_the_drill_down(self, controller):
        assert controller.region_info() == ('Berlin', 870.0)
        controller.handle_click('Pankow')
        assert controller.region_info() == ('Pankow', 820.0)
        controller.handle_click('Buch')
        assert controller.region_info() == ('Buch', 710.0)
        controller.reset_to_root()
        assert controller.region_info() is None

    def test_headless_controller(self, dataset, rent_lookup):
        controller = RentMapController(dataset, rent_lookup, ViewportController(ROOT_VIEW))
        controller.start('Berlin')
        assert controller.handle_click('Pankow') is True
        view = controller.refresh()
        assert isinstance(view, MapView)
        assert names(view) == ['Buch', 'Prenzlauer Berg']


class TestMalformedGeometry:
    def test_bad_district_does_not_block_the_view(self, neighborhoods, rent_lookup, surface):
        districts = [
            DistrictFeature('Altona', square(9.90, 53.55)),
            DistrictFeature('Eimsbüttel', {'type': 'Polygon', 'coordinates': [[9.95, 53.57], [9.97, 53.57], [9.95, 53.57]]}),
            DistrictFeature('Wandsbek', square(10.07, 53.58)),
        ]
        dataset = RegionDataset({'Hamburg': districts}, neighborhoods)
        controller = RentMapController(dataset, rent_lookup, ViewportController(ROOT_VIEW), surface=surface)
        controller.start('Hamburg')
        styled = {item.name: item for item in surface.views[-1].features}
        assert set(styled) == {'Altona', 'Eimsbüttel', 'Wandsbek'}
        assert styled['Eimsbüttel'].centroid is None
        assert styled['Eimsbüttel'].label is None
        assert styled['Altona'].centroid is not None
        assert isinstance(controller.camera, FitBounds)
