import streamlit as st
import pandas as pd
from pathlib import Path
import sys
from typing import Tuple

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

import map_config
from map_controller import RentMapController
from map_figure import PLOTLY_CONFIG, PlotlyMapSurface, selected_name
from region_dataset import RegionDataset, load_region_dataset
from region_features import HierarchyLevel
from rent_lookup import RENT_BANDS, NO_DATA_COLOR, RentLookup, load_rent_record
from utils.exceptions import DatasetLoadError
from utils.logger_config import setup_logger
from viewport_controller import ViewportController

logger = setup_logger('rent_map_app')


@st.cache_resource(show_spinner=False)
def load_sources() -> Tuple[RegionDataset, RentLookup]:
    dataset = load_region_dataset(
        map_config.city_district_paths(),
        map_config.NEIGHBORHOOD_PATH,
    )
    rents = RentLookup(load_rent_record(map_config.RENT_DATA_PATH))
    return dataset, rents


def get_controller(dataset: RegionDataset, rents: RentLookup) -> RentMapController:
    if 'rent_map' not in st.session_state:
        controller = RentMapController(
            dataset,
            rents,
            ViewportController.from_config(),
            surface=PlotlyMapSurface(),
        )
        controller.start(map_config.DEFAULT_CITY)
        st.session_state['rent_map'] = controller
    return st.session_state['rent_map']


def legend_caption(rents: RentLookup) -> str:
    low, high = rents.rent_range()
    bands = [f"{color} ≥ {int(bound)}€" if bound else f"{color} < {int(RENT_BANDS[1][0])}€" for bound, color in RENT_BANDS]
    span = f" Observed neighborhood rents: {low:.0f}€–{high:.0f}€." if high else ''
    return f"Legend (green → red = cheaper → pricier): {', '.join(bands)}; {NO_DATA_COLOR} = no data.{span}"


def rent_table(controller: RentMapController) -> pd.DataFrame:
    view = controller.surface.view if controller.surface is not None else None
    if view is None or not view.features:
        return pd.DataFrame(columns=['Area', 'Average rent (€)'])
    table = pd.DataFrame(
        [{'Area': styled.name, 'Average rent (€)': styled.rent or None} for styled in view.features]
    )
    return table.sort_values('Average rent (€)', ascending=False, na_position='last').reset_index(drop=True)


def main():
    st.set_page_config(page_title='Rent Map Germany', layout='wide')
    st.markdown('## Rent Map Germany')
    st.caption('Average rents by district and neighborhood. Click a region to drill down.')

    try:
        dataset, rents = load_sources()
    except DatasetLoadError as err:
        logger.error(f'Could not load map data: {err}')
        st.error(str(err))
        st.stop()

    controller = get_controller(dataset, rents)
    state = controller.state
    before = controller.revision

    st.sidebar.header('Navigate')
    if st.sidebar.button('◀ Step back', key='nav-back', disabled=not state.can_go_back, use_container_width=True):
        controller.back()
    if st.sidebar.button(f'⟲ Back to {map_config.DEFAULT_CITY}', key='nav-default', use_container_width=True):
        controller.reset_to_default_city(map_config.DEFAULT_CITY)
    if st.sidebar.button('🗺 Germany overview', key='nav-root', use_container_width=True):
        controller.reset_to_root()

    supported = dataset.supported_cities
    if supported:
        st.sidebar.markdown('---')
        jump_city = st.sidebar.selectbox('Jump to city', ['—'] + supported, key=f'nav-jump-{before}')
        if jump_city != '—':
            controller.reset_to_default_city(jump_city)

    if controller.revision != before:
        st.rerun()

    crumbs = state.breadcrumb()
    st.sidebar.markdown('---')
    st.sidebar.subheader('Drill-down path')
    st.sidebar.write(' → '.join(['Germany'] + crumbs))
    st.sidebar.caption(f'Showing: {state.current_level.label} level ({state.current_level.local_label})')

    map_col, info_col = st.columns([2.8, 1.2], gap='large')
    surface = controller.surface
    with map_col:
        view = surface.view
        if view is not None and view.is_empty:
            st.info(f'No district data available for {state.selected_region_name}. Step back or pick another city.')
        selection_state = st.plotly_chart(
            surface.figure,
            use_container_width=True,
            config=PLOTLY_CONFIG,
            key=f'rent-map-{controller.revision}',
            on_select='rerun',
            selection_mode=('points',),
        )
        st.caption(legend_caption(rents))
        clicked = selected_name(selection_state)
        if clicked and controller.handle_click(clicked):
            st.rerun()

    with info_col:
        info = controller.region_info()
        if info is not None:
            name, rent = info
            st.metric(name, f'{rent:.0f}€', help='Average rent')
        if state.current_level == HierarchyLevel.REGION:
            st.markdown('### Cities')
            st.caption('Click a city marker to open its districts.')
        else:
            st.markdown(f'### {state.current_level.local_plural}')
            st.dataframe(rent_table(controller), use_container_width=True, hide_index=True)


if __name__ == '__main__':
    main()
