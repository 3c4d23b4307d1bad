"""Plotly implementation of the map surface: choropleth, labels, city markers and camera."""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

import map_config
from map_controller import MapView, StyledFeature
from region_features import CityMarker
from rent_lookup import is_color_dark
from viewport_controller import Bounds, CameraCommand, FitBounds, SetView

# MapLibre renders the whole world as one 512px tile at zoom 0
TILE_SIZE = 512
MAX_MERCATOR_LAT = 85.05112878

BORDER_COLOR = '#e4e4e4'
HIGHLIGHT_COLOR = '#666666'
FILL_OPACITY = 0.8
CITY_MARKER_COLOR = '#e41a1c'
LABEL_DARK_TEXT = '#2c3e50'
LABEL_LIGHT_TEXT = '#ffffff'

PLOTLY_CONFIG = {
    'scrollZoom': True,
    'displaylogo': False,
    'modeBarButtonsToRemove': ['lasso2d', 'select2d']
}


def _mercator_y(lat: float) -> float:
    lat = float(np.clip(lat, -MAX_MERCATOR_LAT, MAX_MERCATOR_LAT))
    rad = math.radians(lat)
    return (1.0 - math.log(math.tan(rad) + 1.0 / math.cos(rad)) / math.pi) / 2.0


def fit_zoom(
    bounds: Bounds,
    width: int,
    height: int,
    padding: int = 0,
    max_zoom: float = 13.0,
    min_zoom: float = 0.0,
) -> float:
    """Largest zoom at which `bounds` fits in the padded viewport."""
    inner_w = max(width - 2 * padding, 1)
    inner_h = max(height - 2 * padding, 1)
    span_x = (bounds.east - bounds.west) / 360.0
    span_y = abs(_mercator_y(bounds.south) - _mercator_y(bounds.north))
    candidates = [max_zoom]
    if span_x > 0:
        candidates.append(math.log2(inner_w / (TILE_SIZE * span_x)))
    if span_y > 0:
        candidates.append(math.log2(inner_h / (TILE_SIZE * span_y)))
    return float(np.clip(min(candidates), min_zoom, max_zoom))


def camera_to_center_zoom(command: CameraCommand, width: int, height: int) -> Tuple[Dict[str, float], float]:
    if isinstance(command, SetView):
        return {'lat': command.lat, 'lon': command.lon}, command.zoom
    if isinstance(command, FitBounds):
        lat, lon = command.bounds.center
        zoom = fit_zoom(command.bounds, width, height, command.padding, command.max_zoom)
        return {'lat': lat, 'lon': lon}, zoom
    raise TypeError(f'Unsupported camera command: {command!r}')


def build_geojson(features: Iterable[StyledFeature]) -> Dict:
    return {
        'type': 'FeatureCollection',
        'features': [styled.feature.to_geojson() for styled in features if styled.feature.geometry],
    }


def features_frame(view: MapView) -> pd.DataFrame:
    columns = ['name', 'parent', 'rent', 'rent_text', 'fill_color', 'label', 'lat', 'lon', 'dark_fill']
    rows = []
    for styled in view.features:
        lat, lon = styled.centroid if styled.centroid is not None else (np.nan, np.nan)
        rows.append({
            'name': styled.name,
            'parent': styled.feature.parent_name or '',
            'rent': styled.rent,
            'rent_text': styled.rent_text,
            'fill_color': styled.fill_color,
            'label': styled.label,
            'lat': lat,
            'lon': lon,
            'dark_fill': is_color_dark(styled.fill_color),
        })
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


def city_marker_size(city: CityMarker) -> float:
    """Marker diameter in px; radius grows with log population, capped at 6."""
    radius = min(math.log(max(city.population, 1) / 20000), 6)
    return max(radius, 1.0) * 2


def _label_traces(frame: pd.DataFrame) -> list:
    labelled = frame.dropna(subset=['label', 'lat', 'lon'])
    traces = []
    for dark_fill, group in labelled.groupby('dark_fill'):
        traces.append(go.Scattermap(
            lat=group['lat'],
            lon=group['lon'],
            mode='text',
            text=[f'{name} · {rent}' for name, rent in zip(group['label'], group['rent_text'])],
            textfont={'size': 11, 'color': LABEL_LIGHT_TEXT if dark_fill else LABEL_DARK_TEXT},
            customdata=group[['name']].to_numpy(),
            hoverinfo='skip',
            showlegend=False,
        ))
    return traces


def _highlight_trace(view: MapView) -> Optional[go.Choroplethmap]:
    if not view.selected_subregion:
        return None
    selected = [styled for styled in view.features if styled.name == view.selected_subregion]
    if not selected:
        return None
    return go.Choroplethmap(
        geojson=build_geojson(selected),
        locations=[view.selected_subregion],
        z=[1],
        featureidkey='properties.name',
        colorscale=[[0, 'rgba(0,0,0,0)'], [1, 'rgba(0,0,0,0)']],
        showscale=False,
        marker_line_width=3,
        marker_line_color=HIGHLIGHT_COLOR,
        hoverinfo='skip',
    )


def _city_marker_trace(markers: Iterable[CityMarker]) -> go.Scattermap:
    markers = list(markers)
    return go.Scattermap(
        lat=[city.lat for city in markers],
        lon=[city.lon for city in markers],
        mode='markers+text',
        marker={'size': [city_marker_size(city) for city in markers], 'color': CITY_MARKER_COLOR, 'opacity': 0.8},
        text=[city.name for city in markers],
        textposition='top center',
        customdata=[[city.name, city.population] for city in markers],
        hovertemplate='<b>%{customdata[0]}</b><br>Population: %{customdata[1]:,}<extra></extra>',
        showlegend=False,
    )


def plot_rent_map(
    view: MapView,
    center: Dict[str, float],
    zoom: float,
    map_style: str = map_config.MAP_STYLE,
) -> go.Figure:
    frame = features_frame(view)
    if frame.empty:
        fig = go.Figure()
    else:
        fig = px.choropleth_map(
            frame,
            geojson=build_geojson(view.features),
            locations='name',
            featureidkey='properties.name',
            color='fill_color',
            color_discrete_map={color: color for color in frame['fill_color'].unique()},
            custom_data=['name', 'rent_text', 'parent'],
            map_style=map_style,
            center=center,
            zoom=zoom,
            opacity=FILL_OPACITY,
        )
        fig.update_traces(
            marker_line_width=1,
            marker_line_color=BORDER_COLOR,
            hovertemplate='<b>%{customdata[0]}</b><br>Average rent: %{customdata[1]}<extra></extra>',
            showlegend=False,
        )
        highlight = _highlight_trace(view)
        if highlight is not None:
            fig.add_trace(highlight)
        for trace in _label_traces(frame):
            fig.add_trace(trace)
    if view.markers:
        fig.add_trace(_city_marker_trace(view.markers))
    fig.update_layout(
        title=view.title,
        map_style=map_style,
        map_center=center,
        map_zoom=zoom,
        margin={'r': 0, 't': 50, 'l': 0, 'b': 0},
        showlegend=False,
        clickmode='event+select',
    )
    return fig


def selected_name(selection_state: Any) -> Optional[str]:
    """Name of the clicked region or city from a Streamlit plotly selection event."""
    if not isinstance(selection_state, dict):
        return None
    points = selection_state.get('selection', {}).get('points', [])
    if not points:
        return None
    point_payload = points[0]
    location = point_payload.get('location')
    if location:
        return str(location)
    customdata = point_payload.get('customdata')
    if isinstance(customdata, (list, tuple)) and customdata:
        return str(customdata[0])
    return None


class PlotlyMapSurface:
    """Holds the latest figure and camera for Streamlit to display.

    Attributes:
        width, height (int): viewport size used to turn bounds into a zoom
        center (dict): current map center
        zoom (float): current map zoom
        figure (go.Figure | None): last drawn figure
        view (MapView | None): last drawn view
    """

    def __init__(
        self,
        width: int = map_config.MAP_WIDTH,
        height: int = map_config.MAP_HEIGHT,
        map_style: str = map_config.MAP_STYLE,
    ) -> None:
        self.width = width
        self.height = height
        self.map_style = map_style
        lat, lon, zoom = map_config.GERMANY_VIEW
        self.center: Dict[str, float] = {'lat': lat, 'lon': lon}
        self.zoom: float = zoom
        self.figure: Optional[go.Figure] = None
        self.view: Optional[MapView] = None

    def move_camera(self, command: CameraCommand) -> None:
        self.center, self.zoom = camera_to_center_zoom(command, self.width, self.height)
        if self.figure is not None:
            self.figure.update_layout(map_center=self.center, map_zoom=self.zoom)

    def draw(self, view: MapView) -> None:
        self.view = view
        self.figure = plot_rent_map(view, self.center, self.zoom, self.map_style)
