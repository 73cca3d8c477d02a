"""
Geometry Builder

Accumulates path construction operators into subpaths and turns a finished
path into polygon or line geometries when it is painted.
"""

import logging
from typing import List, Optional

from geopdf.models.pdf_types import (
    Layer,
    LineStringGeometry,
    MultiLineStringGeometry,
    PdfFeature,
    PdfGeometry,
    Point,
    PolygonGeometry,
)

logger = logging.getLogger(__name__)


class PathState:
    """
    Current path under construction.

    Points are stored in page space: callers transform them by the CTM that is
    active when the construction operator runs.
    """

    def __init__(self):
        self.subpaths: List[List[Point]] = []
        self.has_multi_part = False
        self.has_fill = False
        self._last_closed = False

    @property
    def is_empty(self) -> bool:
        return not any(self.subpaths)

    @property
    def current_point(self) -> Optional[Point]:
        if self.subpaths and self.subpaths[-1]:
            return self.subpaths[-1][-1]
        return None

    def _start_subpath(self) -> List[Point]:
        if any(self.subpaths):
            self.has_multi_part = True
        # An empty trailing subpath (e.g. two consecutive moves) is reused
        if self.subpaths and not self.subpaths[-1]:
            return self.subpaths[-1]
        subpath: List[Point] = []
        self.subpaths.append(subpath)
        return subpath

    def move_to(self, point: Point) -> None:
        subpath = self._start_subpath()
        subpath[:] = [point]
        self._last_closed = False

    def line_to(self, point: Point) -> None:
        if not self.subpaths:
            # Line without a preceding move starts at the given point
            self.subpaths.append([point])
            return
        if self._last_closed:
            # Drawing on after h or re starts a new subpath at the closed one's start
            start = self.subpaths[-1][0]
            self._start_subpath()[:] = [start, point]
            self._last_closed = False
            return
        self.subpaths[-1].append(point)

    def close(self) -> None:
        if not self.subpaths:
            return
        subpath = self.subpaths[-1]
        if len(subpath) > 1 and subpath[0] != subpath[-1]:
            subpath.append(subpath[0])
        self._last_closed = bool(subpath)

    def rectangle(self, corners: List[Point]) -> None:
        """Append a closed 4-corner subpath."""
        subpath = self._start_subpath()
        subpath[:] = list(corners) + [corners[0]]
        self._last_closed = True

    def reset(self) -> None:
        self.subpaths = []
        self.has_multi_part = False
        self.has_fill = False
        self._last_closed = False


def _distinct_count(points: List[Point]) -> int:
    return len(set(points))


def _closed(ring: List[Point]) -> List[Point]:
    if ring[0] != ring[-1]:
        return ring + [ring[0]]
    return list(ring)


def build_geometries(path: PathState, fill: bool) -> List[PdfGeometry]:
    """
    Convert a painted path into geometries.

    Filled paths become polygons: one polygon holding every subpath as a ring
    when the path has several parts, otherwise one polygon per subpath.
    Stroked paths become a LineString, or a MultiLineString when the path has
    several parts. Subpaths with fewer than two distinct points are dropped.
    """
    subpaths = [list(sp) for sp in path.subpaths if _distinct_count(sp) >= 2]
    if not subpaths:
        return []

    if fill:
        if path.has_multi_part:
            return [PolygonGeometry(rings=[_closed(sp) for sp in subpaths])]
        return [PolygonGeometry(rings=[_closed(sp)]) for sp in subpaths]

    if len(subpaths) > 1:
        return [MultiLineStringGeometry(lines=subpaths)]
    return [LineStringGeometry(coordinates=subpaths[0])]


def build_features(
    path: PathState,
    fill: bool,
    layer: Optional[Layer] = None,
    mcid: Optional[int] = None,
    stream_index: int = 0,
) -> List[PdfFeature]:
    """Geometries of a painted path tagged with the active layer and MCID."""
    layer_name = layer.name if layer is not None else None
    return [
        PdfFeature(geometry=geometry, layer_name=layer_name, mcid=mcid, stream_index=stream_index)
        for geometry in build_geometries(path, fill)
    ]
