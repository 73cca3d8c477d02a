from geopdf.models.pdf_types import Layer, LineStringGeometry, MultiLineStringGeometry, PolygonGeometry
from geopdf.processors.geometry_builder import PathState, build_features, build_geometries


def _rect(path: PathState, x: float, y: float, w: float, h: float) -> None:
    path.rectangle([(x, y), (x + w, y), (x + w, y + h), (x, y + h)])


def test_filled_rectangle_is_one_closed_polygon() -> None:
    path = PathState()
    _rect(path, 0, 0, 10, 10)
    (geometry,) = build_geometries(path, fill=True)
    assert isinstance(geometry, PolygonGeometry)
    (ring,) = geometry.rings
    assert ring == [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]


def test_multi_part_fill_keeps_holes_in_one_polygon() -> None:
    path = PathState()
    _rect(path, 0, 0, 100, 100)
    _rect(path, 25, 25, 50, 50)
    assert path.has_multi_part
    (geometry,) = build_geometries(path, fill=True)
    assert len(geometry.rings) == 2


def test_open_fill_subpath_is_closed() -> None:
    path = PathState()
    path.move_to((0, 0))
    path.line_to((10, 0))
    path.line_to((10, 10))
    (geometry,) = build_geometries(path, fill=True)
    assert geometry.rings[0][0] == geometry.rings[0][-1]


def test_stroke_is_linestring_and_stays_open() -> None:
    path = PathState()
    path.move_to((0, 0))
    path.line_to((5, 5))
    path.line_to((10, 0))
    (geometry,) = build_geometries(path, fill=False)
    assert isinstance(geometry, LineStringGeometry)
    assert geometry.coordinates == [(0, 0), (5, 5), (10, 0)]


def test_stroke_with_several_subpaths_is_multilinestring() -> None:
    path = PathState()
    path.move_to((0, 0))
    path.line_to((5, 5))
    path.move_to((10, 10))
    path.line_to((20, 20))
    (geometry,) = build_geometries(path, fill=False)
    assert isinstance(geometry, MultiLineStringGeometry)
    assert geometry.lines == [[(0, 0), (5, 5)], [(10, 10), (20, 20)]]


def test_degenerate_subpaths_are_dropped() -> None:
    path = PathState()
    path.move_to((1, 1))
    path.line_to((1, 1))
    assert build_geometries(path, fill=False) == []
    assert build_geometries(PathState(), fill=True) == []


def test_lone_move_does_not_produce_a_part() -> None:
    path = PathState()
    path.move_to((0, 0))
    path.move_to((3, 3))
    path.line_to((4, 4))
    (geometry,) = build_geometries(path, fill=False)
    assert isinstance(geometry, LineStringGeometry)
    assert geometry.coordinates == [(3, 3), (4, 4)]


def test_close_appends_start_point_once() -> None:
    path = PathState()
    path.move_to((0, 0))
    path.line_to((10, 0))
    path.line_to((10, 10))
    path.close()
    path.close()
    assert path.subpaths[0] == [(0, 0), (10, 0), (10, 10), (0, 0)]


def test_features_carry_layer_and_mcid() -> None:
    path = PathState()
    _rect(path, 0, 0, 1, 1)
    layer = Layer(name="Roads", ref=(3, 0))
    (feature,) = build_features(path, fill=True, layer=layer, mcid=4, stream_index=2)
    assert feature.layer_name == "Roads"
    assert feature.mcid == 4
    assert feature.stream_index == 2


def test_line_after_rectangle_starts_new_subpath() -> None:
    path = PathState()
    _rect(path, 0, 0, 10, 10)
    path.line_to((20, 20))
    assert path.subpaths == [
        [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)],
        [(0, 0), (20, 20)],
    ]
    (geometry,) = build_geometries(path, fill=False)
    assert isinstance(geometry, MultiLineStringGeometry)
    assert geometry.lines[1] == [(0, 0), (20, 20)]


def test_line_after_close_leaves_ring_closed() -> None:
    path = PathState()
    path.move_to((0, 0))
    path.line_to((10, 0))
    path.line_to((10, 10))
    path.close()
    path.line_to((5, 5))
    path.line_to((6, 6))
    assert path.subpaths == [
        [(0, 0), (10, 0), (10, 10), (0, 0)],
        [(0, 0), (5, 5), (6, 6)],
    ]
