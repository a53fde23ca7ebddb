import pytest

from occmap.grid import (
    CoordinateTransformer,
    DistanceMeasurementProvider,
    MapInfo,
    OccupancyGrid,
    get_map_extents,
    transformer_between,
    transformer_from_map_info,
)


def make_grid(width, height, occupied=(), free=(), resolution=1.0, origin=(0.0, 0.0)):
    data = [-1] * (width * height)
    for x, y in free:
        data[y * width + x] = 0
    for x, y in occupied:
        data[y * width + x] = 100
    return OccupancyGrid(MapInfo(width, height, resolution, origin), data)


def test_cell_reads_row_major():
    grid = make_grid(4, 3, occupied=[(2, 1)], free=[(0, 2)])
    assert grid.cell(2, 1) == 100
    assert grid.cell(1, 2) == -1
    assert grid.cell(0, 2) == 0


def test_cell_outside_grid_raises():
    grid = make_grid(4, 3)
    with pytest.raises(IndexError):
        grid.cell(4, 0)
    with pytest.raises(IndexError):
        grid.cell(0, -1)


def test_data_length_must_match_size():
    with pytest.raises(ValueError):
        OccupancyGrid(MapInfo(4, 3, 1.0), [0] * 11)


def test_cells_shape_is_height_by_width():
    grid = make_grid(4, 3, occupied=[(3, 2)])
    assert grid.cells.shape == (3, 4)
    assert grid.cells[2, 3] == 100


def test_transformer_from_map_info_origin_maps_to_zero():
    info = MapInfo(10, 10, 0.05, (-2.0, 3.0))
    tf = transformer_from_map_info(info)
    assert tf.to_c2((-2.0, 3.0)) == pytest.approx((0.0, 0.0))
    assert tf.c1_scale(1.0) == pytest.approx(0.05)
    assert tf.c2_scale(0.05) == pytest.approx(1.0)


def test_transformer_round_trip():
    tf = CoordinateTransformer(origin=(1.5, -4.0), scale=0.25)
    point = (7.3, -2.1)
    assert tf.to_c1(tf.to_c2(point)) == pytest.approx(point)
    assert tf.to_c2(tf.to_c1(point)) == pytest.approx(point)


def test_transformer_between_maps_end_points():
    o1, e1 = (0.0, 0.0), (10.0, 10.0)
    o2, e2 = (5.0, 5.0), (25.0, 25.0)
    tf = transformer_between(o1, e1, o2, e2)
    assert tf.to_c1(o1) == pytest.approx(o2)
    assert tf.to_c1(e1) == pytest.approx(e2)
    assert tf.to_c2(o2) == pytest.approx(o1)


def test_transformer_between_degenerate_span_raises():
    with pytest.raises(ValueError):
        transformer_between((1.0, 0.0), (1.0, 5.0), (0.0, 0.0), (3.0, 3.0))


def test_extents_none_when_everything_unknown():
    assert get_map_extents(make_grid(5, 5)) is None


def test_extents_cover_known_cells():
    grid = make_grid(6, 5, occupied=[(1, 2)], free=[(3, 0)])
    extents = get_map_extents(grid)
    assert extents.top_left == (1, 0)
    assert extents.bottom_right == (4, 3)


def test_bresenham_horizontal_hit():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(5, 2)]))
    hit = provider.check_occupancy_bresenham((0, 2), (9, 2))
    assert hit.point == (5, 2)
    assert hit.distance == 5


def test_bresenham_vertical_hit():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(3, 7)]))
    hit = provider.check_occupancy_bresenham((3, 0), (3, 9))
    assert hit.point == (3, 7)
    assert hit.distance == hit.point[1] - 0


def test_bresenham_diagonal_hit():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(3, 3)]))
    hit = provider.check_occupancy_bresenham((0, 0), (6, 6))
    assert hit.point == (3, 3)


def test_bresenham_reverse_direction():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(2, 4)]))
    hit = provider.check_occupancy_bresenham((8, 4), (0, 4))
    assert hit.point == (2, 4)


def test_bresenham_end_cell_is_not_tested():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(4, 0)]))
    assert provider.check_occupancy_bresenham((0, 0), (4, 0)) is None


def test_bresenham_start_cell_counts():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(1, 1)]))
    hit = provider.check_occupancy_bresenham((1, 1), (8, 1))
    assert hit.point == (1, 1)
    assert hit.distance == 0


def test_bresenham_without_obstacle():
    provider = DistanceMeasurementProvider(make_grid(10, 10))
    assert provider.check_occupancy_bresenham((0, 0), (9, 9)) is None


def test_bresenham_outside_map():
    provider = DistanceMeasurementProvider(make_grid(10, 10, occupied=[(5, 5)]))
    assert provider.check_occupancy_bresenham((-1, 5), (9, 5)) is None
    assert provider.check_occupancy_bresenham((0, 5), (10, 5)) is None


def test_get_dist_requires_map():
    provider = DistanceMeasurementProvider()
    with pytest.raises(RuntimeError):
        provider.get_dist((0.0, 0.0), (1.0, 1.0))


def test_get_dist_in_world_coordinates():
    grid = make_grid(20, 20, occupied=[(12, 4)], resolution=0.5, origin=(-1.0, -1.0))
    provider = DistanceMeasurementProvider()
    provider.set_map(grid)
    tf = transformer_from_map_info(grid.info)
    begin = tf.to_c1((2.5, 4.5))
    end = tf.to_c1((18.5, 4.5))
    hit = provider.get_dist(begin, end)
    cell_hit = provider.check_occupancy_bresenham((2, 4), (18, 4))
    assert tf.to_c2(hit.point) == pytest.approx((12.0, 4.0))
    assert hit.distance == pytest.approx(tf.c1_scale(cell_hit.distance))


def test_get_dist_miss_returns_none():
    grid = make_grid(20, 20, resolution=0.5)
    provider = DistanceMeasurementProvider(grid)
    assert provider.get_dist((1.0, 1.0), (8.0, 1.0)) is None