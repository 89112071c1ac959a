import math

import pytest

from turtlemapping.grid_mapper import Cell, GridMapper
from turtlemapping.grid_math import GridCoordinates
from turtlemapping.sensor_model import LaserProperties, Transform2D, Vector2D

POSE = Transform2D(0.5, 0.5, 0.0)
SCAN = [3.0]


def make_mapper(hi=10.0, resolution=1.0, sigma=1.0):
    props = LaserProperties(
        beam_min=0.0,
        beam_max=2 * math.pi,
        beam_delta=math.pi / 2,
        range_min=0.1,
        range_max=3.5,
        sigma_hit=sigma,
    )
    return GridMapper(resolution, 0.0, hi, 0.0, hi, props, Transform2D())


def mapped(hi=10.0, sigma=1.0):
    mapper = make_mapper(hi=hi, sigma=sigma)
    mapper.integrate_scan(SCAN, POSE)
    mapper.integrate_scan(SCAN, POSE)
    return mapper


def test_initial_cells_are_unknown():
    mapper = make_mapper()
    assert len(mapper.cells) == mapper.xsize * mapper.ysize
    assert all(c.prob == 0.5 and c.occ_dist == 10.0 and c.state == -1 for c in mapper.cells)
    assert set(mapper.grid_map()) == {-1}


def test_cell_defaults():
    cell = Cell()
    assert cell.state == -1
    assert cell.log_odds == 0.0


def test_world_to_grid_upper_edge_clamped():
    mapper = make_mapper()
    assert mapper.world_to_grid(10.0, 10.0) == GridCoordinates(mapper.xsize - 1, mapper.ysize - 1)
    assert mapper.world_to_grid(0.0, 0.0) == GridCoordinates(0, 0)


def test_world_to_row_major_matches_grid():
    mapper = make_mapper()
    coords = mapper.world_to_grid(3.5, 0.5)
    assert mapper.world_to_row_major(3.5, 0.5) == mapper.grid_to_row_major(coords.i, coords.j)


def test_out_of_bounds_raises():
    mapper = make_mapper()
    with pytest.raises(ValueError):
        mapper.world_to_grid(-0.1, 1.0)
    with pytest.raises(ValueError):
        mapper.world_to_row_major(1.0, 10.5)


def test_free_grid_index_horizontal():
    mapper = make_mapper()
    result = mapper.free_grid_index(Vector2D(3.5, 0.5), POSE)
    assert result == [mapper.grid_to_row_major(i, 0) for i in range(3)]


def test_free_grid_index_vertical():
    mapper = make_mapper()
    result = mapper.free_grid_index(Vector2D(0.5, 3.5), POSE)
    assert result == [mapper.grid_to_row_major(0, j) for j in range(3)]


def test_free_grid_index_diagonal():
    mapper = make_mapper()
    result = mapper.free_grid_index(Vector2D(3.5, 3.5), POSE)
    assert result == [mapper.grid_to_row_major(k, k) for k in range(3)]


def test_integrate_scan_marks_cells():
    mapper = mapped()
    occ = mapper.grid_to_row_major(3, 0)
    assert mapper.occupied_cells == frozenset({occ})
    assert mapper.cells[occ].state == 1
    for i in range(3):
        assert mapper.cells[mapper.grid_to_row_major(i, 0)].state == 0


def test_grid_map_is_transposed():
    mapper = mapped()
    grid = mapper.grid_map()
    assert grid[mapper.grid_to_row_major(0, 3)] == 100
    for k in range(3):
        assert grid[mapper.grid_to_row_major(0, k)] == 0
    assert grid.count(-1) == len(grid) - 4


def test_distance_field():
    mapper = mapped()
    assert mapper.cells[mapper.grid_to_row_major(3, 0)].occ_dist == 0.0
    assert mapper.cells[mapper.grid_to_row_major(2, 0)].occ_dist == pytest.approx(mapper.resolution)
    assert mapper.cells[mapper.grid_to_row_major(3, 5)].occ_dist == pytest.approx(5.0)
    assert all((c.src_i, c.src_j) == (3, 0) for c in mapper.cells)


def test_distance_field_limited_by_radius():
    mapper = mapped(hi=30.0)
    far = mapper.cells[mapper.grid_to_row_major(20, 0)]
    near = mapper.cells[mapper.grid_to_row_major(3, 9)]
    assert far.occ_dist == 10.0
    assert near.occ_dist < 10.0


def test_likelihood_without_obstacles_is_one():
    mapper = make_mapper()
    assert mapper.likelihood_field_model(SCAN, POSE) == 1.0


def test_likelihood_prefers_matching_pose():
    mapper = mapped()
    good = mapper.likelihood_field_model(SCAN, POSE)
    bad = mapper.likelihood_field_model(SCAN, Transform2D(0.5, 5.5, 0.0))
    assert good > bad


def test_likelihood_zero_variance_raises():
    mapper = mapped(sigma=0.0)
    with pytest.raises(ValueError):
        mapper.likelihood_field_model(SCAN, POSE)


def test_format_esdf():
    mapper = make_mapper(hi=2.0)
    assert mapper.format_esdf() == (
        "0 : 10.000000 |1 : 10.000000 |\n"
        "2 : 10.000000 |3 : 10.000000 |\n"
    )