import math

import pytest

from cellogram.geometry import SIN_60, Mat2, Vec2
from cellogram.grid import Grid

SIZE = 10
LO, HI = 2, 7  # occupied cells span x, y in [LO, HI]


def cell_pos(x, y):
    return Vec2(x - 0.5 * y, -SIN_60 * y)


def make_lattice():
    g = Grid()
    g.create(SIZE, SIZE)
    cells = [(x, y) for y in range(LO, HI + 1) for x in range(LO, HI + 1)]
    g.create_vertices(len(cells))
    for k, (x, y) in enumerate(cells):
        g.vert[k] = cell_pos(x, y)
        g.assign(g.index_of(x, y), k)
    return g


def test_create_sets_neighbourhood():
    g = Grid()
    g.create(5, 4)
    assert len(g.grid) == 20
    assert all(v == -1 for v in g.grid)
    assert g.neigh == [-6, -5, 1, 6, 5, -1]
    assert g.safe_gi_min == 6
    assert g.safe_gi_max == 14


def test_shift_pos_and_invalid_direction():
    g = Grid()
    g.create(SIZE, SIZE)
    gi = g.index_of(4, 4)
    shifted = {g.shift_pos(gi, d) - gi for d in range(6)}
    assert shifted == set(g.neigh)
    with pytest.raises(ValueError):
        g.shift_pos(gi, 6)


def test_assign_unassign_swap_keep_maps_consistent():
    g = make_lattice()
    a, b = g.index_of(3, 3), g.index_of(4, 4)
    va, vb = g.grid[a], g.grid[b]
    g.swap_two(a, b)
    assert g.grid[a] == vb and g.pos_in_grid[vb] == a
    assert g.grid[b] == va and g.pos_in_grid[va] == b
    g.sanity_check()
    g.unassign(a)
    assert g.grid[a] == -1
    assert g.pos_in_grid[vb] == -1
    assert g.vdesired[vb] == -1


def test_sanity_check_detects_corruption():
    g = make_lattice()
    g.pos_in_grid[0] = g.index_of(0, 0)
    with pytest.raises(ValueError):
        g.sanity_check()


def test_update_pos_in_grid_rebuilds_map():
    g = make_lattice()
    expected = list(g.pos_in_grid)
    g.pos_in_grid = [-1] * len(g.vert)
    g.update_pos_in_grid()
    assert g.pos_in_grid == expected


def test_boundary_and_neighbour_counts():
    g = make_lattice()
    inner = g.index_of(5, 5)
    corner = g.index_of(LO, LO)
    assert not g.is_boundary(inner)
    assert g.is_boundary(corner)
    assert g.friends_around(inner) == 6
    assert g.number_of_adj(inner) == 6
    assert g.friends_around(corner) == g.number_of_adj(corner) < 6


def test_barycentres_on_perfect_lattice():
    g = make_lattice()
    gi = g.index_of(5, 5)
    centre = g.vert[g.grid[gi]]
    for p in (g.bary_around(gi), g.bary_around_of_existing(gi), g.avg_pos(gi)):
        assert p.x == pytest.approx(centre.x)
        assert p.y == pytest.approx(centre.y)


def test_avg_pos_of_isolated_cell_is_origin():
    g = make_lattice()
    assert g.avg_pos(g.index_of(1, 8)) == Vec2(0.0, 0.0)
    p = g.bary_around_of_existing(g.index_of(1, 8))
    assert math.isnan(p.x) and math.isnan(p.y)


def test_energy_around_if_matches_current_content():
    g = make_lattice()
    for gi in (g.index_of(5, 5), g.index_of(LO, LO)):
        assert g.energy_around_if(gi, g.grid[gi]) == pytest.approx(g.energy_around(gi))


def test_energy_around_penalises_missing_neighbours():
    g = make_lattice()
    inner = g.energy_around(g.index_of(5, 5))
    assert inner == pytest.approx(6.0)
    assert g.energy_around(g.index_of(LO, LO)) > inner


def test_energy_total_grows_when_vertex_removed():
    g = make_lattice()
    before = g.energy_total()
    g.unassign(g.index_of(5, 5))
    assert g.energy_total() > before


def test_triangle_quality():
    g = make_lattice()
    a, b, c = g.grid[g.index_of(4, 4)], g.grid[g.index_of(5, 4)], g.grid[g.index_of(5, 5)]
    assert g.triangle_quality(a, b, c) == pytest.approx(1.0)
    assert g.triangle_quality(-1, b, c) == -10


def test_trim_borders_unassigns_weak_corners():
    g = make_lattice()
    count = g.trim_borders()
    removed = sum(1 for p in g.pos_in_grid if p == -1)
    assert count == removed
    assert count >= 1
    assert g.grid[g.index_of(HI, LO)] == -1
    assert g.grid[g.index_of(5, 5)] != -1
    g.sanity_check()


def test_compute_matrices_identity_on_perfect_lattice():
    g = make_lattice()
    g.compute_matrices()
    for m in g.mat:
        assert m.x.x == pytest.approx(1.0)
        assert m.x.y == pytest.approx(0.0, abs=1e-9)
        assert m.y.x == pytest.approx(0.0, abs=1e-9)
        assert m.y.y == pytest.approx(1.0)
    g.smooth_matrices(3)
    for m in g.mat:
        assert (m - Mat2.diagonal(1.0)).squared_norm() == pytest.approx(0.0, abs=1e-12)


def test_misalignment_zero_on_lattice_edges():
    g = make_lattice()
    g.compute_matrices()
    va = g.grid[g.index_of(5, 5)]
    for d in g.neigh:
        vb = g.grid[g.index_of(5, 5) + d]
        assert g.misalignment(va, vb) == pytest.approx(0.0, abs=1e-9)
        assert g.misalignment_optimist(va, vb) == pytest.approx(0.0, abs=1e-9)
    far = g.grid[g.index_of(HI, HI)]
    assert g.misalignment(va, far) == -1.0


def test_misalignment_optimist_both_unassigned():
    g = make_lattice()
    g.unassign(g.index_of(4, 4))
    g.unassign(g.index_of(5, 4))
    g.vdesired = [-1] * len(g.vert)
    va = g.vert.index(cell_pos(4, 4))
    vb = g.vert.index(cell_pos(5, 4))
    assert g.misalignment_optimist(va, vb) == 0.5


def test_are_adjacent_uses_desired_position():
    g = make_lattice()
    va = g.grid[g.index_of(4, 4)]
    vb = g.grid[g.index_of(5, 4)]
    vc = g.grid[g.index_of(7, 7)]
    assert g.are_adjacent(va, vb)
    assert not g.are_adjacent(va, vc)
    g.unassign(g.index_of(7, 7))
    g.vdesired[vc] = g.index_of(5, 5)
    assert g.are_adjacent(vb, vc)


def test_compute_is_external():
    g = make_lattice()
    g.compute_is_external()
    assert g.is_external[g.index_of(1, 1)]
    assert g.is_external[g.index_of(8, 5)]
    assert not g.is_external[g.index_of(5, 5)]


def test_dist_from_border():
    g = make_lattice()
    g.update_dist_from_border()
    assert g.dist_from_border[g.index_of(0, 0)] == 0
    edge = g.dist_from_border[g.index_of(LO, 5)]
    assert edge >= 1
    assert g.dist_from_border[g.index_of(5, 5)] > edge


def test_fill_gaps_restores_removed_vertex():
    g = make_lattice()
    gi = g.index_of(5, 5)
    original = g.vert[g.grid[gi]]
    n_before = len(g.vert)
    g.unassign(gi)
    assert g.fill_gaps_making_pts_up() == 1
    assert len(g.vert) == n_before + 1
    assert g.grid[gi] == n_before
    assert g.made_up_vert[-1] is True
    assert g.vert[-1].x == pytest.approx(original.x)
    assert g.vert[-1].y == pytest.approx(original.y)
    g.sanity_check()


def test_enlarge_grid_preserves_assignments():
    g = make_lattice()
    old_pos = {vi: (p % SIZE, p // SIZE) for vi, p in enumerate(g.pos_in_grid)}
    g.enlarge_grid(2, 1, 3, 0)
    assert (g.sx, g.sy) == (SIZE + 3, SIZE + 3)
    assert len(g.grid) == g.sx * g.sy
    for vi, (x, y) in old_pos.items():
        assert g.pos_in_grid[vi] == g.index_of(x + 2, y + 3)
    g.sanity_check()


def test_enlarge_to_include_corner():
    g = make_lattice()
    g.enlarge_to_include(g.index_of(0, 0), 3)
    assert g.sx == SIZE + 3
    assert g.sy == SIZE + 3
    g.sanity_check()


def test_hop_distance():
    g = make_lattice()
    gi = g.index_of(5, 5)
    assert g.hop_distance(gi, gi) == 0
    assert all(g.hop_distance(gi, gi + d) == 1 for d in g.neigh)
    va = g.grid[gi]
    vb = g.grid[gi + 1]
    assert g.hop_distance_v(va, vb) == 1
    g.unassign(gi + 1)
    assert g.hop_distance_v(va, vb) == -1


def test_init_indices_on_grid():
    g = Grid()
    g.create(6, 6)
    g.create_vertices(4)
    g.init_indices_on_grid(2, 2)
    assert g.pos_in_grid[0] == g.index_of(1, 1)
    assert g.pos_in_grid[2] == g.index_of(1, 2)
    g.sanity_check()


def test_init_vert_on_grid():
    g = Grid()
    g.init_vert_on_grid(3, 2)
    assert len(g.vert) == 6
    assert g.vert[0] == Vec2(0.0, 0.0)
    assert g.vert[3].x == pytest.approx(-0.5)
    assert g.vert[3].y == pytest.approx(math.sqrt(3) / 2)


def test_create_vertices_and_clear():
    g = Grid()
    g.create_vertices(3)
    assert g.pos_in_grid == [-1, -1, -1]
    assert g.vdesired == [-1, -1, -1]
    assert g.made_up_vert == [False, False, False]
    g.clear()
    assert g.grid == [] and g.pos_in_grid == [] and g.vdesired == []


def test_format_grid():
    g = make_lattice()
    text = g.format_grid()
    lines = text.rstrip("\n").split("\n")
    assert len(lines) == SIZE + 1
    assert lines[-1].startswith("Eng = ")
    assert "***" in lines[0]
    assert "000" in text