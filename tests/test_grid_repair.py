from cellogram import grid_repair
from cellogram.geometry import SIN_60, Vec2
from cellogram.grid import Grid


def patch_grid(size=12, lo=3, hi=8, skip=()):
    g = Grid()
    g.create(size, size)
    cells = [
        g.index_of(x, y)
        for y in range(lo, hi + 1)
        for x in range(lo, hi + 1)
        if (x, y) not in skip
    ]
    g.create_vertices(len(cells))
    for vi, gi in enumerate(cells):
        x, y = gi % size, gi // size
        g.vert[vi] = Vec2(x - 0.5 * y, -y * SIN_60)
        g.assign(gi, vi)
    return g


def assigned_ids(g):
    return sorted(v for v in g.grid if v != -1)


def remove_interior(g, x=5, y=5):
    gi = g.index_of(x, y)
    vi = g.grid[gi]
    g.grid[gi] = -1
    g.pos_in_grid[vi] = -1
    g.vdesired[vi] = gi
    return gi, vi


def test_fix_unassigned_vertex_into_its_hole():
    g = patch_grid()
    gi, vi = remove_interior(g)
    g.compute_is_external()
    assert grid_repair.fix_unassigned_vertex(g, vi) is True
    assert g.pos_in_grid[vi] == gi
    assert g.grid[gi] == vi


def test_fix_unassigned_vertex_without_desire():
    g = patch_grid()
    gi, vi = remove_interior(g)
    g.vdesired[vi] = -1
    g.compute_is_external()
    assert grid_repair.fix_unassigned_vertex(g, vi) is False
    assert g.pos_in_grid[vi] == -1


def test_fix_empty_slot_refuses_occupied_cell():
    g = patch_grid()
    g.compute_is_external()
    gi = g.index_of(5, 5)
    assert grid_repair.fix_empty_slot(g, gi) is False
    assert g.grid[gi] != -1


def test_greedy_assign_unassigned_simple():
    g = patch_grid()
    gi, vi = remove_interior(g)
    assert grid_repair.greedy_assign_unassigned(g) == 1
    assert g.grid[gi] == vi
    g.sanity_check()
    assert assigned_ids(g) == list(range(len(g.vert)))


def test_greedy_assign_pushes_into_neighbouring_hole():
    g = patch_grid(skip={(6, 5)})
    c = g.index_of(5, 5)
    h = g.index_of(6, 5)
    n = len(g.vert)
    g.create_vertices(n + 1)
    g.vert[n] = g.vert[g.grid[c]]
    g.vdesired[n] = c
    assert grid_repair.greedy_assign_unassigned(g) == 1
    assert g.pos_in_grid[n] in (c, h)
    g.sanity_check()
    assert assigned_ids(g) == list(range(n + 1))


def test_greedy_fill_empty_aborts_with_unassigned():
    g = patch_grid()
    gi, _ = remove_interior(g)
    before = list(g.grid)
    assert grid_repair.greedy_fill_empty(g) == 0
    assert g.grid == before


def test_greedy_fill_empty_keeps_vertices():
    g = patch_grid(skip={(5, 5)})
    n = len(g.vert)
    g.compute_is_external()
    assert grid_repair.greedy_fill_empty(g) >= 1
    g.sanity_check()
    assert assigned_ids(g) == list(range(n))


def test_greedy_ops_assigns_and_computes_matrices():
    g = patch_grid()
    remove_interior(g)
    assert grid_repair.greedy_ops(g) >= 1
    assert len(g.mat) == len(g.vert)
    g.sanity_check()
    assert assigned_ids(g) == list(range(len(g.vert)))