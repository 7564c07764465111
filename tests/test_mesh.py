import math

import pytest

from cellogram.geometry import Vec2
from cellogram.grid import Grid
from cellogram.mesh import Mesh
from cellogram.mesh_elements import Face


def _square():
    m = Mesh()
    m.from_points([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])
    m.faces = [Face(vi=[0, 1, 2]), Face(vi=[0, 2, 3])]
    m.build_edges_from_faces()
    m.update_valencies()
    return m


def _shared_edge(m):
    return next(i for i, e in enumerate(m.edges) if e.fi[1] != -1)


def _hexagon():
    pts = [(0.0, 0.0)] + [
        (math.cos(k * math.pi / 3), math.sin(k * math.pi / 3)) for k in range(6)
    ]
    m = Mesh()
    m.from_points(pts)
    m.init_with_delaunay()
    return m


def _lattice(n=7):
    pts = [
        (x + 0.5 * (y % 2) + 0.01 * ((x * 7 + y * 3) % 5), y * math.sqrt(3) / 2)
        for y in range(n)
        for x in range(n)
    ]
    m = Mesh()
    m.from_points(pts)
    m.init_with_delaunay()
    return m


def _irregularity(m):
    return sum(abs(v.val - 6) for v in m.verts)


def test_delaunay_hexagon_structure():
    m = _hexagon()
    assert len(m.faces) == 6
    assert m.verts[0].val == 6
    assert m.sanity_check()
    assert len(m.verts) - len(m.edges) + len(m.faces) == 1


def test_valence_sum_matches_edges():
    m = _lattice()
    assert sum(v.val for v in m.verts) == 2 * len(m.edges)
    assert m.sanity_check_valencies() == 0


def test_build_edges_rejects_non_manifold():
    m = Mesh()
    m.from_points([(0, 0), (1, 0), (0, 1), (1, 1), (0.5, -1)])
    m.faces = [Face(vi=[0, 1, 2]), Face(vi=[1, 0, 3]), Face(vi=[0, 1, 4])]
    with pytest.raises(ValueError):
        m.build_edges_from_faces()


def test_parallelogram_rule_and_error_on_square():
    m = _square()
    ei = _shared_edge(m)
    assert m.parallelogram_rule(0, ei) == m.verts[3].p
    assert m.edge_parallelogram_error(ei) == pytest.approx(0.0)
    assert m.vi_on_other_side(0, ei) == 3
    assert m.vi_on_other_side(1, ei) == 1


def test_parallelogram_error_missing_vertex():
    m = _square()
    assert m.parallelogram_error(0, 1, 2, -1) == 9e9
    assert m.parallelogram_error(3, 0, 2, 1) == pytest.approx(0.0)


def test_boundary_edge_other_side_is_missing():
    m = _square()
    boundary = next(ei for ei in m.faces[0].ei if m.edges[ei].fi[1] == -1)
    assert m.vi_on_other_side(0, boundary) == -1
    assert m.edge_parallelogram_error(boundary) == 0.0


def test_apply_flip_keeps_mesh_consistent():
    m = _square()
    ei = _shared_edge(m)
    before = sorted(m.edges[ei].vi)
    m.apply_flip(ei)
    assert sorted(m.edges[ei].vi) == [1, 3]
    assert m.sanity_check()
    assert m.sanity_check_valencies() == 0
    m.apply_flip(ei)
    assert sorted(m.edges[ei].vi) == before
    assert m.sanity_check()


def test_apply_flip_on_boundary_raises():
    m = _square()
    boundary = next(i for i, e in enumerate(m.edges) if e.fi[1] == -1)
    with pytest.raises(ValueError):
        m.apply_flip(boundary)


def test_can_flip_rules():
    m = _square()
    assert not any(m.can_flip(i) for i in range(len(m.edges)))
    lat = _lattice()
    flippable = [i for i in range(len(lat.edges)) if lat.can_flip(i)]
    assert flippable
    for i in flippable:
        e = lat.edges[i]
        assert -1 not in e.fi
        assert lat.verts[e[0]].val >= 4 and lat.verts[e[1]].val >= 4


def test_best_flip_score_matches_evaluation():
    m = _lattice()
    ei, score = m.best_flip(None)
    assert m.can_flip(ei)
    assert score == m.evaluate_flip(ei, None)
    for i in range(len(m.edges)):
        if m.can_flip(i):
            assert not score < m.evaluate_flip(i, None)


def test_greedy_flips_never_worsens_without_depth():
    m = _lattice()
    before = _irregularity(m)
    m.greedy_flips(0, Grid())
    assert _irregularity(m) <= before
    assert m.sanity_check()
    assert m.sanity_check_valencies() == 0


def test_greedy_flips_with_depth_stays_consistent():
    m = _lattice()
    m.greedy_flips(3, Grid())
    assert m.sanity_check()
    assert sum(v.val for v in m.verts) == 2 * len(m.edges)


def test_flip_as_with_empty_grid_does_nothing():
    m = _lattice(5)
    g = Grid()
    g.create(6, 6)
    g.create_vertices(len(m.verts))
    edges_before = [sorted(e.vi) for e in m.edges]
    assert m.flip_as(g) == 0
    assert [sorted(e.vi) for e in m.edges] == edges_before


def test_dist_from_equilateral():
    m = _hexagon()
    assert m.dist_from_equilateral(m.faces[0]) == pytest.approx(0.0, abs=1e-9)
    flat = Mesh()
    flat.from_points([(1, 1), (1, 1), (1, 1)])
    assert flat.dist_from_equilateral(Face(vi=[0, 1, 2])) == 1.0


def test_update_average_edge_hexagon():
    m = _hexagon()
    m.update_average_edge()
    assert m.avg_edge == pytest.approx(1.0)


def test_dont_care_about_boundaries():
    m = _hexagon()
    m.dont_care_about_boundaries()
    assert not m.verts[0].dontcare
    assert all(v.dontcare for v in m.verts[1:])
    m.propagate_dontcare_v2f()
    assert all(f.dontcare for f in m.faces)
    m.propagate_dontcare_f2v()
    assert all(v.dontcare for v in m.verts)


def test_propagate_fixed_f2e():
    m = _hexagon()
    m.faces[0].fixed = True
    m.propagate_fixed_f2e()
    fixed = {i for i, e in enumerate(m.edges) if e.fixed}
    assert fixed == set(m.faces[0].ei)


def test_set_distance_to_irr_is_graph_distance():
    m = _lattice()
    m.set_distance_to_irr()
    for e in m.edges:
        assert abs(m.verts[e[0]].dist_to_irr - m.verts[e[1]].dist_to_irr) <= 1
    for i in m.irregulars:
        assert m.verts[i].dist_to_irr == 0
    best = m.best_face()
    appeal = sum(m.verts[v].dist_to_irr for v in m.faces[best].vi)
    assert all(sum(m.verts[v].dist_to_irr for v in f.vi) <= appeal for f in m.faces)


def test_best_face_without_faces_raises():
    with pytest.raises(ValueError):
        Mesh().best_face()


def test_remove_duplicates():
    m = Mesh()
    m.from_points([(0, 0), (1, 2), (0, 0), (3, 1)])
    assert m.remove_duplicates() == 1
    assert {(v.p.x, v.p.y) for v in m.verts} == {(0, 0), (1, 2), (3, 1)}
    assert m.remove_duplicates() == 0


def test_smooth_disputed_keeps_constant_field():
    m = _hexagon()
    for v in m.verts:
        v.disputed = 0.25
    m.smooth_disputed()
    assert all(v.disputed == pytest.approx(0.25) for v in m.verts)


def test_update_valence_tracks_irregulars():
    m = _square()
    m.verts[0].val = 5
    m.irregulars.add(0)
    m.update_valence(0, +1)
    assert m.verts[0].val == 6
    assert 0 not in m.irregulars


def test_delta_eng_not_positive():
    m = _hexagon()
    assert m.delta_eng(1, 0, 1) <= 0
    assert m.delta_eng(1, 0, 0) == 0


def test_from_points_appends():
    m = Mesh()
    m.from_points([(1.5, 2.5, 0.0)])
    m.from_points([(3.0, 4.0)])
    assert [v.p for v in m.verts] == [Vec2(1.5, 2.5), Vec2(3.0, 4.0)]