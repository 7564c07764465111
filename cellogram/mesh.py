"""Triangle connectivity mesh over detected points, improved by edge flips."""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field

from .geometry import Vec2, delaunay_triangulation, distance, squared_distance
from .grid import Grid
from .mesh_elements import Edge, Face, FlipScore, Vert

_log = logging.getLogger(__name__)

_MAX_POSITIVE_FLIPS = 1100
_WARN_POSITIVE_FLIPS = 1001


@dataclass
class _Snapshot:
    faces: list[Face] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    score: FlipScore = FlipScore()


class Mesh:
    """Vertices, edges and faces of a triangulation, with valence bookkeeping."""

    def __init__(self) -> None:
        self.verts: list[Vert] = []
        self.edges: list[Edge] = []
        self.faces: list[Face] = []
        self.verbose = False
        self.avg_edge = 0.0
        self.irregulars: set[int] = set()
        self.n_val = 0
        self.best_ever = _Snapshot()
        self.forbidden: list[int] = []
        self.last_move = FlipScore()

    def _info(self, message: str) -> None:
        if self.verbose:
            _log.info(message)

    # ---------------------------------------------------------------- input

    def from_points(self, points) -> None:
        """Append one vertex per row of ``points`` (x, y, ...)."""
        for row in points:
            self.verts.append(Vert(p=Vec2(float(row[0]), float(row[1]))))

    def remove_duplicates(self) -> int:
        """Drop vertices at identical positions; returns how many were removed."""
        unique = sorted({(v.p.x, v.p.y) for v in self.verts})
        removed = len(self.verts) - len(unique)
        if removed:
            self._info(f"Removing {removed} duplicate vertices!")
            self.verts = [Vert(p=Vec2(x, y)) for x, y in unique]
        return removed

    def init_with_delaunay(self) -> None:
        """Triangulate the vertices and rebuild edges and valences."""
        points = [(v.p.x, v.p.y) for v in self.verts]
        tris = delaunay_triangulation(points)
        self.faces = [Face(vi=[int(a), int(b), int(c)]) for a, b, c in tris]
        self.build_edges_from_faces()
        self.update_valencies()
        self._info(f"Delaunay done ({self.n_val} irregulars)")

    # ----------------------------------------------------------- per-vertex

    def smooth_disputed(self) -> None:
        """Replace each vertex's dispute value by the mean over its face neighbours."""
        old = [v.disputed for v in self.verts]
        div = [0] * len(self.verts)
        for v in self.verts:
            v.disputed = 0.0
        for f in self.faces:
            a, b, c = f.vi
            self.verts[a].disputed += old[b] + old[c]
            self.verts[b].disputed += old[a] + old[c]
            self.verts[c].disputed += old[a] + old[b]
            div[a] += 2
            div[b] += 2
            div[c] += 2
        for v, d in zip(self.verts, div):
            if d:
                v.disputed /= d

    def best_face(self) -> int:
        """Face whose corners lie farthest from irregular vertices."""
        best = -1000000.0
        res = -1
        for i, f in enumerate(self.faces):
            appeal = sum(self.verts[v].dist_to_irr for v in f.vi)
            if appeal > best:
                best = appeal
                res = i
        if res == -1:
            raise ValueError("Cannot find face!")
        return res

    def set_distance_to_irr(self) -> None:
        """Hop distance of every vertex from the nearest irregular or badly shaped spot."""
        for v in self.verts:
            v.dist_to_irr = 0 if (v.val != 6 or v.dontcare) else 1000
        for f in self.faces:
            if self.dist_from_equilateral(f) > 0.3:
                for w in f.vi:
                    self.verts[w].dist_to_irr = 0
        over = False
        while not over:
            over = True
            for e in self.edges:
                a, b = self.verts[e[0]], self.verts[e[1]]
                min_dist = min(a.dist_to_irr, b.dist_to_irr) + 1
                if a.dist_to_irr > min_dist:
                    a.dist_to_irr = min_dist
                    over = False
                if b.dist_to_irr > min_dist:
                    b.dist_to_irr = min_dist
                    over = False

    def update_average_edge(self) -> None:
        """Mean length of edges whose ends are both cared about (NaN if none)."""
        lengths = [
            distance(self.verts[e[0]].p, self.verts[e[1]].p)
            for e in self.edges
            if not self.verts[e[0]].dontcare and not self.verts[e[1]].dontcare
        ]
        self.avg_edge = sum(lengths) / len(lengths) if lengths else math.nan

    # ------------------------------------------------------- parallelograms

    def parallelogram_rule(self, fi: int, ei: int) -> Vec2:
        """Position that completes face ``fi`` to a parallelogram across edge ``ei``."""
        f = self.faces[fi]
        w = f.corner_of_edge(ei)
        p0 = self.verts[f.vi[w]].p
        p1 = self.verts[f.vi[(w + 1) % 3]].p
        p2 = self.verts[f.vi[(w + 2) % 3]].p
        return p1 + p0 - p2

    def edge_parallelogram_error(self, ei: int) -> float:
        """How far the two faces at edge ``ei`` are from forming a parallelogram."""
        e = self.edges[ei]
        if e.fi[0] == -1 or e.fi[1] == -1:
            return 0.0
        fi = self.faces[e.fi[0]]
        fj = self.faces[e.fi[1]]
        pi = self.verts[fi.vi[(fi.corner_of_edge(ei) + 2) % 3]].p
        pj = self.verts[fj.vi[(fj.corner_of_edge(ei) + 2) % 3]].p
        pa = self.verts[e.vi[0]].p
        pb = self.verts[e.vi[1]].p
        return squared_distance(pi, pa + pb - pj)

    def parallelogram_error(self, vi: int, va: int, vb: int, vj: int) -> float:
        """Squared distance of ``vi`` from ``va + vb - vj``; huge if ``vj`` is -1."""
        if vj == -1:
            return 9e9
        pi = self.verts[vi].p
        pa = self.verts[va].p
        pb = self.verts[vb].p
        pj = self.verts[vj].p
        return squared_distance(pi, pa + pb - pj)

    def vi_on_other_side(self, fa: int, ei: int) -> int:
        """Vertex across edge ``ei`` from face ``fa``, or -1 on the boundary."""
        wa = self.faces[fa].corner_of_edge(ei)
        e = self.edges[self.faces[fa].ei[wa]]
        fb = e.fi[1] if e.fi[0] == fa else e.fi[0]
        if fb == -1:
            return -1
        return self.faces[fb].opposite_vert_of_edge(ei)

    # --------------------------------------------------------- connectivity

    def build_edges_from_faces(self) -> None:
        """Create the edge list and face-edge links from the faces."""
        index: dict[tuple[int, int], int] = {}
        self.edges = []
        for fi, f in enumerate(self.faces):
            for w in range(3):
                edge = Edge(f.vi[w], f.vi[(w + 1) % 3])
                ei = index.get(edge.key())
                if ei is None:
                    ei = len(self.edges)
                    index[edge.key()] = ei
                    self.edges.append(edge)
                f.ei[w] = ei
                e = self.edges[ei]
                if e.fi[0] == -1:
                    e.fi[0] = fi
                elif e.fi[1] == -1:
                    e.fi[1] = fi
                else:
                    raise ValueError(
                        f"EDGE {ei} ({e.vi[0]},{e.vi[1]}) NON MANIFOLD! (face {fi} w{w})"
                    )

    def update_valencies(self) -> None:
        """Recount valences, the set of irregular vertices and total irregularity."""
        for v in self.verts:
            v.val = 0
        for e in self.edges:
            self.verts[e[0]].val += 1
            self.verts[e[1]].val += 1
        self.irregulars = set()
        total = 0
        for i, v in enumerate(self.verts):
            if v.dontcare:
                continue
            irr = v.val - 6
            if irr:
                self.irregulars.add(i)
            total += abs(irr)
        self.n_val = total

    def sanity_check_valencies(self) -> int:
        """Number of vertices whose stored valence disagrees with the edges."""
        counts = [0] * len(self.verts)
        for e in self.edges:
            counts[e[0]] += 1
            counts[e[1]] += 1
        errors = 0
        for count, v in zip(counts, self.verts):
            if count != v.val:
                errors += 1
                self._info(f"VALENCY ERROR: {count}!={v.val}")
        return errors

    def update_valence(self, vi: int, delta: int) -> None:
        """Change one vertex's valence and update the irregular bookkeeping."""
        self.verts[vi].val += delta
        if self.verts[vi].val == 6:
            self.n_val -= 1
            self.irregulars.discard(vi)
        else:
            self.n_val += 1
            self.irregulars.add(vi)

    def dont_care_about_boundaries(self) -> None:
        """Mark the vertices of boundary edges as not cared about."""
        for v in self.verts:
            v.dontcare = False
        for e in self.edges:
            if e.fi[1] == -1:
                self.verts[e.vi[0]].dontcare = True
                self.verts[e.vi[1]].dontcare = True

    def propagate_dontcare_v2f(self) -> None:
        for f in self.faces:
            f.dontcare = any(self.verts[v].dontcare for v in f.vi)

    def propagate_fixed_f2e(self) -> None:
        for e in self.edges:
            e.fixed = False
        for f in self.faces:
            if f.fixed:
                for ei in f.ei:
                    self.edges[ei].fixed = True

    def propagate_dontcare_f2v(self) -> None:
        for v in self.verts:
            v.dontcare = False
        for f in self.faces:
            if f.dontcare:
                for v in f.vi:
                    self.verts[v].dontcare = True

    def sanity_check(self) -> bool:
        """Check face-edge-vertex consistency; raises ValueError on a mismatch."""
        for fi, f in enumerate(self.faces):
            for w in range(3):
                ei = f.ei[w]
                if not 0 <= ei < len(self.edges):
                    raise ValueError(f"face {fi} has bad edge index {ei}")
                v0, v1 = f.vi[w], f.vi[(w + 1) % 3]
                if v0 == v1:
                    raise ValueError(f"face {fi} repeats vertex {v0}")
                if sorted(self.edges[ei].vi) != sorted((v0, v1)):
                    raise ValueError(f"face {fi} edge {ei} has wrong vertices")
        for ei, e in enumerate(self.edges):
            for s, fi in enumerate(e.fi):
                if s == 1 and fi == -1:
                    continue
                if not 0 <= fi < len(self.faces):
                    raise ValueError(f"edge {ei} has bad face index {fi}")
                if e.vi[0] == e.vi[1]:
                    raise ValueError(f"edge {ei} repeats vertex {e.vi[0]}")
                f = self.faces[fi]
                if e.vi[0] not in f.vi or e.vi[1] not in f.vi:
                    raise ValueError(f"edge {ei} is not on face {fi}")
        return True

    # ---------------------------------------------------------------- flips

    def _opposite_corners(self, ei: int) -> tuple[int, int, int, int]:
        e = self.edges[ei]
        v0, v1 = e[0], e[1]
        fa, fb = e.fi
        va = vb = -1
        for w in self.faces[fa].vi:
            if w != v0 and w != v1:
                va = w
        for w in self.faces[fb].vi:
            if w != v0 and w != v1:
                vb = w
        return v0, v1, va, vb

    def can_flip(self, ei: int) -> bool:
        """Whether edge ``ei`` is interior, between vertices of valence >= 4."""
        e = self.edges[ei]
        if e.fi[0] == -1 or e.fi[1] == -1:
            return False
        if self.verts[e[0]].val < 4 or self.verts[e[1]].val < 4:
            return False
        _, _, va, vb = self._opposite_corners(ei)
        return va != vb

    def delta_eng(self, v0: int, v1: int, delta: int) -> float:
        """How much ``v1`` raising its valence by ``delta`` is affected by ``v0``."""
        val1 = self.verts[v1].val - 6 - delta
        d = distance(self.verts[v0].p, self.verts[v1].p)
        return -abs(val1) / (1 + d * d)

    def dist_from_equilateral(self, face: Face) -> float:
        """0 for an equilateral triangle, towards 1 for a flat one."""
        p0, p1, p2 = (self.verts[v].p for v in face.vi)
        a0 = (p0 - p1).norm()
        a1 = (p1 - p2).norm()
        a2 = (p1 - p2).norm()
        a0, a1, a2 = sorted((a0, a1, a2))
        if a2 == 0:
            return 1.0
        return (a2 - a0) / a2

    def evaluate_flip(self, ei: int, grid: Grid | None) -> FlipScore:
        """Valence and alignment gain of flipping edge ``ei``."""
        v0, v1, va, vb = self._opposite_corners(ei)
        if va == vb:
            raise ValueError(f"edge {ei} cannot be flipped: both sides share a vertex")
        verts = self.verts
        val_reduction = 0.0
        val_reduction += verts[v0].price() if verts[v0].val > 6 else -verts[v0].price()
        val_reduction += verts[v1].price() if verts[v1].val > 6 else -verts[v1].price()
        val_reduction += verts[va].price() if verts[va].val < 6 else -verts[va].price()
        val_reduction += verts[vb].price() if verts[vb].val < 6 else -verts[vb].price()
        mis_reduction = 0.0
        if grid is not None and grid.vert:
            mis_reduction = grid.misalignment_optimist(v0, v1) - grid.misalignment_optimist(
                va, vb
            )
        return FlipScore(val_reduction, mis_reduction)

    def best_flip(self, grid: Grid | None) -> tuple[int, FlipScore]:
        """The best allowed flip and its score; index -1 when none is possible."""
        winner = -1
        best = FlipScore(-999.0, 0.0)
        for ei in range(len(self.edges)):
            if not self.can_flip(ei):
                continue
            score = self.evaluate_flip(ei, grid)
            if ei in self.forbidden:
                continue
            if best < score:
                best = score
                winner = ei
        self.last_move = best
        return winner, best

    def apply_flip(self, ei: int) -> None:
        """Flip interior edge ``ei`` to join the two vertices opposite it."""
        e = self.edges[ei]
        v0, v1 = e[0], e[1]
        fa, fb = e.fi
        if fa == -1 or fb == -1:
            raise ValueError(f"edge {ei} is on the boundary")
        face_a, face_b = self.faces[fa], self.faces[fb]
        wa = next((w for w in range(3) if face_a[w] not in (v0, v1)), -1)
        wb = next((w for w in range(3) if face_b[w] not in (v0, v1)), -1)
        if wa == -1 or wb == -1:
            raise ValueError(f"edge {ei} is not consistent with its faces")
        va, vb = face_a[wa], face_b[wb]
        if va == vb:
            raise ValueError(f"edge {ei} is non manifold: both sides share a vertex")

        e[0] = vb
        e[1] = va

        face_a.vi[(wa + 1) % 3] = vb
        face_b.vi[(wb + 1) % 3] = va

        self.edges[face_a.ei[wa]].substitute(fa, fb)
        self.edges[face_b.ei[wb]].substitute(fb, fa)

        face_a.ei[(wa + 1) % 3] = face_b.ei[wb]
        face_b.ei[(wb + 1) % 3] = face_a.ei[wa]
        face_a.ei[wa] = ei
        face_b.ei[wb] = ei

        self.update_valence(va, +1)
        self.update_valence(vb, +1)
        self.update_valence(v0, -1)
        self.update_valence(v1, -1)

    def flip_as(self, grid: Grid) -> int:
        """Flip edges until mesh adjacency agrees with the grid; returns the flip count."""
        self._info("Flipping to match grid...")
        total = 0
        while True:
            done = 0
            for ei in range(len(self.edges)):
                if not self.can_flip(ei):
                    continue
                v0, v1, va, vb = self._opposite_corners(ei)
                if not grid.are_adjacent(v0, v1) and grid.are_adjacent(va, vb):
                    self.apply_flip(ei)
                    done += 1
            if not done:
                break
            total += done
        self._info(f"{total} flips done!")
        return total

    def _snapshot(self, score: FlipScore) -> None:
        self.best_ever = _Snapshot(
            copy.deepcopy(self.faces), copy.deepcopy(self.edges), score
        )

    def greedy_flips(self, how_deep: int, grid: Grid | None) -> int:
        """Flip greedily to regularise valences, allowing up to ``how_deep`` bad moves.

        Returns the number of improving flips made.
        """
        self._info("Greedy mesh regularization by FLIPS...")
        self.update_valencies()
        total = FlipScore()
        self._snapshot(total)
        patience = 0
        ndone = 0
        while True:
            ei, score = self.best_flip(grid)
            if ei == -1:
                break
            if score.is_pos():
                self.apply_flip(ei)
                total = total + score
                ndone += 1
                if ndone > _WARN_POSITIVE_FLIPS:
                    self._info(
                        f"ERROR infinite loop in greedy swaps! {ei} score move: "
                        f"{score.val_reduction},{score.len_reduction}"
                    )
                    if ndone > _MAX_POSITIVE_FLIPS:
                        break
            elif how_deep > 0:
                if self.best_ever.score < total:
                    self._snapshot(total)
                    patience = 0
                    self.forbidden.clear()
                patience += 1
                if patience > how_deep:
                    total = self.best_ever.score
                    self.faces = copy.deepcopy(self.best_ever.faces)
                    self.edges = copy.deepcopy(self.best_ever.edges)
                    self.update_valencies()
                    break
                self.apply_flip(ei)
                self.forbidden.append(ei)
                total = total + score
            else:
                break
        self._info(f"{ndone} flips done!")
        return ndone