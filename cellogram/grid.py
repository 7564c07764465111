"""A hexagonal "brick-wall" grid assigning points to lattice positions.

Cell ``(x, y)`` has linear index ``x + y * sx``. Its six neighbours are at
offsets ``-sx-1, -sx, +1, +sx+1, +sx, -1`` (in that order), which in the plane
point along ``(-1/2, +s), (+1/2, +s), (1, 0), (+1/2, -s), (-1/2, -s), (-1, 0)``
with ``s = sin(60)``.
"""

from __future__ import annotations

import logging
import math
from typing import Iterator

from .geometry import COS_60, SIN_60, Mat2, Vec2, distance, squared_distance

_log = logging.getLogger(__name__)

IDEAL_DIRECTIONS = (
    Vec2(-COS_60, +SIN_60),
    Vec2(+COS_60, +SIN_60),
    Vec2(+1.0, 0.0),
    Vec2(+COS_60, -SIN_60),
    Vec2(-COS_60, -SIN_60),
    Vec2(-1.0, 0.0),
)

_UP_TRI = Mat2(Vec2(1.0, 0.0), Vec2(COS_60, SIN_60)).inverse()
_DOWN_TRI = Mat2(Vec2(COS_60, -SIN_60), Vec2(1.0, 0.0)).inverse()


def _resized(values: list, n: int, fill) -> list:
    return values[:n] + [fill] * max(0, n - len(values))


class Grid:
    """Cells of a hexagonal grid, each holding a vertex index or -1."""

    def __init__(self) -> None:
        self.verbose = False
        # per grid cell
        self.grid: list[int] = []
        self.is_external: list[bool] = []
        self.dist_from_border: list[int] = []
        # per vertex
        self.pos_in_grid: list[int] = []
        self.made_up_vert: list[bool] = []
        self.vert: list[Vec2] = []
        self.vdesired: list[int] = []
        self.mat: list[Mat2] = []

        self.sx = 0
        self.sy = 0
        self.edge_len = 1.0
        self.neigh = [0] * 6
        self.safe_gi_min = self.safe_gi_max = 0
        self.safe_gi_min_s2 = self.safe_gi_max_s2 = 0
        self.safe_gi_min_s3 = self.safe_gi_max_s3 = 0

    def _info(self, message: str) -> None:
        if self.verbose:
            _log.info(message)

    # ------------------------------------------------------------------ setup

    def clear(self) -> None:
        self.grid = []
        self.pos_in_grid = []
        self.vdesired = []

    def create(self, sx: int, sy: int) -> None:
        """Make an empty ``sx`` by ``sy`` grid."""
        self.sx = sx
        self.sy = sy
        n = sx * sy
        self.grid = [-1] * n
        self.neigh = [-sx - 1, -sx, 1, sx + 1, sx, -1]
        self.safe_gi_min = sx + 1
        self.safe_gi_max = n - (sx + 1)
        self.safe_gi_min_s2 = (sx + 1) * 2
        self.safe_gi_max_s2 = n - (sx + 1) * 2
        self.safe_gi_min_s3 = (sx + 1) * 3
        self.safe_gi_max_s3 = n - (sx + 1) * 3

    def create_vertices(self, nv: int) -> None:
        """Size the per-vertex data for ``nv`` vertices."""
        self.vert = _resized(self.vert, nv, Vec2())
        self.pos_in_grid = _resized(self.pos_in_grid, nv, -1)
        self.vdesired = _resized(self.vdesired, nv, -1)
        self.made_up_vert = [False] * nv
        self.mat = _resized(self.mat, nv, Mat2())

    def init_indices_on_grid(self, nx: int, ny: int) -> None:
        """Place vertices 0..nx*ny-1 row by row on an axis-aligned patch."""
        k = 0
        for y in range(ny):
            for x in range(nx):
                gi = self.index_of(x + 1 + y // 2, y + 1)
                self.grid[gi] = k
                self.pos_in_grid[k] = gi
                k += 1

    def init_vert_on_grid(self, nx: int, ny: int) -> None:
        """Replace the vertices with an ideal ``nx`` by ``ny`` triangular lattice."""
        row_height = self.edge_len * math.sqrt(3) / 2.0
        self.vert = [
            Vec2((x - (0.5 if y % 2 else 0.0)) * self.edge_len, y * row_height)
            for y in range(ny)
            for x in range(nx)
        ]
        self.pos_in_grid = _resized(self.pos_in_grid, nx * ny, -1)

    def update_pos_in_grid(self) -> None:
        """Rebuild the vertex-to-cell map from the cells."""
        self.pos_in_grid = [-1] * len(self.vert)
        for gi, vi in enumerate(self.grid):
            if vi != -1:
                self.pos_in_grid[vi] = gi

    # ------------------------------------------------------------- addressing

    def index_of(self, x: int, y: int) -> int:
        return x + y * self.sx

    def shift_pos(self, gi: int, direction: int) -> int:
        """Cell next to ``gi`` in one of the six directions 0..5."""
        offsets = {
            0: -self.sx,
            1: 1,
            2: self.sx + 1,
            3: self.sx,
            4: -1,
            5: -self.sx - 1,
        }
        try:
            return gi + offsets[direction]
        except KeyError:
            raise ValueError(f"direction must be 0..5, got {direction}") from None

    def _around(self, gi: int) -> Iterator[int]:
        """Contents of the six cells around ``gi``."""
        return (self.grid[gi + d] for d in self.neigh)

    def _cell(self, gi: int) -> int:
        return self.grid[gi] if 0 <= gi < len(self.grid) else -1

    # ------------------------------------------------------------- assignment

    def assign(self, gi: int, vi: int) -> None:
        if gi != -1:
            self.grid[gi] = vi
        if vi != -1:
            self.pos_in_grid[vi] = gi

    def unassign(self, gi: int) -> None:
        vi = self.grid[gi]
        self.grid[gi] = -1
        if vi != -1:
            self.pos_in_grid[vi] = -1
            self.vdesired[vi] = -1

    def swap_two(self, gi: int, gj: int) -> None:
        """Exchange the contents of two cells."""
        self.grid[gi], self.grid[gj] = self.grid[gj], self.grid[gi]
        if self.grid[gi] != -1:
            self.pos_in_grid[self.grid[gi]] = gi
        if self.grid[gj] != -1:
            self.pos_in_grid[self.grid[gj]] = gj

    # ------------------------------------------------------------ local shape

    def is_boundary(self, gi: int) -> bool:
        return any(j == -1 for j in self._around(gi))

    def bary_around_of_existing(self, gi: int) -> Vec2:
        """Mean position of the assigned neighbours (NaN if there are none)."""
        present = [self.vert[j] for j in self._around(gi) if j != -1]
        if not present:
            return Vec2(math.nan, math.nan)
        total = Vec2()
        for p in present:
            total = total + p
        return total / len(present)

    def bary_around(self, gi: int) -> Vec2:
        """Mean of the six neighbours, a missing one counting as the centre."""
        centre = self.vert[self.grid[gi]]
        total = Vec2()
        for j in self._around(gi):
            total = total + (centre if j == -1 else self.vert[j])
        return total / 6

    def avg_pos(self, gi: int) -> Vec2:
        """Mean position of the assigned neighbours, or the origin if none."""
        present = [self.vert[j] for j in self._around(gi) if j != -1]
        if not present:
            return Vec2(0.0, 0.0)
        total = Vec2()
        for p in present:
            total = total + p
        return total / len(present)

    def friends_around(self, gi: int) -> int:
        return sum(1 for j in self._around(gi) if j >= 0)

    def number_of_adj(self, gi: int) -> int:
        return sum(1 for j in self._around(gi) if j != -1)

    # ----------------------------------------------------------------- energy

    def energy_between(self, vi: int, vj: int) -> float:
        """Squared length of a grid edge; a missing end costs twice edge_len squared."""
        if vi == -1 or vj == -1:
            return self.edge_len * self.edge_len * 2.0
        return squared_distance(self.vert[vi], self.vert[vj])

    def _edge_energy(self, vi: int, vj: int) -> float:
        if vi == -1 or vj == -1:
            return self.edge_len * self.edge_len * 4.0
        return squared_distance(self.vert[vi], self.vert[vj])

    def energy_around(self, gi: int) -> float:
        """Energy of the six grid edges around cell ``gi``."""
        return self.energy_around_if(gi, self.grid[gi])

    def energy_around_if(self, gi: int, vi: int) -> float:
        """Energy around cell ``gi`` if it held vertex ``vi``."""
        return sum(self._edge_energy(vi, j) for j in self._around(gi))

    def energy_total(self) -> float:
        total = 0.0
        for y in range(1, self.sy):
            for x in range(self.sx):
                gi = self.index_of(x, y)
                v = self.grid[gi]
                total += (
                    self.energy_between(v, self._cell(gi - self.sx - 1))
                    + self.energy_between(v, self._cell(gi - self.sx))
                    + self.energy_between(v, self._cell(gi - 1))
                )
        return total

    def triangle_quality(self, vi: int, vj: int, vk: int) -> float:
        """Shape score of a triangle; -10 if any corner is missing."""
        if vi < 0 or vj < 0 or vk < 0:
            return -10.0
        lengths = sorted(
            (
                (self.vert[vi] - self.vert[vj]).norm(),
                (self.vert[vj] - self.vert[vk]).norm(),
                (self.vert[vk] - self.vert[vi]).norm(),
            ),
            reverse=True,
        )
        return 1.0 - (lengths[2] - lengths[0]) / self.edge_len

    def trim_borders(self) -> int:
        """Unassign border vertices that belong to fewer than two triangles."""
        tri = [-self.sx - 1, -self.sx, 1, self.sx + 1, self.sx, -1]
        tri.append(tri[0])
        count = 0
        for gi in range(self.safe_gi_min, self.safe_gi_max):
            if self.grid[gi] == -1:
                continue
            nt = ng = 0
            for n in range(6):
                q = self.triangle_quality(
                    self.grid[gi], self.grid[gi + tri[n]], self.grid[gi + tri[n + 1]]
                )
                if q > 0.95:
                    ng += 1
                if q > -1:
                    nt += 1
                if nt > 2:
                    break
            if nt < 2 and ng < 2:
                self.unassign(gi)
                count += 1
        self._info(f"trimmed {count} verts at boundaries")
        return count

    # ------------------------------------------------------------- alignment

    def misalignment_optimist(self, va: int, vb: int) -> float:
        """Distance of edge va-vb from the closest ideal lattice direction."""
        if va < vb:
            va, vb = vb, va
        if self.pos_in_grid[va] == -1 and self.pos_in_grid[vb] == -1:
            return 0.5
        m = (self.mat[va] + self.mat[vb]) / 2
        edge = self.vert[vb] - self.vert[va]
        return min([1000.0] + [distance(edge, m * ideal) for ideal in IDEAL_DIRECTIONS])

    def are_adjacent(self, va: int, vb: int) -> bool:
        """Whether the (assigned or desired) cells of two vertices touch."""
        ga = self.pos_in_grid[va]
        gb = self.pos_in_grid[vb]
        if ga == -1:
            ga = self.vdesired[va]
        if gb == -1:
            gb = self.vdesired[vb]
        return (gb - ga) in self.neigh

    def misalignment(self, va: int, vb: int) -> float:
        """Deviation of edge va-vb from its grid direction; -1 if not a grid edge."""
        diff = self.pos_in_grid[vb] - self.pos_in_grid[va]
        if diff not in self.neigh:
            return -1.0
        e = IDEAL_DIRECTIONS[self.neigh.index(diff)]
        m = self.mat[va] + self.mat[vb]
        return distance(self.vert[vb] - self.vert[va], (m * e) / 2.0)

    def compute_matrices(self) -> None:
        """Per-vertex linear maps from ideal lattice to the actual positions."""
        nv = len(self.vert)
        div = [0.0] * nv
        self.mat = [Mat2()] * nv

        def set_tri(ga: int, gb: int, gc: int, dest_inv: Mat2) -> None:
            if ga < 0 or gb < 0 or gc < 0:
                return
            va, vb, vc = self.grid[ga], self.grid[gb], self.grid[gc]
            if va < 0 or vb < 0 or vc < 0:
                return
            src = Mat2(self.vert[vb] - self.vert[va], self.vert[vc] - self.vert[va])
            src2dst = src * dest_inv
            for v in (va, vb, vc):
                self.mat[v] = self.mat[v] + src2dst
                div[v] += 1

        for y in range(self.sy - 1):
            for x in range(self.sx - 1):
                gi = self.index_of(x - 1, y - 1)
                gj = self.index_of(x, y - 1)
                gh = self.index_of(x - 1, y)
                gk = self.index_of(x, y)
                set_tri(gi, gk, gj, _DOWN_TRI)
                set_tri(gh, gk, gi, _UP_TRI)

        self.mat = [m / d if d else m for m, d in zip(self.mat, div)]
        self._info("Done computing matrices")

    def smooth_matrices(self, n: int = 1) -> None:
        """Average each vertex's matrix with its grid neighbours, ``n`` times."""
        for _ in range(n):
            self._smooth_matrices_once()

    def _smooth_matrices_once(self) -> None:
        nv = len(self.vert)
        old = list(self.mat)
        self.mat = [Mat2()] * nv
        div = [0.0] * nv
        for vi in range(nv):
            gi = self.pos_in_grid[vi]
            if gi < 0:
                continue
            weight = 0.0 if old[vi].squared_norm() < 0.001 else 1.0
            contribution = old[vi] * weight
            targets = [vi] + [vj for vj in self._around(gi) if vj >= 0]
            for vj in targets:
                self.mat[vj] = self.mat[vj] + contribution
                div[vj] += weight
        self.mat = [m / d if d else m for m, d in zip(self.mat, div)]

    # ------------------------------------------------------------ topology

    def compute_is_external(self) -> None:
        """Flood the empty cells reachable from the grid's first safe cell."""
        self.is_external = [False] * (self.sx * self.sy)
        self.is_external[self.safe_gi_min] = True
        go_on = True
        while go_on:
            go_on = False
            for gi in range(self.safe_gi_min, self.safe_gi_max):
                if self.grid[gi] == -1 and self.is_external[gi]:
                    for d in self.neigh:
                        gj = gi + d
                        if not self.is_external[gj]:
                            go_on = True
                        self.is_external[gj] = True

    def update_dist_from_border(self) -> None:
        """Hop distance of every cell from the nearest empty cell."""
        dist = [0 if v == -1 else 1000 for v in self.grid]
        over = False
        while not over:
            over = True
            for gi in range(self.safe_gi_min, self.safe_gi_max):
                d = dist[gi] + 1
                for n in self.neigh:
                    if dist[gi + n] > d:
                        over = False
                        dist[gi + n] = d
        self.dist_from_border = dist

    def fill_gaps_making_pts_up(self) -> int:
        """Fill empty cells with five or six neighbours with new made-up vertices."""
        count = 0
        for gi in range(self.safe_gi_min, self.safe_gi_max):
            if self.grid[gi] != -1:
                continue
            if self.friends_around(gi) in (5, 6):
                vi = len(self.vert)
                self.vert.append(self.bary_around_of_existing(gi))
                self.pos_in_grid.append(gi)
                self.made_up_vert.append(True)
                self.vdesired.append(-1)
                self.mat.append(Mat2())
                self.grid[gi] = vi
                count += 1
        self._info(f"Filled with {count} made up points")
        return count

    def enlarge_grid(self, dx_min: int, dx_max: int, dy_min: int, dy_max: int) -> None:
        """Grow the grid by the given margins, keeping every assignment."""
        backup = self.grid
        old_sx, old_sy = self.sx, self.sy
        self.create(old_sx + dx_min + dx_max, old_sy + dy_min + dy_max)

        def old_to_new(gi: int) -> int:
            if gi == -1:
                return -1
            return self.index_of(gi % old_sx + dx_min, gi // old_sx + dy_min)

        for i in range(old_sx * old_sy):
            self.grid[old_to_new(i)] = backup[i]
        self.pos_in_grid = [old_to_new(p) for p in self.pos_in_grid]

    def enlarge_to_include(self, gi: int, buffer: int) -> None:
        """Grow the grid so that cell ``gi`` is at least ``buffer`` from each side."""
        x = gi % self.sx
        y = gi // self.sx
        if x < 2:
            self.enlarge_grid(buffer - x, 0, 0, 0)
            x = buffer
        if y < 2:
            self.enlarge_grid(0, 0, buffer - y, 0)
            y = buffer
        if x > self.sx - 3:
            self.enlarge_grid(0, x - (self.sx - buffer - 1), 0, 0)
            x = self.sx - buffer - 1
        if y > self.sy - 3:
            self.enlarge_grid(0, 0, 0, y - (self.sy - buffer - 1))

    def hop_distance(self, gi: int, gj: int) -> int:
        xi, yi = gi % self.sx, gi // self.sx
        xj, yj = gj % self.sx, gj // self.sx
        xjb = xj - (yj - yi)
        return min(abs(xi - xj) + abs(yi - yj), abs(xi - xjb) + abs(yi - yj))

    def hop_distance_v(self, vi: int, vj: int) -> int:
        """Hop distance between the cells of two vertices, or -1 if either has none."""
        gi = self.pos_in_grid[vi]
        gj = self.pos_in_grid[vj]
        if gi == -1:
            gi = self.vdesired[vi]
        if gj == -1:
            gj = self.vdesired[vj]
        if gi == -1 or gj == -1:
            return -1
        return self.hop_distance(gi, gj)

    # -------------------------------------------------------------- checking

    def sanity_check(self) -> None:
        """Raise ValueError if a cell and its vertex disagree."""
        for gi, vi in enumerate(self.grid):
            if vi != -1 and self.pos_in_grid[vi] != gi:
                raise ValueError(f"Wrong at gi:{gi} vi:{vi}")

    def format_grid(self) -> str:
        """Text picture of the grid, followed by its total energy."""
        lines = []
        k = 0
        for y in range(self.sy):
            cells = []
            for _ in range(self.sx):
                v = self.grid[k]
                cells.append("*** " if v == -1 else f"{v:03d} ")
                k += 1
            lines.append("  " * (self.sy - y - 1) + "".join(cells))
        lines.append(f"Eng = {self.energy_total():g}")
        return "\n".join(lines) + "\n"