"""Reading and writing grids: XYZ point lists, OBJ and PLY meshes, plain arrays."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import numpy as np

from .geometry import Vec2
from .grid import Grid

_log = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    return f"{value:g}"


def _ply_header(n_vertices: int, n_faces: int) -> str:
    return (
        "ply\n"
        "format ascii 1.0\n"
        f"element vertex {n_vertices}\n"
        "property float x\n"
        "property float y\n"
        "property float z\n"
        "property uchar red\n"
        "property uchar green\n"
        "property uchar blue\n"
        "property uchar alpha\n"
        f"element face {n_faces}\n"
        "property list uchar int vertex_indices\n"
        "end_header\n"
    )


def _triangles(grid: Grid) -> Iterator[tuple[int, int, int]]:
    """Fully occupied grid triangles as (i, j, k) in the grid's own corner order."""
    for y in range(grid.sy - 1):
        for x in range(grid.sx - 1):
            a = grid.grid[grid.index_of(x, y)]
            b = grid.grid[grid.index_of(x, y + 1)]
            c = grid.grid[grid.index_of(x + 1, y + 1)]
            d = grid.grid[grid.index_of(x + 1, y)]
            if a != -1 and b != -1 and c != -1:
                yield a, b, c
            if c != -1 and d != -1 and a != -1:
                yield c, d, a


def _desired(grid: Grid, vi: int) -> int:
    return grid.vdesired[vi] if vi < len(grid.vdesired) else -1


def _made_up(grid: Grid, vi: int) -> bool:
    return vi < len(grid.made_up_vert) and grid.made_up_vert[vi]


def _marker_points(p: Vec2, size: float) -> list[Vec2]:
    return [
        Vec2(p.x, p.y - size),
        Vec2(p.x + size, p.y),
        Vec2(p.x, p.y + size),
        Vec2(p.x - size, p.y),
    ]


def _marker_faces(first: int, vi: int) -> list[str]:
    aa, bb, cc, dd = first, first + 1, first + 2, first + 3
    return [
        f"3 {aa} {bb} {vi}\n",
        f"3 {bb} {cc} {vi}\n",
        f"3 {cc} {dd} {vi}\n",
        f"3 {dd} {aa} {vi}\n",
    ]


def tartan_color(gi: int, sx: int) -> tuple[int, int, int]:
    """Striped colour of grid cell ``gi`` that makes the three lattice directions visible."""
    x = gi % sx
    y = gi // sx
    i = x % 4
    j = y % 4
    k = (400000 + x - y) % 4
    r = g = b = 255
    if i // 2 % 2 == 0:
        r -= 10
        g -= 80
        b -= 80
    if j // 2 % 2 == 0:
        r -= 80
        g -= 20
        b -= 80
    if k // 2 % 2 == 0:
        r -= 80
        g -= 70
        b -= 10
    return r, g, b


def import_xyz(grid: Grid, path) -> int:
    """Load points from a file holding a count and then ``x y 0`` per point.

    Returns the number of points read; raises ValueError on a malformed file.
    """
    grid.clear()
    tokens = Path(path).read_text().split()
    if not tokens:
        raise ValueError(f"{path}: empty file")
    n = int(tokens[0])
    values = tokens[1:]
    if len(values) < 3 * n:
        raise ValueError(f"{path}: expected {n} points")
    vert = []
    for i in range(n):
        x, y, z = (float(t) for t in values[3 * i : 3 * i + 3])
        if z != 0:
            raise ValueError(f"{path}: point {i} has non-zero z")
        vert.append(Vec2(x, y))
    grid.vert = vert
    grid.pos_in_grid = []
    grid.vdesired = []
    grid.create_vertices(n)
    if grid.verbose:
        _log.info("Done reading %d verts", n)
    return n


def export_obj(grid: Grid, path) -> Path:
    """Write the grid's triangles as a Wavefront OBJ file."""
    target = Path(path)
    if grid.verbose:
        _log.info("--> Exporting GRID: %s", target)
    lines = [f"v {_fmt(v.x)} {_fmt(v.y)} 0\n" for v in grid.vert]
    faces = [f"f {j + 1} {i + 1} {k + 1}\n" for i, j, k in _triangles(grid)]
    target.write_text("".join(lines + faces))
    if grid.verbose:
        _log.info("Done writing OBJ (%d verts, %d faces)", len(grid.vert), len(faces))
    return target


def export_ply(grid: Grid, path) -> Path:
    """Write the grid as coloured PLY to ``path`` + ".ply".

    Unassigned vertices are drawn at their desired cell's vertex and also marked
    by a small diamond at their own position.
    """
    target = Path(f"{path}.ply")
    if grid.verbose:
        _log.info("--> Exporting GRID: %s", target)
    unassigned = [vi for vi in range(len(grid.vert)) if grid.pos_in_grid[vi] == -1]
    faces = [f"3 {i} {k} {j}\n" for i, j, k in _triangles(grid)]

    vertex_lines = []
    for vi, p in enumerate(grid.vert):
        r, g, b = 205, 255, 205
        x, y = p.x, p.y
        if grid.pos_in_grid[vi] == -1:
            g //= 2
            b //= 2
            vd = _desired(grid, vi)
            if vd != -1:
                vj = grid.grid[vd]
                if vj != -1:
                    x, y = grid.vert[vj].x, grid.vert[vj].y
        elif _made_up(grid, vi):
            r //= 4
            b //= 4
            g = 200
        vertex_lines.append(f"{_fmt(x)} {_fmt(y)} 0 {r} {g} {b}  255\n")

    size = grid.edge_len / 5
    first = len(grid.vert)
    for vi in unassigned:
        for q in _marker_points(grid.vert[vi], size):
            vertex_lines.append(f"{_fmt(q.x)} {_fmt(q.y)} 0.2 255 117 117  255\n")
        faces.extend(_marker_faces(first, vi))
        first += 4

    target.write_text(_ply_header(len(vertex_lines), len(faces)) + "".join(vertex_lines + faces))
    return target


def export_ply_tartan(grid: Grid, path) -> Path:
    """Write the grid as PLY coloured by lattice position (tartan pattern)."""
    target = Path(path)
    waiting = [
        vi
        for vi in range(len(grid.pos_in_grid))
        if grid.pos_in_grid[vi] == -1 and _desired(grid, vi) != -1
    ]
    faces = [f"3 {i} {k} {j}\n" for i, j, k in _triangles(grid)]

    vertex_lines = []
    for vi, p in enumerate(grid.vert):
        gi = grid.pos_in_grid[vi]
        r, g, b = (0, 0, 0) if gi == -1 else tartan_color(gi, grid.sx)
        vertex_lines.append(f"{_fmt(p.x)} {_fmt(p.y)} 0 {r} {g} {b}  255\n")

    size = grid.edge_len / 3
    first = len(grid.vert)
    for vi in waiting:
        for q in _marker_points(grid.vert[vi], size):
            vertex_lines.append(f"{_fmt(q.x)} {_fmt(q.y)} 0.2 255 127 127  255\n")
        faces.extend(_marker_faces(first, vi))
        first += 4

    target.write_text(_ply_header(len(vertex_lines), len(faces)) + "".join(vertex_lines + faces))
    return target


def export_arrays(grid: Grid) -> tuple[np.ndarray, list[int], np.ndarray]:
    """Triangles (n, 3), indices of vertices left off the grid, and made-up points (m, 3)."""
    tris = np.array([(i, k, j) for i, j, k in _triangles(grid)], dtype=int).reshape(-1, 3)
    dropped = [vi for vi in range(len(grid.vert)) if grid.pos_in_grid[vi] == -1]
    new_points = np.array(
        [(p.x, p.y, 0.0) for vi, p in enumerate(grid.vert) if _made_up(grid, vi)],
        dtype=float,
    ).reshape(-1, 3)
    return tris, dropped, new_points