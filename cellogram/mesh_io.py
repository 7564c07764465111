"""Reading and writing meshes: point lists, face files, OBJ and coloured PLY."""

from __future__ import annotations

import enum
import logging
from pathlib import Path

from .geometry import Vec2
from .grid import Grid
from .mesh import Mesh
from .mesh_elements import Face, Vert

_log = logging.getLogger(__name__)


class ColorMode(enum.Enum):
    """How vertices are coloured in a PLY export."""

    BY_VAL = "val"
    BY_FLOOD = "flood"
    BY_DISPUTED = "disputed"


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


def _clamp01(value: float) -> float:
    return max(0.0, min(value, 1.0))


def color_by_valency(val: int) -> tuple[int, int, int]:
    """White for valence 6, bluish above, reddish below."""
    r = g = b = 255
    if val > 6:
        r //= 2
        g //= 2
    if val > 7:
        r //= 2
        g //= 2
    if val < 6:
        b //= 2
        g //= 2
    if val < 5:
        b //= 2
        g //= 2
    return r, g, b


def color_by_floodfill(time_reached: float, disputed: float) -> tuple[int, int, int]:
    """Red-green-blue ramp over the normalised time a vertex was reached."""
    t = time_reached * 2
    rr = 1 - t
    gg = 2 - t if t > 1 else t
    bb = t - 1
    if t == 0:
        rr = gg = bb = 1.0
    if t == 4:
        rr = gg = bb = 0.0
    rr, gg, bb = _clamp01(rr), _clamp01(gg), _clamp01(bb)
    gg *= 1.0 - disputed
    bb *= 1.0 - disputed
    return int(rr * 255), int(gg * 255), int(bb * 255)


def color_by_disputed(disputed: float) -> tuple[int, int, int]:
    """White fading to red as the dispute value grows."""
    gg = 1.0 - disputed * 2
    bb = 1.0 - disputed * 2
    return 255, int(gg * 255), int(bb * 255)


def colormap(d: float) -> tuple[int, int, int]:
    """White-to-red ramp for a misalignment value; green for -1."""
    if d == -1:
        return 0, 200, 0
    d = _clamp01(d * 0.1)
    return 255, int((1 - d) * 255), int((1 - d) * 255)


def _tokens(path) -> list[str]:
    return Path(path).read_text().split()


def _groups(tokens: list[str], size: int) -> list[list[str]]:
    return [tokens[i : i + size] for i in range(0, len(tokens) - size + 1, size)]


def import_fv_fix(mesh: Mesh, fn_v, fn_f, fn_fix) -> None:
    """Load vertices (``x y 0``), faces (three indices) and a fixed flag per face."""
    _log.info("<-- Import Fix from: %s", fn_v)
    verts = []
    for x, y, z in _groups(_tokens(fn_v), 3):
        if float(z) != 0:
            raise ValueError(f"{fn_v}: z not 0")
        verts.append(Vert(p=Vec2(float(x), float(y))))
    mesh.verts = verts

    mesh.faces = [Face(vi=[int(a), int(b), int(c)]) for a, b, c in _groups(_tokens(fn_f), 3)]

    flags = _tokens(fn_fix)
    if len(flags) < len(mesh.faces):
        raise ValueError(f"{fn_fix}: fewer fixed flags than faces")
    for face, flag in zip(mesh.faces, flags):
        face.fixed = int(flag) == 1

    mesh.build_edges_from_faces()
    mesh.propagate_fixed_f2e()
    mesh.update_valencies()
    _log.info("done (%dv/%df)", len(mesh.verts), len(mesh.faces))


def import_xyz(mesh: Mesh, path) -> int:
    """Load points from a file holding a count and then ``x y 0`` per point."""
    _log.info("<-- Import XYZ from %s", path)
    tokens = _tokens(path)
    if not tokens:
        raise ValueError(f"{path}: empty file")
    n = int(tokens[0])
    values = tokens[1:]
    if len(values) < 3 * n:
        raise ValueError(f"{path}: expected {n} points")
    verts = []
    for i, (x, y, z) in enumerate(_groups(values[: 3 * n], 3)):
        if float(z) != 0:
            raise ValueError(f"{path}: point {i} has non-zero z")
        verts.append(Vert(p=Vec2(float(x), float(y))))
    mesh.verts = verts
    return n


def import_xyz_v2(mesh: Mesh, path) -> int:
    """Load points given as ``x y`` pairs."""
    _log.info("<-- Import XYZ from %s", path)
    mesh.verts = [Vert(p=Vec2(float(x), float(y))) for x, y in _groups(_tokens(path), 2)]
    return len(mesh.verts)


def import_xyz_v3(mesh: Mesh, path) -> int:
    """Load points given as ``x y z`` triples, ignoring ``z``."""
    _log.info("<-- Import XYZ from %s", path)
    mesh.verts = [Vert(p=Vec2(float(x), float(y))) for x, y, _ in _groups(_tokens(path), 3)]
    return len(mesh.verts)


def _obj_text(mesh: Mesh) -> str:
    lines = [f"v {_fmt(v.p.x)} {_fmt(v.p.y)} 0\n" for v in mesh.verts]
    lines += [
        f"f {f[0] + 1} {f[1] + 1} {f[2] + 1}\n" for f in mesh.faces if not f.dontcare
    ]
    return "".join(lines)


def export_obj(mesh: Mesh, path) -> Path:
    """Write vertices and cared-about faces as Wavefront OBJ."""
    target = Path(path)
    _log.info("--> Exporting: %s", target)
    target.write_text(_obj_text(mesh))
    return target


def export_off(mesh: Mesh, path) -> Path:
    """Write the mesh; the content is the same OBJ-style listing as ``export_obj``."""
    target = Path(path)
    _log.info("--> Exporting: %s", target)
    target.write_text(_obj_text(mesh))
    return target


def export_ply(mesh: Mesh, path, mode: ColorMode) -> Path:
    """Write the mesh as coloured PLY to ``path`` + ".ply"."""
    target = Path(f"{path}.ply")
    _log.info("--> Exporting: %s", target)
    faces = [f"3 {f[0]} {f[1]} {f[2]}\n" for f in mesh.faces if not f.dontcare]
    vertex_lines = []
    for v in mesh.verts:
        z = 0.0
        if mode is ColorMode.BY_FLOOD:
            r, g, b = color_by_floodfill(v.time_reached, v.disputed)
            z = -v.time_reached * 200
        elif mode is ColorMode.BY_VAL:
            r, g, b = color_by_valency(v.val)
        else:
            r, g, b = color_by_disputed(v.disputed)
        vertex_lines.append(f"{_fmt(v.p.x)} {_fmt(v.p.y)} {_fmt(z)} {r} {g} {b}  255\n")
    target.write_text(_ply_header(len(vertex_lines), len(faces)) + "".join(vertex_lines + faces))
    return target


def export_edges_ply(mesh: Mesh, path, grid: Grid | None = None) -> Path:
    """Write each edge as a degenerate triangle, green unless fixed.

    Without a grid the file goes to ``path``; with one, to ``path`` + ".ply".
    """
    target = Path(f"{path}.ply") if grid is not None else Path(path)
    _log.info("--> Exporting (Edges): %s", target)
    vertex_lines = []
    for e in mesh.edges:
        r, g, b = (255, 255, 255) if e.fixed else (0, 200, 0)
        pa = mesh.verts[e.vi[0]].p
        pb = mesh.verts[e.vi[1]].p
        line_a = f"{_fmt(pa.x)} {_fmt(pa.y)} 0 {r} {g} {b}  255\n"
        vertex_lines += [line_a, line_a, f"{_fmt(pb.x)} {_fmt(pb.y)} 0 {r} {g} {b}  255\n"]
    faces = [f"3 {3 * i} {3 * i + 1} {3 * i + 2}\n" for i in range(len(mesh.edges))]
    target.write_text(_ply_header(len(vertex_lines), len(faces)) + "".join(vertex_lines + faces))
    return target