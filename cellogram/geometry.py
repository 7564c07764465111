"""Small 2D vector/matrix types and exact-sign geometric predicates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np
from scipy.spatial import Delaunay, QhullError

SIN_60 = 0.86602540378
COS_60 = 0.5


@dataclass(frozen=True, slots=True)
class Vec2:
    """An immutable 2D vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __neg__(self) -> Vec2:
        return Vec2(-self.x, -self.y)

    def __mul__(self, factor: float) -> Vec2:
        return Vec2(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __truediv__(self, factor: float) -> Vec2:
        return Vec2(self.x / factor, self.y / factor)

    def __lt__(self, other: Vec2) -> bool:
        return (self.x, self.y) < (other.x, other.y)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y

    def __getitem__(self, index: int) -> float:
        return (self.x, self.y)[index]

    def __len__(self) -> int:
        return 2

    def norm(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.x * self.x + self.y * self.y)

    def normalized(self) -> Vec2:
        """Unit vector in the same direction; the zero vector stays zero."""
        n = self.norm()
        if n == 0:
            return self
        return Vec2(self.x / n, self.y / n)


def squared_distance(a: Vec2, b: Vec2) -> float:
    return (a.x - b.x) ** 2 + (a.y - b.y) ** 2


def distance(a: Vec2, b: Vec2) -> float:
    return math.sqrt(squared_distance(a, b))


def cross(a: Vec2, b: Vec2) -> float:
    return a.x * b.y - a.y * b.x


def dot(a: Vec2, b: Vec2) -> float:
    return a.x * b.x + a.y * b.y


def rotate_by_60(a: Vec2) -> Vec2:
    """Rotate a vector counter-clockwise by 60 degrees."""
    return Vec2(a.x * COS_60 - a.y * SIN_60, a.x * SIN_60 + a.y * COS_60)


@dataclass(frozen=True, slots=True)
class Mat2:
    """An immutable 2x2 matrix stored by columns ``x`` and ``y``."""

    x: Vec2 = Vec2()
    y: Vec2 = Vec2()

    @classmethod
    def diagonal(cls, value: float) -> Mat2:
        return cls(Vec2(value, 0.0), Vec2(0.0, value))

    def __add__(self, other: Mat2) -> Mat2:
        return Mat2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Mat2) -> Mat2:
        return Mat2(self.x - other.x, self.y - other.y)

    def __truediv__(self, factor: float) -> Mat2:
        return Mat2(self.x / factor, self.y / factor)

    def __mul__(self, other):
        if isinstance(other, Mat2):
            t = self.transposed()
            return Mat2(
                Vec2(dot(t.x, other.x), dot(t.y, other.x)),
                Vec2(dot(t.x, other.y), dot(t.y, other.y)),
            )
        if isinstance(other, Vec2):
            return self.x * other.x + self.y * other.y
        return Mat2(self.x * other, self.y * other)

    def __rmul__(self, factor: float) -> Mat2:
        return Mat2(self.x * factor, self.y * factor)

    def det(self) -> float:
        return cross(self.x, self.y)

    def transposed(self) -> Mat2:
        return Mat2(Vec2(self.x.x, self.y.x), Vec2(self.x.y, self.y.y))

    def inverse(self) -> Mat2:
        """Matrix inverse; raises ZeroDivisionError when singular."""
        adj = Mat2(Vec2(self.y.y, -self.x.y), Vec2(-self.y.x, self.x.x))
        return adj / self.det()

    def squared_norm(self) -> float:
        return self.x.x ** 2 + self.x.y ** 2 + self.y.x ** 2 + self.y.y ** 2


def _sign(value: float) -> int:
    if value < 0:
        return -1
    if value > 0:
        return 1
    return 0


def orient2d(a: Sequence[float], b: Sequence[float], c: Sequence[float]) -> int:
    """+1 if a, b, c turn counter-clockwise, -1 if clockwise, 0 if collinear."""
    acx, acy = a[0] - c[0], a[1] - c[1]
    cbx, cby = c[0] - b[0], c[1] - b[1]
    return _sign(cbx * acy - cby * acx)


def incircle(
    a: Sequence[float], b: Sequence[float], c: Sequence[float], d: Sequence[float]
) -> int:
    """For a counter-clockwise triangle abc: +1 if d lies inside its circumcircle,
    -1 if outside, 0 if on it."""
    bax, bay = b[0] - a[0], b[1] - a[1]
    acx, acy = a[0] - c[0], a[1] - c[1]
    cbx, cby = c[0] - b[0], c[1] - b[1]
    bdx, bdy = b[0] - d[0], b[1] - d[1]
    adx, ady = a[0] - d[0], a[1] - d[1]

    txx = bax * cbx
    tyy = bay * cby
    txy = bax * cby
    tyx = bay * cbx
    k = tyx - txy

    return _sign(
        (tyy * acy + tyx * acx - k * bdx) * k * adx
        - (txx * acx + txy * acy + k * bdy) * k * ady
    )


def delaunay_triangulation(points) -> np.ndarray:
    """Delaunay triangles of 2D points as an (n, 3) int array, each counter-clockwise.

    Degenerate inputs (fewer than three points, or all collinear) give no triangles.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    empty = np.empty((0, 3), dtype=int)
    if len(pts) < 3:
        return empty
    try:
        tri = Delaunay(pts)
    except (QhullError, ValueError):
        return empty
    faces = np.asarray(tri.simplices, dtype=int).copy()
    a, b, c = pts[faces[:, 0]], pts[faces[:, 1]], pts[faces[:, 2]]
    ac = a - c
    cb = c - b
    orient = cb[:, 0] * ac[:, 1] - cb[:, 1] * ac[:, 0]
    clockwise = orient < 0
    faces[clockwise, 1], faces[clockwise, 2] = (
        faces[clockwise, 2].copy(),
        faces[clockwise, 1].copy(),
    )
    return faces