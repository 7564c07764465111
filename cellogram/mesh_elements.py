"""Elements of the connectivity mesh: faces, edges, vertices and flip scores."""

from __future__ import annotations

from dataclasses import dataclass, field

from .geometry import Vec2


@dataclass
class Face:
    """A triangle: three vertex indices and the three edges opposite their corners.

    Edge ``ei[w]`` joins ``vi[w]`` and ``vi[(w + 1) % 3]``.
    """

    vi: list[int] = field(default_factory=lambda: [-1, -1, -1])
    ei: list[int] = field(default_factory=lambda: [-1, -1, -1])
    fixed: bool = False
    dontcare: bool = False

    def __getitem__(self, w: int) -> int:
        return self.vi[w]

    def __setitem__(self, w: int, value: int) -> None:
        self.vi[w] = value

    def has(self, ei: int) -> bool:
        """Whether edge ``ei`` is one of the face's edges."""
        return ei in self.ei

    def corner_of_edge(self, ei: int) -> int:
        """Corner slot (0..2) at which edge ``ei`` is stored."""
        try:
            return self.ei.index(ei)
        except ValueError:
            raise ValueError(f"edge {ei} is not on this face") from None

    def corner_of_vert(self, vi: int) -> int:
        """Corner slot (0..2) of vertex ``vi``."""
        try:
            return self.vi.index(vi)
        except ValueError:
            raise ValueError(f"vertex {vi} is not on this face") from None

    def opposite_vert_of_edge(self, ei: int) -> int:
        """The vertex of the face that does not lie on edge ``ei``."""
        w = self.corner_of_edge(ei)
        return self.vi[(w + 2) % 3]


class Edge:
    """An edge between two vertices, shared by at most two faces.

    On creation the larger vertex index is stored first; a missing face is -1.
    """

    __slots__ = ("vi", "fi", "fixed")

    def __init__(self, a: int, b: int) -> None:
        self.vi = [max(a, b), min(a, b)]
        self.fi = [-1, -1]
        self.fixed = False

    def __getitem__(self, i: int) -> int:
        return self.vi[i]

    def __setitem__(self, i: int, value: int) -> None:
        self.vi[i] = value

    def __lt__(self, other: Edge) -> bool:
        return self.key() < other.key()

    def __repr__(self) -> str:
        return f"Edge(vi={self.vi}, fi={self.fi}, fixed={self.fixed})"

    def key(self) -> tuple[int, int]:
        """Hashable identity of the edge from its vertex pair."""
        return (self.vi[0], self.vi[1])

    def substitute(self, fa: int, fb: int) -> None:
        """Replace adjacent face ``fa`` with ``fb``."""
        if self.fi[0] == fa:
            self.fi[0] = fb
        elif self.fi[1] == fa:
            self.fi[1] = fb
        else:
            raise ValueError(f"face {fa} is not adjacent to this edge")

    def has(self, fi: int) -> bool:
        """Whether face ``fi`` is adjacent to the edge."""
        return fi in self.fi


@dataclass
class Vert:
    """A mesh vertex with the bookkeeping used during untangling."""

    p: Vec2 = Vec2()
    val: int = 0
    dontcare: bool = False
    dist_to_irr: int = 0
    time_reached: float = 0.0
    disputed: float = 0.0

    def price(self) -> float:
        """How costly an irregular valence is at this vertex."""
        return 1.0


@dataclass(frozen=True, order=True)
class FlipScore:
    """Benefit of an edge flip: valence reduction first, then length reduction."""

    val_reduction: float = 0.0
    len_reduction: float = 0.0

    def __add__(self, other: FlipScore) -> FlipScore:
        return FlipScore(
            self.val_reduction + other.val_reduction,
            self.len_reduction + other.len_reduction,
        )

    def is_pos(self) -> bool:
        """Whether doing the flip is an improvement."""
        if self.val_reduction > 0:
            return True
        if self.val_reduction < 0:
            return False
        return self.len_reduction > 0.0002

    @staticmethod
    def zero() -> FlipScore:
        """A flip that has no effect."""
        return FlipScore(0.0, 0.0)