"""Greedy local swaps of grid cell contents that lower the lattice energy."""

from __future__ import annotations

import logging
from itertools import permutations
from typing import Sequence

from .grid import Grid

_log = logging.getLogger(__name__)

_MIN_GAIN = 0.00001


def _rotate(grid: Grid, cells: Sequence[int]) -> None:
    for a, b in zip(cells, cells[1:]):
        grid.swap_two(a, b)


def _unrotate(grid: Grid, cells: Sequence[int]) -> None:
    for a, b in reversed(list(zip(cells, cells[1:]))):
        grid.swap_two(a, b)


def _energy(grid: Grid, cells: Sequence[int]) -> float:
    return sum(grid.energy_around(c) for c in cells)


def _try_cycle(grid: Grid, cells: Sequence[int]) -> bool:
    """Shift the contents of fully occupied cells one step; keep it if it pays."""
    if any(grid.grid[c] == -1 for c in cells):
        return False
    before = _energy(grid, cells)
    _rotate(grid, cells)
    after = _energy(grid, cells)
    if after + _MIN_GAIN < before:
        return True
    _unrotate(grid, cells)
    return False


def test_and_do_bi_swap(grid: Grid, gi: int, gj: int) -> bool:
    """Swap two cells if that lowers the energy; at most one of them may be empty."""
    if grid.grid[gi] == -1 and grid.grid[gj] == -1:
        return False
    before = grid.energy_around(gi) + grid.energy_around(gj)
    grid.swap_two(gi, gj)
    after = grid.energy_around(gi) + grid.energy_around(gj)
    if after + _MIN_GAIN < before:
        return True
    grid.swap_two(gi, gj)
    return False


def test_and_do_tri_swap(grid: Grid, gi: int, gj: int, gk: int) -> bool:
    """Cycle three occupied cells if that lowers the energy."""
    return _try_cycle(grid, (gi, gj, gk))


def test_and_do_quadri_swap(grid: Grid, gi: int, gj: int, gk: int, gh: int) -> bool:
    """Cycle four occupied cells if that lowers the energy."""
    return _try_cycle(grid, (gi, gj, gk, gh))


def _report(grid: Grid, count: int, what: str) -> None:
    if grid.verbose and count:
        _log.info("Done %d greedy %s;", count, what)


def try_all_bi_swaps(grid: Grid) -> int:
    """Repeat improving swaps of neighbouring cells until none is left."""
    sx = grid.sx
    count = 0
    while True:
        passed = 0
        for i in range(grid.safe_gi_min_s2, grid.safe_gi_max_s2):
            for j in (i + 1, i + sx + 1, i + sx):
                if test_and_do_bi_swap(grid, i, j):
                    passed += 1
        if passed == 0:
            break
        count += passed
    _report(grid, count, "swaps")
    return count


def try_all_tri_swaps(grid: Grid) -> int:
    """Repeat improving cycles of the two triangles below each cell."""
    sx = grid.sx
    count = 0
    while True:
        passed = 0
        for i in range(grid.safe_gi_min_s2, grid.safe_gi_max_s2):
            for j, k in ((i + sx, i + sx + 1), (i + sx + 1, i + sx),
                         (i + 1, i + sx + 1), (i + sx + 1, i + 1)):
                if test_and_do_tri_swap(grid, i, j, k):
                    passed += 1
        if passed == 0:
            break
        count += passed
    _report(grid, count, "three-swaps")
    return count


def try_all_quadri_swaps(grid: Grid) -> int:
    """Repeat improving cycles of four cells in three rhombus shapes."""
    sx = grid.sx
    count = 0
    while True:
        passed = 0
        for i in range(grid.safe_gi_min_s3, grid.safe_gi_max_s3):
            shapes = (
                ((i, i + 1, i + sx, i + sx + 1), (1, 2)),
                ((i, i + 1, i + sx + 1, i + sx + 2), (0, 3)),
                ((i, i + 1, i - sx, i + sx + 1), (2, 3)),
            )
            for cells, (p, q) in shapes:
                a, rest = cells[0], cells[1:]
                for order in permutations(rest):
                    if test_and_do_quadri_swap(grid, a, *order):
                        passed += 1
                if test_and_do_bi_swap(grid, cells[p], cells[q]):
                    passed += 1
        if passed == 0:
            break
        count += passed
    _report(grid, count, "quadri-swaps")
    return count


def try_all_swaps_around(grid: Grid, gi: int) -> int:
    """Try swapping cell ``gi`` with each of its six neighbours."""
    return sum(1 for d in list(grid.neigh) if test_and_do_bi_swap(grid, gi, gi + d))


def greedy_swaps(grid: Grid) -> int:
    """Run the swap passes in sequence; returns the number of swaps done."""
    done = try_all_bi_swaps(grid) + try_all_tri_swaps(grid) + try_all_quadri_swaps(grid)
    done += try_all_bi_swaps(grid) + try_all_tri_swaps(grid)
    done += try_all_bi_swaps(grid)
    return done