"""Placing unassigned vertices and closing interior holes of a grid."""

from __future__ import annotations

import logging

from .grid import Grid
from .grid_swaps import greedy_swaps, try_all_swaps_around

_log = logging.getLogger(__name__)

_EXTERNAL_PENALTY = 4000.0


def _info(grid: Grid, message: str) -> None:
    if grid.verbose:
        _log.info(message)


def _ensure_external(grid: Grid) -> None:
    if len(grid.is_external) != len(grid.grid):
        grid.compute_is_external()


def _cheapest(boundary: set[int], cost: list[float]) -> int:
    return min(sorted(boundary), key=cost.__getitem__)


def fix_empty_slot(grid: Grid, gi: int) -> bool:
    """Shift vertices along the cheapest path so that empty cell ``gi`` moves outward."""
    _ensure_external(grid)
    if grid.grid[gi] != -1:
        _info(grid, f"Fill {gi}: cell is not empty.")
        return False
    max_cost = grid.edge_len * grid.edge_len * 2 * 5
    cost = [max_cost] * len(grid.grid)
    prev_step = [-2] * len(grid.grid)
    boundary = {gi}
    visited: set[int] = set()
    cost[gi] = 0.0
    dest = -1

    while dest == -1:
        if not boundary:
            _info(grid, f"Fill {gi}: NOT doing it (too expensive).")
            return False
        current = _cheapest(boundary, cost)
        boundary.discard(current)
        visited.add(current)
        for d in grid.neigh:
            gj = current + d
            if gj in visited:
                continue
            if grid.grid[gj] == -1 and grid.is_external[gj]:
                dest = current
                break
            new_cost = (
                cost[current]
                + grid.energy_around_if(gj, grid.grid[current])
                - grid.energy_around(gj)
            )
            if cost[gj] > new_cost:
                cost[gj] = new_cost
                boundary.add(gj)
                prev_step[gj] = current

    _info(grid, f"Fill {gi}: path to {dest} found.")
    path = []
    step = dest
    while step >= 0:
        path.append(step)
        step = prev_step[step]

    grid.swap_two(dest, gi)
    for k in range(len(path) - 1, 0, -1):
        grid.swap_two(path[k], path[k - 1])
    for cell in path:
        try_all_swaps_around(grid, cell)
    return True


def fix_unassigned_vertex(grid: Grid, vi: int) -> bool:
    """Put vertex ``vi`` in its desired cell, pushing others toward the nearest hole."""
    _ensure_external(grid)
    start = grid.vdesired[vi]
    if start == -1:
        _info(grid, f"Assign {vi}: no desired position.")
        return False
    max_cost = grid.edge_len * grid.edge_len * 6 * 5
    cost = [max_cost] * len(grid.grid)
    prev_step = [-2] * len(grid.grid)
    boundary = {start}
    visited: set[int] = set()
    cost[start] = 0.0

    while True:
        if not boundary:
            _info(grid, f"Assign {vi}: NOT doing it (too expensive).")
            return False
        current = _cheapest(boundary, cost)
        boundary.discard(current)
        visited.add(current)
        if grid.grid[current] == -1:
            dest = current
            break
        for d in grid.neigh:
            gj = current + d
            if gj in visited:
                continue
            new_cost = (
                cost[current]
                + grid.energy_around_if(gj, grid.grid[current])
                - grid.energy_around(gj)
            )
            if grid.is_external[gj]:
                new_cost += _EXTERNAL_PENALTY
            if cost[gj] > new_cost:
                cost[gj] = new_cost
                boundary.add(gj)
                prev_step[gj] = current

    grid.assign(dest, vi)
    touched = []
    cell = dest
    while True:
        touched.append(cell)
        prev = prev_step[cell]
        if prev < 0:
            break
        grid.swap_two(prev, cell)
        cell = prev
    for cell in touched:
        try_all_swaps_around(grid, cell)
    _info(grid, f"Assign {vi}: path applied.")
    return True


def greedy_assign_unassigned(grid: Grid) -> int:
    """Assign vertices that desire a cell, deepest desired cells first."""
    grid.compute_is_external()
    to_fix = [
        vi
        for vi in range(len(grid.vert))
        if grid.pos_in_grid[vi] == -1 and grid.vdesired[vi] != -1
    ]
    grid.update_dist_from_border()
    _info(grid, f"There are {len(to_fix)} verts to fix!")

    fixed = 0
    while to_fix:
        max_dist = -1
        win = -1
        for i, vi in enumerate(to_fix):
            dist = grid.dist_from_border[grid.vdesired[vi]]
            if dist > max_dist:
                max_dist = dist
                win = i
        vi = to_fix[win]
        to_fix[win], to_fix[-1] = to_fix[-1], to_fix[win]
        to_fix.pop()
        if fix_unassigned_vertex(grid, vi):
            fixed += 1
            grid.update_dist_from_border()

    _info(grid, f"Fixed {fixed} unassigned points ({len(to_fix)} left)")
    return fixed


def greedy_fill_empty(grid: Grid) -> int:
    """Try to close every interior empty cell; does nothing while vertices are unassigned."""
    if any(grid.pos_in_grid[vi] == -1 for vi in range(len(grid.vert))):
        _info(grid, "Unassigned verts still present: aborting fill empty")
        return 0
    _ensure_external(grid)
    count = fail = 0
    for gi in range(len(grid.grid)):
        if grid.grid[gi] == -1 and not grid.is_external[gi]:
            if fix_empty_slot(grid, gi):
                count += 1
            else:
                fail += 1
    _info(grid, f"Filled {count} unassigned points ({fail} left)")
    return count


def greedy_ops(grid: Grid) -> int:
    """One round of assignment, hole filling, swaps and matrix updates."""
    total = greedy_assign_unassigned(grid)
    total += greedy_fill_empty(grid)
    total += greedy_swaps(grid)
    total += greedy_swaps(grid)
    grid.compute_matrices()
    grid.smooth_matrices(20)
    return total