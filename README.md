# cellogram

Building blocks for turning a cloud of detected cell centres into a triangle
mesh whose connectivity follows a regular hexagonal lattice.

The package provides:

- a triangle **mesh** over the points, built by Delaunay triangulation and made
  more regular by greedy edge flips;
- a "brick-wall" **hexagonal grid** that holds one point per cell, together with
  greedy swaps and shortest-path repairs that lower its energy;
- readers and writers for point lists, OBJ and coloured PLY files.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Modules

- `cellogram.geometry`: `Vec2` and `Mat2` (immutable 2D vector and 2x2 matrix),
  `distance`, `squared_distance`, `dot`, `cross`, `rotate_by_60`, the
  `orient2d` and `incircle` sign predicates, and `delaunay_triangulation`,
  which returns counter-clockwise triangles as an `(n, 3)` integer array.
- `cellogram.mesh_elements`: `Face`, `Edge`, `Vert` and `FlipScore`.
- `cellogram.mesh`: `Mesh`, with `from_points`, `remove_duplicates`,
  `init_with_delaunay`, `greedy_flips`, `flip_as`, `apply_flip` and the
  valence bookkeeping around them.
- `cellogram.grid`: `Grid`, the hexagonal cell array with assignment, energy,
  per-vertex alignment matrices (`compute_matrices`, `smooth_matrices`),
  `fill_gaps_making_pts_up` and `enlarge_grid`.
- `cellogram.grid_swaps`: `greedy_swaps` and the two-, three- and four-cell
  swap passes it runs.
- `cellogram.grid_repair`: `greedy_assign_unassigned`, `greedy_fill_empty` and
  `greedy_ops`, one round of assignment, hole filling, swaps and matrix updates.
- `cellogram.grid_io`: `import_xyz`, `export_obj`, `export_ply`,
  `export_ply_tartan` and `export_arrays`.
- `cellogram.mesh_io`: `import_xyz`, `import_xyz_v2`, `import_xyz_v3`,
  `import_fv_fix`, `export_obj`, `export_off`, `export_ply` (coloured by a
  `ColorMode`) and `export_edges_ply`.

## Example: triangulate and regularise points

```python
import numpy as np
from cellogram.mesh import Mesh
from cellogram.mesh_io import ColorMode, export_ply

points = np.loadtxt("detections.txt")[:, :2]

mesh = Mesh()
mesh.from_points(points)
mesh.remove_duplicates()
mesh.init_with_delaunay()
flips = mesh.greedy_flips(10, None)   # no grid: scores use valence only
export_ply(mesh, "mesh", ColorMode.BY_VAL)   # writes mesh.ply
```

## Example: work with a grid

```python
from cellogram.grid import Grid
from cellogram.grid_swaps import greedy_swaps
from cellogram.grid_io import export_arrays

grid = Grid()
grid.create(12, 12)
grid.init_vert_on_grid(4, 4)       # 16 points on an ideal lattice
grid.create_vertices(16)
grid.init_indices_on_grid(4, 4)    # put them in grid cells
grid.compute_matrices()
greedy_swaps(grid)

tris, dropped, new_points = export_arrays(grid)
```

`export_arrays` returns the fully occupied grid triangles as an `(n, 3)`
integer array, the indices of vertices that hold no cell, and the made-up
points added by `fill_gaps_making_pts_up` as an `(m, 3)` array.

## What the package does not do

There is no step that walks a mesh to place its points on the grid in the
first place, so there is no single call that goes from raw points to a
finished lattice mesh. A grid has to be filled through `Grid.assign`,
`init_indices_on_grid` or your own code. There is also no command-line tool.