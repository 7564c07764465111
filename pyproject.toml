[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cellogram"
version = "0.1.0"
description = "Building blocks for laying detected cell points out on a hexagonal lattice: Delaunay meshes, edge flips and grid repair"
requires-python = ">=3.10"
dependencies = [
    "numpy",
    "scipy",
]
keywords = ["cells", "microscopy", "mesh", "delaunay", "hexagonal grid", "triangulation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cellogram"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
