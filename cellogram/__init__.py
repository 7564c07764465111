"""Meshes, hexagonal grids and file formats for arranging detected cell points on a lattice."""

__version__ = "0.1.0"