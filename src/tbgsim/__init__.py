"""Twisted bilayer lattice visualizer with a band-structure overlay."""

__version__ = "0.1.0"
