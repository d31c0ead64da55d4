"""Simulation kernel for the Immortality idle game."""

__version__ = "0.1.0"
