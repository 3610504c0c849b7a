"""Ride dispatch and live trip simulation."""

__version__ = "1.0.0"
