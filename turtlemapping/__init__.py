"""Particle filter SLAM on occupancy grids, ICP scan matching, RK4 integration and MPPI control for differential drive robots."""

__version__ = "0.1.0"