"""Probability helpers and Bresenham line tracing for occupancy grids."""

from __future__ import annotations

import math
from dataclasses import dataclass

from turtlemapping.sensor_model import almost_equal

__all__ = [
    "log_odds_to_prob",
    "prob_to_log_odds",
    "pdf_normal",
    "map_size",
    "GridCoordinates",
    "line_low",
    "line_high",
    "line_diag",
    "free_cells",
]

Cell = tuple[int, int]


def log_odds_to_prob(log_odds: float) -> float:
    """Convert log odds to a probability."""
    if log_odds > 700.0:
        return 1.0
    return 1.0 - 1.0 / (1.0 + math.exp(log_odds))


def prob_to_log_odds(p: float) -> float:
    """Convert a probability to log odds."""
    return math.log(p / (1.0 - p))


def pdf_normal(a: float, b: float) -> float:
    """Zero-mean normal density of ``a`` with variance ``b``."""
    if almost_equal(b, 0.0):
        raise ValueError("Variance in pdf_normal is 0")
    return math.exp(-0.5 * a * a / b) / math.sqrt(2.0 * math.pi * b)


def map_size(lower: float, upper: float, resolution: float) -> int:
    """Number of cells needed to cover ``[lower, upper]`` at ``resolution``."""
    return int(math.ceil((upper - lower) / resolution))


@dataclass
class GridCoordinates:
    """Column ``i`` and row ``j`` of a grid cell."""

    i: int = 0
    j: int = 0

    def __str__(self) -> str:
        return f"Grid Coordinates: [{self.i} {self.j}]\n"


def line_low(x0: int, y0: int, x1: int, y1: int) -> list[Cell]:
    """Cells of a shallow line from x0 to x1, without the first and last cell."""
    dx = x1 - x0
    dy = y1 - y0
    yi = 1
    if dy < 0:
        yi = -1
        dy = -dy
    d = 2 * dy - dx
    y = y0
    cells = []
    for x in range(x0, x1):
        if x != x0:
            cells.append((x, y))
        if d > 0:
            y += yi
            d -= 2 * dx
        d += 2 * dy
    return cells


def line_high(x0: int, y0: int, x1: int, y1: int) -> list[Cell]:
    """Cells of a steep line from y0 to y1, without the first and last cell."""
    dx = x1 - x0
    dy = y1 - y0
    xi = 1
    if dx < 0:
        xi = -1
        dx = -dx
    d = 2 * dx - dy
    x = x0
    cells = []
    for y in range(y0, y1):
        if y != y0:
            cells.append((x, y))
        if d > 0:
            x += xi
            d -= 2 * dy
        d += 2 * dx
    return cells


def line_diag(x0: int, y0: int, x1: int, y1: int) -> list[Cell]:
    """Cells of a 45 degree line, including the start and excluding the end."""
    xi = -1 if x1 < x0 else 1
    yi = -1 if y1 < y0 else 1
    cells = []
    x, y = x0, y0
    while x != x1 and y != y1:
        cells.append((x, y))
        x += xi
        y += yi
    return cells


def free_cells(x0: int, y0: int, x1: int, y1: int) -> list[Cell]:
    """Cells a beam crosses from (x0, y0) up to, but not including, (x1, y1)."""
    dx = x1 - x0
    dy = y1 - y0

    if dx == 0:
        step = -1 if dy < 0 else 1
        return [(x0, y) for y in range(y0, y1, step)]

    if dy == 0:
        step = -1 if dx < 0 else 1
        return [(x, y0) for x in range(x0, x1, step)]

    if abs(dy) < abs(dx):
        middle = line_low(x1, y1, x0, y0) if x0 > x1 else line_low(x0, y0, x1, y1)
        return [(x0, y0), *middle]

    if abs(dy) > abs(dx):
        middle = line_high(x1, y1, x0, y0) if y0 > y1 else line_high(x0, y0, x1, y1)
        return [(x0, y0), *middle]

    return line_diag(x0, y0, x1, y1)