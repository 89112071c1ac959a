"""Occupancy grid mapping with known poses and a likelihood-field scan model."""

from __future__ import annotations

import heapq
import itertools
import math
from dataclasses import dataclass
from typing import Sequence

from turtlemapping.grid_math import (
    GridCoordinates,
    free_cells,
    log_odds_to_prob,
    map_size,
    pdf_normal,
    prob_to_log_odds,
)
from turtlemapping.sensor_model import LaserProperties, LaserScanner, Transform2D, Vector2D

__all__ = ["Cell", "GridMapper"]


@dataclass
class Cell:
    """A grid cell. ``state`` is -1 unknown, 0 free, 1 occupied."""

    log_odds: float = 0.0
    prob: float = 0.0
    occ_dist: float = 0.0
    state: int = -1
    i: int = 0
    j: int = 0
    src_i: int = 0
    src_j: int = 0


class GridMapper(LaserScanner):
    """2D occupancy grid built from laser scans taken at known poses."""

    def __init__(
        self,
        resolution: float,
        xmin: float,
        xmax: float,
        ymin: float,
        ymax: float,
        props: LaserProperties,
        trs: Transform2D,
    ) -> None:
        super().__init__(props, trs)
        self._prior = 0.5
        self._prob_occ = 0.90
        self._prob_free = 0.35
        self._log_odds_prior = prob_to_log_odds(self._prior)
        self._log_odds_occ = prob_to_log_odds(self._prob_occ)
        self._log_odds_free = prob_to_log_odds(self._prob_free)

        self.resolution = resolution
        self._max_occ_dist = 10.0
        self._cell_radius = float(map_size(0.0, self._max_occ_dist, resolution))
        self.xmin = xmin
        self.xmax = xmax
        self.ymin = ymin
        self.ymax = ymax
        self.xsize = map_size(xmin, xmax, resolution)
        self.ysize = map_size(ymin, ymax, resolution)

        self.cells = [
            Cell(self._log_odds_prior, self._prior, self._max_occ_dist, -1)
            for _ in range(self.xsize * self.ysize)
        ]
        self._occ_cells: set[int] = set()

    @property
    def occupied_cells(self) -> frozenset[int]:
        """Row-major indices of the cells currently marked occupied."""
        return frozenset(self._occ_cells)

    def likelihood_field_model(self, beam_length: Sequence[float], pose: Transform2D) -> float:
        """Likelihood of the scan given the pose and the current map."""
        var_hit = self.sigma_hit * self.sigma_hit
        end_points = self.laser_end_points(beam_length, pose)

        p = 1.0
        if not self._occ_cells:
            return p

        for point in end_points:
            z = self.cells[self.world_to_row_major(point.x, point.y)].occ_dist
            pz = self.z_hit * pdf_normal(z, var_hit) + self.z_rand / self.z_max
            p *= pz
        return p

    def integrate_scan(self, beam_length: Sequence[float], pose: Transform2D) -> None:
        """Update the map with a scan taken at ``pose``."""
        free_step = self._log_odds_free - self._log_odds_prior
        occ_step = self._log_odds_occ - self._log_odds_prior

        for point in self.laser_end_points(beam_length, pose):
            for idx in self.free_grid_index(point, pose):
                self.cells[idx].log_odds += free_step
                self._update_cell_state(self.cells[idx], idx)

            idx = self.world_to_row_major(point.x, point.y)
            self.cells[idx].log_odds += occ_step
            self._update_cell_state(self.cells[idx], idx)

        self._euclidean_signed_distance_field()

    def grid_map(self) -> list[int]:
        """Occupancy values (-1 unknown, 0..100) transposed for display."""
        grid = [0] * len(self.cells)
        for index, cell in enumerate(self.cells):
            row, col = divmod(index, self.xsize)
            grid[col * self.xsize + row] = self._occupancy_value(cell.prob)
        return grid

    def _occupancy_value(self, prob: float) -> int:
        if prob == self._prior:
            return -1
        if prob >= self._prob_occ:
            return 100
        if prob <= self._prob_free:
            return 0
        return int(prob * 100)

    def format_esdf(self) -> str:
        """Text table of each cell's distance to the nearest obstacle."""
        parts = []
        for index, cell in enumerate(self.cells):
            parts.append(f"{index} : {cell.occ_dist:f} |")
            if index % self.xsize == self.xsize - 1:
                parts.append("\n")
        return "".join(parts)

    def _enqueue_cell(self, i: int, j: int, src_i: int, src_j: int, queue: list, marked: list[bool], counter) -> None:
        idx = self.grid_to_row_major(i, j)
        if marked[idx]:
            return

        di = abs(i - src_i)
        dj = abs(j - src_j)
        if di >= self._cell_radius or dj >= self._cell_radius:
            return
        dist = math.sqrt(di * di + dj * dj)
        if dist > self._cell_radius:
            return

        cell = self.cells[idx]
        cell.occ_dist = dist * self.resolution
        cell.i, cell.j = i, j
        cell.src_i, cell.src_j = src_i, src_j
        heapq.heappush(queue, (cell.occ_dist, next(counter), i, j, src_i, src_j))
        marked[idx] = True

    def _euclidean_signed_distance_field(self) -> None:
        if not self._occ_cells:
            return

        marked = [False] * (self.xsize * self.ysize)
        queue: list = []
        counter = itertools.count()

        for key in sorted(self._occ_cells):
            cell = self.cells[key]
            cell.occ_dist = 0.0
            cell.i = cell.src_i = key // self.xsize
            cell.j = cell.src_j = key % self.xsize
            marked[key] = True
            heapq.heappush(queue, (0.0, next(counter), cell.i, cell.j, cell.src_i, cell.src_j))

        while queue:
            _, _, i, j, src_i, src_j = heapq.heappop(queue)
            if i > 0:
                self._enqueue_cell(i - 1, j, src_i, src_j, queue, marked, counter)
            if j > 0:
                self._enqueue_cell(i, j - 1, src_i, src_j, queue, marked, counter)
            if i < self.xsize - 1:
                self._enqueue_cell(i + 1, j, src_i, src_j, queue, marked, counter)
            if j < self.ysize - 1:
                self._enqueue_cell(i, j + 1, src_i, src_j, queue, marked, counter)

    def _update_cell_state(self, cell: Cell, index: int) -> None:
        prob = log_odds_to_prob(cell.log_odds)
        if prob == self._prior:
            cell.state = -1
            cell.prob = self._prior
            self._occ_cells.discard(index)
        elif prob >= self._prob_occ:
            cell.state = 1
            cell.prob = 1.0
            self._occ_cells.add(index)
        elif prob <= self._prob_free:
            cell.state = 0
            cell.prob = 0.0
        else:
            cell.state = -1
            cell.prob = prob
            self._occ_cells.discard(index)

    def free_grid_index(self, point: Vector2D, pose: Transform2D) -> list[int]:
        """Row-major indices of the cells a beam crosses before its end point."""
        pose_data = pose.displacement()
        start = self.world_to_grid(pose_data.x, pose_data.y)
        end = self.world_to_grid(point.x, point.y)
        return [self.grid_to_row_major(i, j) for i, j in free_cells(start.i, start.j, end.i, end.j)]

    def _check_bounds(self, x: float, y: float) -> None:
        if not self.xmin <= x <= self.xmax:
            raise ValueError("X position NOT in the bounds of the world")
        if not self.ymin <= y <= self.ymax:
            raise ValueError("Y position NOT in the bounds of the world")

    def world_to_grid(self, x: float, y: float) -> GridCoordinates:
        """Grid coordinates of the cell containing a world point."""
        self._check_bounds(x, y)
        i = math.floor((x - self.xmin) / self.resolution)
        if i == self.xsize:
            i -= 1
        j = math.floor((y - self.ymin) / self.resolution)
        if j == self.ysize:
            j -= 1
        return GridCoordinates(i, j)

    def world_to_row_major(self, x: float, y: float) -> int:
        """Row-major index of the cell containing a world point."""
        coords = self.world_to_grid(x, y)
        return self.grid_to_row_major(coords.i, coords.j)

    def grid_to_row_major(self, i: int, j: int) -> int:
        """Row-major index of grid coordinates."""
        return i * self.xsize + j