"""Fourth-order Runge-Kutta integration with a fixed step."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

__all__ = ["RK4"]

Ode = Callable[[np.ndarray], np.ndarray]
ControlledOde = Callable[[np.ndarray, np.ndarray], np.ndarray]


class RK4:
    """Fixed-step integrator for autonomous and controlled ODEs."""

    def __init__(self, step: float) -> None:
        self.step = step
        self._func: Optional[Ode] = None
        self._func_cntrl: Optional[ControlledOde] = None

    def register_ode(self, ode_func: Ode) -> None:
        """Register ``f(x) -> dx/dt``."""
        self._func = ode_func

    def register_controlled_ode(self, ode_func: ControlledOde) -> None:
        """Register ``f(x, u) -> dx/dt``."""
        self._func_cntrl = ode_func

    def _num_samples(self, horizon: float) -> int:
        return int(horizon / self.step)

    def _integrate(self, f: Ode, x_t: np.ndarray) -> np.ndarray:
        h = self.step
        k1 = np.asarray(f(x_t), dtype=float)
        k2 = np.asarray(f(x_t + h * 0.5 * k1), dtype=float)
        k3 = np.asarray(f(x_t + h * 0.5 * k2), dtype=float)
        k4 = np.asarray(f(x_t + h * k3), dtype=float)
        return x_t + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

    def solve(self, x0, horizon: float) -> np.ndarray:
        """Integrate the autonomous ODE; columns are the states after each step."""
        if self._func is None:
            raise RuntimeError("Function not registered!")
        state = np.array(x0, dtype=float)
        steps = self._num_samples(horizon)
        trajectory = np.empty((state.size, steps))
        for i in range(steps):
            state = self._integrate(self._func, state)
            trajectory[:, i] = state
        return trajectory

    def solve_controlled(self, x0, u, horizon: float) -> np.ndarray:
        """Integrate the controlled ODE using column ``i`` of ``u`` at step ``i``."""
        if self._func_cntrl is None:
            raise RuntimeError("Function not registered!")
        func = self._func_cntrl
        controls = np.asarray(u, dtype=float)
        state = np.array(x0, dtype=float)
        steps = self._num_samples(horizon)
        trajectory = np.empty((state.size, steps))
        for i in range(steps):
            u_t = controls[:, i]
            state = self._integrate(lambda x: func(x, u_t), state)
            trajectory[:, i] = state
        return trajectory