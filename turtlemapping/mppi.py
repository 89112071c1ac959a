"""Model predictive path integral control for waypoint following."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from turtlemapping.rk4 import RK4
from turtlemapping.sampling import get_rng
from turtlemapping.sensor_model import Pose

__all__ = [
    "CartModel",
    "LossFunc",
    "cum_sum_cost",
    "WheelVelocities",
    "MPPI",
]


class CartModel:
    """Kinematic model of a differential drive robot."""

    def __init__(self, wheel_radius: float, wheel_base: float) -> None:
        self.wheel_radius = wheel_radius
        self.wheel_base = wheel_base

    def kinematic_cart(self, x_t, u_t) -> np.ndarray:
        """Time derivative of the state (x, y, theta) under wheel velocities (uL, uR)."""
        half_r = self.wheel_radius / 2.0
        theta = x_t[2]
        forward = half_r * (u_t[0] + u_t[1])
        return np.array(
            [
                forward * math.cos(theta),
                forward * math.sin(theta),
                (self.wheel_radius / self.wheel_base) * (u_t[1] - u_t[0]),
            ]
        )


def _diagonal(values: Sequence[float], size: int, name: str) -> np.ndarray:
    entries = list(values)
    if len(entries) < size:
        raise ValueError(f"{name} needs {size} diagonal entries, got {len(entries)}")
    return np.diag(np.asarray(entries[:size], dtype=float))


class LossFunc:
    """Quadratic (LQR style) running and terminal loss."""

    def __init__(self, q_diag: Sequence[float], r_diag: Sequence[float], p1_diag: Sequence[float]) -> None:
        self.Q = _diagonal(q_diag, 3, "Q")
        self.R = _diagonal(r_diag, 2, "R")
        self.P1 = _diagonal(p1_diag, 3, "P1")

    def loss(self, x_t, x_d, u_t) -> float:
        """Running loss of state error against ``x_d`` plus control effort."""
        error = np.asarray(x_t, dtype=float) - np.asarray(x_d, dtype=float)
        controls = np.asarray(u_t, dtype=float)
        return float(error @ self.Q @ error + controls @ self.R @ controls)

    def terminal_loss(self, x_t, x_final) -> float:
        """Loss of the final state error."""
        error = np.asarray(x_t, dtype=float) - np.asarray(x_final, dtype=float)
        return float(error @ self.P1 @ error)


def cum_sum_cost(values) -> np.ndarray:
    """Cumulative sum down the rows, taken from the last row to the first."""
    matrix = np.asarray(values, dtype=float)
    return np.cumsum(matrix[::-1], axis=0)[::-1].copy()


@dataclass
class WheelVelocities:
    """Left and right wheel angular velocities."""

    ul: float = 0.0
    ur: float = 0.0


class MPPI:
    """Sampling-based model predictive controller for a differential drive robot."""

    def __init__(
        self,
        cart_model: CartModel,
        loss_func: LossFunc,
        lambda_: float,
        max_wheel_vel: float,
        ul_var: float,
        ur_var: float,
        horizon: float,
        dt: float,
        rollouts: int,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.cart_model = cart_model
        self.loss_func = loss_func
        self.lambda_ = lambda_
        self.max_wheel_vel = max_wheel_vel
        self.ul_var = ul_var
        self.ur_var = ur_var
        self.horizon = horizon
        self.dt = dt
        self.rollouts = rollouts
        self.steps = int(horizon / dt)
        self._rng = rng if rng is not None else get_rng()

        self._rk4 = RK4(dt)
        self._rk4.register_controlled_ode(cart_model.kinematic_cart)

        self._uinit = np.zeros(2)
        self.controls = np.zeros((2, self.steps))
        self.goal = np.zeros(3)

    def set_initial_controls(self, ul: float, ur: float) -> None:
        """Set the nominal controls and fill the control sequence with them."""
        self._uinit = np.array([ul, ur], dtype=float)
        self.controls[0, :] = ul
        self.controls[1, :] = ur

    def set_waypoint(self, wpt: Pose) -> None:
        """Set the goal pose."""
        self.goal = np.array([wpt.x, wpt.y, wpt.theta], dtype=float)

    def _perturbations(self) -> np.ndarray:
        ul_sig = math.sqrt(self.ul_var)
        ur_sig = math.sqrt(self.ur_var)
        return np.vstack(
            [
                self._rng.normal(0.0, ul_sig, self.steps),
                self._rng.normal(0.0, ur_sig, self.steps),
            ]
        )

    def new_controls(self, ps: Pose) -> WheelVelocities:
        """Run one MPPI update from pose ``ps`` and return the first controls."""
        x0 = np.array([ps.x, ps.y, ps.theta], dtype=float)
        steps = self.steps
        loss_mat = np.zeros((steps, self.rollouts))
        du_l = np.zeros((steps, self.rollouts))
        du_r = np.zeros((steps, self.rollouts))

        for k in range(self.rollouts):
            pert = self._perturbations()
            du_l[:, k] = pert[0]
            du_r[:, k] = pert[1]
            u_pert = self.controls + pert
            traj = self._rk4.solve_controlled(x0, u_pert, self.horizon)
            for i in range(steps):
                loss_mat[i, k] = self.loss_func.loss(traj[:, i], self.goal, u_pert[:, i])
            loss_mat[steps - 1, k] = self.loss_func.terminal_loss(traj[:, steps - 1], self.goal)

        cost = cum_sum_cost(loss_mat)
        cost -= cost.min(axis=1, keepdims=True)
        weights = np.exp(-cost / self.lambda_) + 1e-8
        weights /= weights.sum(axis=1, keepdims=True)

        self.controls[0] += np.sum(weights * du_l, axis=1)
        self.controls[1] += np.sum(weights * du_r, axis=1)
        np.clip(self.controls, -self.max_wheel_vel, self.max_wheel_vel, out=self.controls)

        wheel_vel = WheelVelocities(float(self.controls[0, 0]), float(self.controls[1, 0]))

        self.controls[:, :-1] = self.controls[:, 1:].copy()
        self.controls[:, -1] = self._uinit
        return wheel_vel