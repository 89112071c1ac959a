# turtlemapping

Grid-based SLAM and trajectory control for a two-wheeled differential drive
robot carrying a planar laser range finder.

## What is in the package

- `turtlemapping.sensor_model`: planar geometry (`Vector2D`, `Pose`,
  `Transform2D` with composition `*`, point application `t(point)`, `inv()` and
  `displacement()`), the helpers `normalize_angle_pi`, `deg2rad`,
  `almost_equal` and `range_to_cartesian`, plus `LaserProperties` and
  `LaserScanner`. `LaserScanner.laser_end_points(ranges, pose)` turns the ranges
  that fall within `[range_min, range_max)` into beam end points in the map
  frame; `number_valid_measurements(ranges)` counts them.
- `turtlemapping.grid_math`: log-odds conversions (`log_odds_to_prob`,
  `prob_to_log_odds`), the zero-mean normal density `pdf_normal(a, variance)`
  (raises `ValueError` for zero variance), `map_size`, `GridCoordinates` and
  Bresenham line tracing (`line_low`, `line_high`, `line_diag`, `free_cells`).
- `turtlemapping.grid_mapper`: `GridMapper`, an occupancy grid with known poses.
  `integrate_scan(ranges, pose)` marks traced cells free and end-point cells
  occupied, then rebuilds the distance to the nearest obstacle for each cell;
  `likelihood_field_model(ranges, pose)` scores a scan against the map (1.0
  while the map has no obstacles); `grid_map()` returns cell values (-1 unknown,
  0 free, 100 occupied, otherwise the probability in percent) transposed for
  display; `format_esdf()` returns the distance field as text. World
  coordinates outside the map bounds raise `ValueError`.
- `turtlemapping.cloud_alignment`: a point-to-point `icp(target, source,
  initial, ...)` that returns a `Transform2D` or `None` when too few point pairs
  lie within the correspondence distance, and `ScanAlignment`, whose
  `align(t_init, ranges)` matches each scan against the previous one. The first
  scan only becomes the reference and yields the identity transform; a failed
  match returns `None` and keeps the old reference.
- `turtlemapping.sampling`: `get_rng()`, `sample_standard_normal` and
  `sample_multivariate(cov, mu, rng)`, which also accepts positive
  semi-definite covariances.
- `turtlemapping.motion`: `Twist2D`, `sample_motion_model`,
  `pose_likelihood_odom` (odometry motion model) and `icp_init_guess`. Pose
  arrays are ordered `(theta, x, y)`.
- `turtlemapping.particle_filter`: `Particle` and `ParticleFilter`. Each
  particle keeps its own `GridMapper`. On a successful scan match the new pose is
  drawn from a Gaussian proposal built from `k` samples around the matched pose;
  otherwise it is drawn from the motion model and weighted by the scan
  likelihood. Weights are normalised and low-variance resampling runs when the
  effective number of particles drops below half the particle count.
- `turtlemapping.rk4`: `RK4`, a fixed-step fourth-order Runge-Kutta integrator
  for `f(x)` (`register_ode`, `solve`) and `f(x, u)` (`register_controlled_ode`,
  `solve_controlled`). Solving without a registered function raises
  `RuntimeError`.
- `turtlemapping.mppi`: `CartModel`, `LossFunc`, `cum_sum_cost`,
  `WheelVelocities` and the `MPPI` controller.

## Installation

```
pip install .
```

NumPy is the only runtime dependency. To run the tests:

```
pip install .[test]
pytest
```

## Mapping with a particle filter

```python
from turtlemapping.sensor_model import LaserProperties, Transform2D, Pose, deg2rad
from turtlemapping.grid_mapper import GridMapper
from turtlemapping.cloud_alignment import ScanAlignment
from turtlemapping.particle_filter import ParticleFilter
from turtlemapping.motion import Twist2D

props = LaserProperties(
    beam_min=0.0, beam_max=deg2rad(359.0), beam_delta=deg2rad(1.0),
    range_min=0.12, range_max=3.5,
    z_hit=0.8, z_short=0.1, z_max=0.05, z_rand=0.05, sigma_hit=0.2,
)
laser_mount = Transform2D()          # laser at the robot's origin

grid = GridMapper(0.05, -5.0, 5.0, -5.0, 5.0, props, laser_mount)
aligner = ScanAlignment(props, laser_mount)

pf = ParticleFilter(
    10, 5,                           # particles, samples around the mode
    0.1, 0.1, 0.1, 0.1,              # pose likelihood noise (srr, srt, str, stt)
    1e-4, 1e-4, 1e-4,                # motion noise (theta, x, y)
    1e-4, 1e-4, 1e-4,                # sample range around the matched pose
    1e-12, 1.0,                      # scan likelihood limits
    1e-12, 1.0,                      # pose likelihood limits
    aligner, Transform2D(), grid, None,
)

# For every new scan, with odometry poses supplied by the caller:
# pf.slam(ranges, Twist2D(w=0.0, vx=0.1), cur_odom, prev_odom)
robot = pf.robot_state().displacement()
occupancy = pf.new_map()             # values of the best particle's grid_map()
```

## Waypoint following with MPPI

```python
from turtlemapping.mppi import CartModel, LossFunc, MPPI
from turtlemapping.sensor_model import Pose

controller = MPPI(
    CartModel(wheel_radius=0.033, wheel_base=0.16),
    LossFunc([1.0, 1.0, 0.5], [0.01, 0.01], [10.0, 10.0, 5.0]),
    lambda_=1.0, max_wheel_vel=6.0, ul_var=1.0, ur_var=1.0,
    horizon=1.0, dt=0.1, rollouts=100, rng=None,
)
controller.set_initial_controls(1.0, 1.0)
controller.set_waypoint(Pose(theta=0.0, x=1.0, y=0.5))

wheels = controller.new_controls(Pose(theta=0.0, x=0.0, y=0.0))
print(wheels.ul, wheels.ur)
```

`new_controls` returns the first control of the updated sequence, clipped to
`max_wheel_vel`, then shifts the sequence by one step and refills its end with
the initial controls.

Random draws go through a `numpy.random.Generator`; pass your own as `rng` for
reproducible runs, or `None` to use the shared one from
`turtlemapping.sampling.get_rng()`.

## What the package does not do

It is a library only: there is no command-line program and no running node.
It does not read sensors, compute wheel odometry from encoder readings, or
publish maps, paths or transforms. The caller supplies the laser ranges, the
body twist and the odometry poses to `ParticleFilter.slam`, and the current
pose to `MPPI.new_controls`, and does what it likes with the results.