[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "turtlemapping"
version = "0.1.0"
description = "Rao-Blackwellized particle filter SLAM on occupancy grids, ICP scan matching and MPPI control for differential drive robots"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "slam",
    "particle filter",
    "occupancy grid",
    "icp",
    "mppi",
    "runge-kutta",
    "robotics",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["turtlemapping"]

[tool.pytest.ini_options]
addopts = "-ra"
