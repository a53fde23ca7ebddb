[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "occmap"
version = "0.1.0"
description = "Occupancy grid map tools: coordinate transforms, ray casting, map images, GeoTIFF export, markers and lidar protocol helpers"
requires-python = ">=3.10"
keywords = [
    "occupancy grid",
    "slam",
    "robotics",
    "geotiff",
    "lidar",
    "mapping",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["occmap"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
