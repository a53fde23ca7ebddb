"""Occupancy grid map tools, map images, markers, GeoTIFF export and lidar protocol helpers."""

__version__ = "0.1.0"