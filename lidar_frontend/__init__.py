"""LiDAR front end: point cloud decoding, timestamp handling, stream checks, preprocessing and utilities."""

__version__ = "0.1.0"