"""API routes."""

from . import food_scan, telemetry

__all__ = ["food_scan", "telemetry"]
