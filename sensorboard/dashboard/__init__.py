"""
sensorboard Dashboard Module

Server-side dashboard state machine: bucket/measurement selection,
time-range resolution and chart/statistics preparation in pure Python.
"""

from .controller import DashboardController, DashboardState

__all__ = ["DashboardController", "DashboardState"]
