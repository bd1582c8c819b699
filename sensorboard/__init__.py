"""
sensorboard - multi-tenant sensor dashboard server backed by InfluxDB
"""

__version__ = "1.0.0"
