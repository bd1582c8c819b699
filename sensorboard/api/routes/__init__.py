"""
sensorboard HTTP route factories.

Each create_*_routes() returns an APIRouter bound to the shared
AuthDependencies (and the query service where data is involved).
"""

from .admin_routes import create_admin_routes
from .dashboard_routes import create_dashboard_routes
from .export_routes import create_export_routes
from .sensor_routes import create_sensor_routes

__all__ = [
    "create_admin_routes",
    "create_dashboard_routes",
    "create_export_routes",
    "create_sensor_routes",
]
