"""Python client for the Dispensa HTTP API."""

from .api import ApiClient, ApiError
from .dashboard import Dashboard, DashboardError

__all__ = ["ApiClient", "ApiError", "Dashboard", "DashboardError"]
