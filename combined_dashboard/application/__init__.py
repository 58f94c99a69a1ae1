"""Application services."""

from .dashboards import DashboardService, NotConfigured, configure_dashboard_service, get_dashboard_service

__all__ = [
    "DashboardService",
    "NotConfigured",
    "configure_dashboard_service",
    "get_dashboard_service",
]
