"""Domain layer definitions."""

from .dashboards import CardMetadata, CardRef, DashboardRegistry, MainDashboard, SessionCredential

__all__ = [
    "CardMetadata",
    "CardRef",
    "DashboardRegistry",
    "MainDashboard",
    "SessionCredential",
]
