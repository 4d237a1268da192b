"""
Analytics join engine: chart-ready series derived from log records.
"""

from .feed import PlayerAnalytics, watch_analytics
from .series import (
    Dashboard,
    FeelPoint,
    Reports,
    SleepArmPoint,
    WeightPoint,
    derive_dashboard,
    derive_reports,
)

__all__ = [
    "Dashboard",
    "FeelPoint",
    "PlayerAnalytics",
    "Reports",
    "SleepArmPoint",
    "WeightPoint",
    "derive_dashboard",
    "derive_reports",
    "watch_analytics",
]
