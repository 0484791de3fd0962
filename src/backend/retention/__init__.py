"""
Retention: periodic purge of files older than the retention window and of the
directories they leave empty.
"""

from .models import SweepReport, SweeperState
from .sweeper import RetentionSweeper, DEFAULT_INTERVAL, DEFAULT_RETENTION

__all__ = [
    "RetentionSweeper",
    "SweepReport",
    "SweeperState",
    "DEFAULT_INTERVAL",
    "DEFAULT_RETENTION",
]
