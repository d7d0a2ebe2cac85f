"""
Base Scheduler class for the development plan schedulers.

Provides common functionality for logging, configuration and date arithmetic.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Optional

from devplan.platform.config import Settings, get_settings
from devplan.platform.logging import get_logger


class SchedulerBase(ABC):
    """
    Base class for all plan schedulers.

    Provides:
    - Structured logger named after the concrete scheduler
    - Settings access (with per-instance overrides in subclasses)
    - Common date helpers
    """

    def __init__(self, config: Optional[Settings] = None):
        """
        Initialize the scheduler.

        Args:
            config: Settings to read defaults from (the process settings if omitted)
        """
        self.settings = config or get_settings()
        self.logger = get_logger(self.__class__.__name__)

    @staticmethod
    def add_days(start: date, days: int) -> date:
        return start + timedelta(days=days)

    @staticmethod
    def days_between(start: date, end: date) -> int:
        """Whole days from start to end (negative if end is earlier)."""
        return (end - start).days

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        """
        Main entry point for the scheduler.

        Must be implemented by subclasses.
        """
        pass
