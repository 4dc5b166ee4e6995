from abc import ABC, abstractmethod
from typing import List
from app.core.models.domain import ActivityRecord


class ActivitySourceError(Exception):
    """Raised when a provider cannot deliver activity (API failure, bad credentials)."""


class ActivitySource(ABC):
    """
    Port (Interface) for any activity provider.
    The dashboard service depends on this abstraction, never on the concrete GitHub implementation.
    """

    name: str = "unknown"

    @abstractmethod
    def fetch_activity(self, days: int) -> List[ActivityRecord]:
        """
        Fetches commits, pull requests and issues from the last `days` days.

        Args:
            days (int): Time window in days to look back.

        Returns:
            List[ActivityRecord]: Validated activity records, newest first.

        Raises:
            ActivitySourceError: When the provider fails.
        """
        pass
