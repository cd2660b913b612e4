"""Abstract base for scoring snapshot sources."""

from abc import ABC, abstractmethod


class BaseSnapshotSource(ABC):
    """Fetches the leaderboard document for a season.

    After a successful fetch, ``source_info`` holds the url, fetch time
    and ETag (where known) so they can be recorded in the pool document.
    """

    def __init__(self):
        self.source_info = {}

    @abstractmethod
    def fetch(self, season) -> dict:
        """Return the parsed snapshot.

        Raises:
            MissingExternalData: the snapshot is unreachable or not JSON.
        """
        pass
