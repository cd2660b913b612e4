"""Snapshot source for a leaderboard JSON file saved on disk."""

import json
import os

from .base import BaseSnapshotSource
from wagers.core.errors import MissingExternalData
from wagers.core.pool import now_iso


class FileSnapshotSource(BaseSnapshotSource):
    def __init__(self, path: str):
        super().__init__()
        self.path = path

    def fetch(self, season) -> dict:
        if not os.path.exists(self.path):
            raise MissingExternalData(f'Snapshot file not found: {self.path}')
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise MissingExternalData(f'Cannot read snapshot {self.path}: {e}') from e

        self.source_info = {
            'url': os.path.abspath(self.path),
            'fetched_at': now_iso(),
            'etag': '',
        }
        return data
