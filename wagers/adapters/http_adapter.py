"""Snapshot source for the published leaderboard JSON over HTTP.

Transient failures (timeouts, connection errors, 408/429/5xx) are retried
with capped exponential backoff. Anything else, or running out of
attempts, is reported as MissingExternalData.
"""

import logging
import random
import time

import requests

from .base import BaseSnapshotSource
from wagers.core.config import LEADERBOARD_URL
from wagers.core.errors import MissingExternalData
from wagers.core.pool import now_iso

logger = logging.getLogger(__name__)

RETRY_STATUS = {408, 429, 500, 502, 503, 504}


class HttpSnapshotSource(BaseSnapshotSource):
    def __init__(self, url_template: str = LEADERBOARD_URL, timeout: float = 30,
                 max_attempts: int = 3, base_delay: float = 0.5,
                 max_delay: float = 4.0, sleep=time.sleep):
        super().__init__()
        self.url_template = url_template
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def url_for(self, season) -> str:
        return self.url_template.format(season=season)

    def _backoff(self, attempt: int) -> float:
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        return delay + random.uniform(0, delay / 2)

    def fetch(self, season) -> dict:
        url = self.url_for(season)
        last_error = ''
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = requests.get(url, timeout=self.timeout,
                                    headers={'Accept': 'application/json'})
            except requests.Timeout:
                last_error = f'timed out after {self.timeout}s'
            except requests.RequestException as e:
                last_error = str(e)
            else:
                if resp.status_code == 200:
                    try:
                        data = resp.json()
                    except ValueError as e:
                        raise MissingExternalData(f'{url} did not return JSON') from e
                    self.source_info = {
                        'url': url,
                        'fetched_at': now_iso(),
                        'etag': resp.headers.get('ETag', ''),
                    }
                    logger.debug('Fetched %s (%d bytes)', url, len(resp.content or b''))
                    return data
                if resp.status_code not in RETRY_STATUS:
                    raise MissingExternalData(f'{url} returned HTTP {resp.status_code}')
                last_error = f'HTTP {resp.status_code}'

            if attempt < self.max_attempts:
                delay = self._backoff(attempt)
                logger.warning('Fetching %s failed (%s); retry %d/%d in %.1fs',
                               url, last_error, attempt, self.max_attempts - 1, delay)
                self._sleep(delay)

        raise MissingExternalData(
            f'{url} unreachable after {self.max_attempts} attempts: {last_error}')
