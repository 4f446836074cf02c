import threading
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from geo_tile_downloader.exceptions.tile_downloader_exceptions import NetworkError
from geo_tile_downloader.interfaces.tile_server import ITileFetcher


DEFAULT_USER_AGENT = 'geo-tile-downloader/1.0'


class HttpTileFetcher(ITileFetcher):
    """Fetches tiles with requests, one session per worker thread"""

    def __init__(self, pool_size: int = 5, user_agent: str = DEFAULT_USER_AGENT):
        self.pool_size = pool_size
        self.user_agent = user_agent
        self._local = threading.local()

    def create_session(self) -> requests.Session:
        """Create session for downloads"""
        session = requests.Session()

        # Failed tiles are retried only by an explicit retry pass
        retry_strategy = Retry(
            total=10,
            connect=0,
            read=0,
            status=0,
            other=0,
            redirect=5,
            allowed_methods=["GET"]
        )

        adapter = HTTPAdapter(
            max_retries=retry_strategy,
            pool_connections=self.pool_size,
            pool_maxsize=self.pool_size
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers['User-Agent'] = self.user_agent

        return session

    def _get_session(self) -> requests.Session:
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self.create_session()
            self._local.session = session
        return session

    def fetch(self, url: str, timeout: float,
              headers: Optional[Dict[str, str]] = None) -> bytes:
        """GET a tile and return its body"""
        try:
            response = self._get_session().get(url, headers=headers, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"GET {url} failed: {e}")

        # Unfollowed redirects and other non-2xx answers are not tiles
        if not 200 <= response.status_code < 300:
            raise NetworkError(f"GET {url} returned HTTP {response.status_code}")

        content = response.content
        # Reject empty content to avoid creating zero-byte tiles
        if not content:
            raise NetworkError(f"Empty content received from {url}")
        return content
