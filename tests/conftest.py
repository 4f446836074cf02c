import threading
import time
from typing import Dict, Iterable, Optional

import pytest

from geo_tile_downloader.exceptions.tile_downloader_exceptions import NetworkError
from geo_tile_downloader.interfaces.tile_server import ITileFetcher
from geo_tile_downloader.models.tile_map import DownloaderConfig, TileMapConfig


TEST_URL = "https://tiles.example.com/{z}/{x}/{y}.png"


class DummyFetcher(ITileFetcher):
    """Fetcher double: returns fixed bytes, fails for chosen URLs"""

    def __init__(self, failing_urls: Optional[Iterable[str]] = None, delay: float = 0.0):
        self.failing_urls = set(failing_urls or [])
        self.delay = delay
        self.calls = []
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def fetch(self, url: str, timeout: float, headers: Optional[Dict[str, str]] = None) -> bytes:
        with self._lock:
            self.calls.append(url)
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if url in self.failing_urls:
                raise NetworkError(f"HTTP 503 for {url}")
            return b"\x89PNG\r\n\x1a\n" + url.encode()
        finally:
            with self._lock:
                self._in_flight -= 1


@pytest.fixture
def tile_map():
    return TileMapConfig(name="Test_Map", url=TEST_URL, format="png")


@pytest.fixture
def config(tmp_path, tile_map):
    return DownloaderConfig(tile_cache_folder=str(tmp_path / "cache"), tile_maps=[tile_map])
