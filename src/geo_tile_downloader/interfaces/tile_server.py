from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from geo_tile_downloader.models.tile_map import DownloaderConfig


class ITileFetcher(ABC):
    """Interface for fetching raw tile bytes over the network"""

    @abstractmethod
    def fetch(self, url: str, timeout: float,
              headers: Optional[Dict[str, str]] = None) -> bytes:
        """Fetch the full response body; raise NetworkError on failure"""
        pass


class ITileStorage(ABC):
    """Interface for the on-disk tile cache"""

    @abstractmethod
    def file_exists(self, file_path: str) -> bool:
        """Check if a tile file is already present"""
        pass

    @abstractmethod
    def ensure_directory_exists(self, directory_path: str) -> None:
        """Create directory if it doesn't exist"""
        pass

    @abstractmethod
    def write_file(self, file_path: str, content: bytes) -> None:
        """Write the tile bytes; raise StorageError on failure"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""

    @abstractmethod
    def load_config(self, config_path: str) -> DownloaderConfig:
        """Load configuration from file"""
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration"""
        pass
