import json
import os
import uuid
from typing import Any

from geo_tile_downloader.exceptions.tile_downloader_exceptions import RegionError, StorageError
from geo_tile_downloader.interfaces.tile_server import ITileStorage


class FileUtils(ITileStorage):
    """File operations for the tile cache"""

    def ensure_directory_exists(self, directory_path: str) -> None:
        """Create directory if it doesn't exist"""
        try:
            os.makedirs(directory_path, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory {directory_path}: {e}")

    def file_exists(self, file_path: str) -> bool:
        """Check if file exists"""
        return os.path.exists(file_path)

    def write_file(self, file_path: str, content: bytes) -> None:
        """Write through a unique temp file so readers never see a partial tile"""
        temp_path = f"{file_path}.{uuid.uuid4().hex}.tmp"
        try:
            with open(temp_path, 'wb') as f:
                f.write(content)
            os.replace(temp_path, file_path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise StorageError(f"Cannot write {file_path}: {e}")

    @staticmethod
    def read_json(file_path: str) -> Any:
        """Read a GeoJSON (or any JSON) input file"""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except OSError as e:
            raise RegionError(f"Cannot read {file_path}: {e}")
        except json.JSONDecodeError as e:
            raise RegionError(f"Invalid JSON in {file_path}: {e}")
