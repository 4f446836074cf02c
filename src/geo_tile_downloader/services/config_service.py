import json
import os
from typing import Any, Dict, List, Optional

from geo_tile_downloader.exceptions.tile_downloader_exceptions import ConfigurationError, ValidationError
from geo_tile_downloader.interfaces.tile_server import IConfigLoader
from geo_tile_downloader.models.tile_map import DownloaderConfig, TileMapConfig


DEFAULT_CACHE_FOLDER = 'tile_cache'


class ConfigService(IConfigLoader):
    """Service for loading and validating configuration"""

    def load_config(self, config_path: str) -> DownloaderConfig:
        """Load configuration from JSON file"""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file {config_path} not found!")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading config: {e}")

        self.validate_config(config)
        return self._process_config(config, base_dir=os.getcwd())

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration structure"""
        if not isinstance(config, dict):
            raise ValidationError("Configuration must be a JSON object")

        if 'TileMaps' not in config:
            raise ValidationError("Missing required key: TileMaps")

        if not isinstance(config['TileMaps'], list):
            raise ValidationError("TileMaps must be a list")

        seen = set()
        for index, tile_map in enumerate(config['TileMaps']):
            if not isinstance(tile_map, dict):
                raise ValidationError(f"TileMaps[{index}] must be an object")
            for key in ('Name', 'Url', 'Format'):
                if not tile_map.get(key):
                    raise ValidationError(f"TileMaps[{index}] is missing {key}")
            if tile_map['Name'] in seen:
                raise ValidationError(f"Duplicate tile map name: {tile_map['Name']}")
            seen.add(tile_map['Name'])

        for key in ('Concurrency', 'LargeRegionThreshold'):
            if key in config and (not isinstance(config[key], int) or config[key] < 1):
                raise ValidationError(f"{key} must be a positive integer")

        if 'Timeout' in config and (not isinstance(config['Timeout'], (int, float))
                                    or config['Timeout'] <= 0):
            raise ValidationError("Timeout must be a positive number")

        return True

    def _process_config(self, config: Dict[str, Any], base_dir: str) -> DownloaderConfig:
        """Convert raw JSON into model objects and apply defaults"""
        tile_maps = []
        for tile_map_data in config['TileMaps']:
            tile_map = TileMapConfig(
                name=tile_map_data['Name'],
                url=tile_map_data['Url'],
                format=tile_map_data['Format'],
                subdomains=self._parse_subdomains(tile_map_data.get('Subdomains')),
                headers=tile_map_data.get('Headers', {})
            )
            tile_map.validate()
            tile_maps.append(tile_map)

        cache_folder = (config.get('TileCacheFolder') or '').strip()
        if not cache_folder:
            cache_folder = os.path.join(base_dir, DEFAULT_CACHE_FOLDER)
        cache_folder = os.path.abspath(cache_folder)

        try:
            os.makedirs(cache_folder, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot create tile cache folder {cache_folder}: {e}")

        return DownloaderConfig(
            tile_cache_folder=cache_folder,
            tile_maps=tile_maps,
            concurrency=config.get('Concurrency', 5),
            timeout=float(config.get('Timeout', 30)),
            large_region_threshold=config.get('LargeRegionThreshold', 10000),
            logging=config.get('logging', {})
        )

    @staticmethod
    def _parse_subdomains(value: Optional[Any]) -> List[str]:
        """Accept ``"a,b,c"`` or ``["a", "b", "c"]``"""
        if not value:
            return []
        if isinstance(value, str):
            parts = value.split(',')
        elif isinstance(value, list):
            parts = [str(part) for part in value]
        else:
            raise ValidationError(f"Subdomains must be a string or a list, got {type(value).__name__}")
        return [part.strip() for part in parts if part.strip()]
