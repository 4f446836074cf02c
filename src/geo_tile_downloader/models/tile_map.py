import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from geo_tile_downloader.exceptions.tile_downloader_exceptions import (
    ConfigurationError, ValidationError
)


REQUIRED_PLACEHOLDERS = ('{x}', '{y}', '{z}')
SUBDOMAIN_PLACEHOLDER = '{s}'


@dataclass
class TileMapConfig:
    """Data model for a remote tile map"""
    name: str
    url: str
    format: str
    subdomains: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Check the URL template carries every placeholder it needs"""
        missing = [p for p in REQUIRED_PLACEHOLDERS if p not in self.url]
        if missing:
            raise ValidationError(
                f"Tile map '{self.name}' URL is missing placeholders: {', '.join(missing)}"
            )
        if SUBDOMAIN_PLACEHOLDER in self.url and not self.subdomains:
            raise ValidationError(
                f"Tile map '{self.name}' URL uses {{s}} but no subdomains are configured"
            )
        if not self.format:
            raise ValidationError(f"Tile map '{self.name}' has no format")

    def get_tile_url(self, zoom: int, x: int, y: int,
                     rng: Optional[random.Random] = None) -> str:
        """Generate tile URL for given coordinates.

        ``{s}`` is replaced with a subdomain picked uniformly at random.
        """
        url = (self.url
               .replace('{x}', str(x))
               .replace('{y}', str(y))
               .replace('{z}', str(zoom)))
        if self.subdomains and SUBDOMAIN_PLACEHOLDER in url:
            subdomain = (rng or random).choice(self.subdomains)
            url = url.replace(SUBDOMAIN_PLACEHOLDER, subdomain)
        return url

    def get_headers(self) -> Dict[str, str]:
        """Get request headers"""
        return self.headers.copy()


@dataclass
class DownloaderConfig:
    """Application configuration"""
    tile_cache_folder: str
    tile_maps: List[TileMapConfig]
    concurrency: int = 5
    timeout: float = 30.0
    large_region_threshold: int = 10000
    logging: Dict[str, str] = field(default_factory=dict)

    def get_tile_map_by_name(self, name: str) -> TileMapConfig:
        """Look up a tile map, failing if it is not configured"""
        for tile_map in self.tile_maps:
            if tile_map.name == name:
                return tile_map
        raise ConfigurationError(f'Tile map "{name}" not found in configuration')

