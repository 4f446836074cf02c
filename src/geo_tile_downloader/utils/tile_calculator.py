import math
from typing import List, Tuple

from geo_tile_downloader.exceptions.tile_downloader_exceptions import RegionError
from geo_tile_downloader.models.region import BoundingBox
from geo_tile_downloader.models.tile import TileCoordinate


# Latitude where the square Web-Mercator world ends
MAX_MERCATOR_LATITUDE = 85.0511287798066


class TileCalculator:
    """Utility class for tile coordinate calculations"""

    @staticmethod
    def lat_lon_to_tile(lat_deg: float, lon_deg: float, zoom: int) -> Tuple[int, int]:
        """Convert lat/lon to tile coordinates.

        No clamping: latitudes outside the Web-Mercator range give
        meaningless indices or raise, that is the caller's concern.
        """
        n = 2 ** zoom
        lat_rad = math.radians(lat_deg)
        xtile = math.floor((lon_deg + 180.0) / 360.0 * n)
        ytile = math.floor(
            (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n
        )
        return xtile, ytile

    @staticmethod
    def tile_to_bounds(x: int, y: int, zoom: int) -> Tuple[float, float, float, float]:
        """Return geographic bounds (west, south, east, north) for an XYZ tile."""
        n = 2 ** zoom
        west = x / n * 360.0 - 180.0
        east = (x + 1) / n * 360.0 - 180.0

        def y_to_lat(y_val: int) -> float:
            return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y_val / n))))

        north = y_to_lat(y)
        south = y_to_lat(y + 1)
        return west, south, east, north

    @staticmethod
    def tile_range(min_lon: float, min_lat: float, max_lon: float, max_lat: float,
                   zoom: int) -> Tuple[int, int, int, int]:
        """Index rectangle (min_x, min_y, max_x, max_y) covering a box at one zoom.

        Latitudes are limited to the Mercator range and indices to the
        valid grid so boxes touching the poles or the antimeridian stay
        inside ``[0, 2^zoom)``.
        """
        top = min(max_lat, MAX_MERCATOR_LATITUDE)
        bottom = max(min_lat, -MAX_MERCATOR_LATITUDE)
        last = 2 ** zoom - 1

        min_x, min_y = TileCalculator.lat_lon_to_tile(top, min_lon, zoom)
        max_x, max_y = TileCalculator.lat_lon_to_tile(bottom, max_lon, zoom)
        return (
            max(0, min(min_x, last)),
            max(0, min(min_y, last)),
            max(0, min(max_x, last)),
            max(0, min(max_y, last)),
        )

    @staticmethod
    def validate_zoom_range(min_zoom: int, max_zoom: int) -> None:
        """Reject negative or inverted zoom ranges"""
        if min_zoom < 0 or max_zoom < 0:
            raise RegionError(f"Zoom levels must be non-negative: {min_zoom}-{max_zoom}")
        if min_zoom > max_zoom:
            raise RegionError(f"min_zoom ({min_zoom}) is greater than max_zoom ({max_zoom})")

    @staticmethod
    def get_tiles_for_bbox(bbox: BoundingBox, min_zoom: int, max_zoom: int) -> List[TileCoordinate]:
        """Get all tile coordinates for given bbox and zoom range"""
        tiles = []

        for zoom in range(min_zoom, max_zoom + 1):
            min_x, min_y, max_x, max_y = TileCalculator.tile_range(
                bbox.min_lon, bbox.min_lat, bbox.max_lon, bbox.max_lat, zoom
            )

            for x in range(min_x, max_x + 1):
                for y in range(min_y, max_y + 1):
                    tiles.append(TileCoordinate(x=x, y=y, z=zoom))

        return tiles

    @staticmethod
    def calculate_tile_count(bbox: BoundingBox, min_zoom: int, max_zoom: int) -> int:
        """Calculate total number of tiles for given bbox and zoom range"""
        count = 0
        for zoom in range(min_zoom, max_zoom + 1):
            min_x, min_y, max_x, max_y = TileCalculator.tile_range(
                bbox.min_lon, bbox.min_lat, bbox.max_lon, bbox.max_lat, zoom
            )
            count += (max_x - min_x + 1) * (max_y - min_y + 1)
        return count
