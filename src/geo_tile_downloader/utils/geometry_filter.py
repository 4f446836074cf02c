import logging
from typing import Callable, Dict, List, Optional, Tuple

from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep

from geo_tile_downloader.models.region import Feature, GeometryRegion
from geo_tile_downloader.models.tile import TileCoordinate
from geo_tile_downloader.utils.tile_calculator import TileCalculator


logger = logging.getLogger(__name__)

DEFAULT_LARGE_REGION_THRESHOLD = 10000

IntersectsFn = Callable[[Polygon, BaseGeometry], bool]


class GeometryFilter:
    """Select the tiles that intersect arbitrary GeoJSON geometry.

    Candidates come from each feature's bounding box. When a feature's
    candidate rectangle at some zoom holds more than
    ``large_region_threshold`` tiles, the whole rectangle is accepted without
    intersection tests; the result may then over-include tiles but never
    misses one.

    ``intersects`` replaces the default shapely test; it receives the tile
    polygon and the feature geometry.
    """

    def __init__(self, large_region_threshold: int = DEFAULT_LARGE_REGION_THRESHOLD,
                 intersects: Optional[IntersectsFn] = None):
        self.large_region_threshold = large_region_threshold
        self._intersects = intersects

    @staticmethod
    def tile_polygon(x: int, y: int, zoom: int) -> Polygon:
        """Corner polygon of a tile, counter-clockwise from the north-west corner"""
        west, south, east, north = TileCalculator.tile_to_bounds(x, y, zoom)
        return Polygon([
            (west, north),
            (west, south),
            (east, south),
            (east, north),
            (west, north),
        ])

    def _make_test(self, feature: Feature) -> Callable[[Polygon], bool]:
        if self._intersects is not None:
            intersects = self._intersects
            return lambda tile_poly: intersects(tile_poly, feature.geometry)
        prepared = prep(feature.geometry)
        return prepared.intersects

    def get_tiles_for_geometry(self, region: GeometryRegion,
                               min_zoom: int, max_zoom: int) -> List[TileCoordinate]:
        """Unique tiles intersecting any feature of ``region``, ascending by zoom"""
        TileCalculator.validate_zoom_range(min_zoom, max_zoom)
        features = region.features
        total_zoom_levels = max_zoom - min_zoom + 1

        tiles: Dict[Tuple[int, int, int], TileCoordinate] = {}
        tests = [self._make_test(feature) for feature in features]

        for zoom in range(min_zoom, max_zoom + 1):
            logger.info("Processing zoom level %d/%d (%d%% complete)",
                        zoom, max_zoom,
                        round((zoom - min_zoom + 1) / total_zoom_levels * 100))

            for index, feature in enumerate(features):
                min_lon, min_lat, max_lon, max_lat = feature.geometry.bounds
                min_x, min_y, max_x, max_y = TileCalculator.tile_range(
                    min_lon, min_lat, max_lon, max_lat, zoom
                )
                potential_tile_count = (max_x - min_x + 1) * (max_y - min_y + 1)
                skip_intersection_check = potential_tile_count > self.large_region_threshold

                logger.info("  Processing feature %d/%d: %s (%d potential tiles)",
                            index + 1, len(features), feature.name, potential_tile_count)
                if skip_intersection_check:
                    logger.info("  %s has too many potential tiles (%d), "
                                "using bounding box approximation",
                                feature.name, potential_tile_count)

                intersects = tests[index]
                for x in range(min_x, max_x + 1):
                    for y in range(min_y, max_y + 1):
                        key = (zoom, x, y)
                        if key in tiles:
                            continue
                        if skip_intersection_check or intersects(self.tile_polygon(x, y, zoom)):
                            tiles[key] = TileCoordinate(x=x, y=y, z=zoom)

        result = list(tiles.values())
        logger.info("Tile calculation complete: %d features, zoom %d to %d, %d unique tiles",
                    len(features), min_zoom, max_zoom, len(result))
        return result

    @staticmethod
    def calculate_bounding_box(region: GeometryRegion) -> List[float]:
        """Bounding box ``[minLon, minLat, maxLon, maxLat]`` of the whole region"""
        return region.bounds
