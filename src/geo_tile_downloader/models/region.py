import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from shapely import make_valid
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from geo_tile_downloader.exceptions.tile_downloader_exceptions import RegionError


class Region:
    """Base of the region variants accepted by the fetch engine.

    Exactly two variants exist: ``BoundingBox`` and ``GeometryRegion``.
    """
    pass


@dataclass(frozen=True)
class BoundingBox(Region):
    """Rectangular region in degrees"""
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def __post_init__(self):
        values = (self.min_lon, self.min_lat, self.max_lon, self.max_lat)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            raise RegionError(f"Bounding box values must be finite numbers: {list(values)}")
        if not (-180.0 <= self.min_lon <= 180.0 and -180.0 <= self.max_lon <= 180.0):
            raise RegionError(f"Longitude out of range [-180, 180]: {list(values)}")
        if not (-90.0 <= self.min_lat <= 90.0 and -90.0 <= self.max_lat <= 90.0):
            raise RegionError(f"Latitude out of range [-90, 90]: {list(values)}")
        if self.min_lon >= self.max_lon:
            raise RegionError(f"min_lon must be smaller than max_lon: {list(values)}")
        if self.min_lat >= self.max_lat:
            raise RegionError(f"min_lat must be smaller than max_lat: {list(values)}")

    @classmethod
    def from_list(cls, values: Sequence[float]) -> 'BoundingBox':
        """Build from ``[minLon, minLat, maxLon, maxLat]``"""
        if len(values) != 4:
            raise RegionError(f"Bounding box needs 4 values, got {len(values)}")
        try:
            floats = [float(v) for v in values]
        except (TypeError, ValueError):
            raise RegionError(f"Bounding box values must be numbers: {list(values)}")
        return cls(*floats)

    @classmethod
    def from_string(cls, text: str) -> 'BoundingBox':
        """Parse ``"minLon,minLat,maxLon,maxLat"``"""
        try:
            values = [float(part) for part in text.split(',')]
        except ValueError:
            raise RegionError(f"Invalid bounding box: {text!r}")
        return cls.from_list(values)

    def to_list(self) -> List[float]:
        return [self.min_lon, self.min_lat, self.max_lon, self.max_lat]


@dataclass(frozen=True)
class Feature:
    """A named geometry taken from GeoJSON input"""
    name: str
    geometry: BaseGeometry


@dataclass(frozen=True)
class GeometryRegion(Region):
    """Region made of one or more GeoJSON features"""
    features: Tuple[Feature, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.features:
            raise RegionError("Geometry region contains no usable features")

    @classmethod
    def from_geojson(cls, geojson: Dict[str, Any]) -> 'GeometryRegion':
        """Decompose a FeatureCollection, Feature or bare geometry into features"""
        if not isinstance(geojson, dict) or 'type' not in geojson:
            raise RegionError("GeoJSON input must be an object with a 'type' member")

        geojson_type = geojson['type']
        if geojson_type == 'FeatureCollection':
            raw_features = geojson.get('features') or []
        elif geojson_type == 'Feature':
            raw_features = [geojson]
        else:
            raw_features = [{'type': 'Feature', 'properties': {}, 'geometry': geojson}]

        features = []
        for index, raw in enumerate(raw_features):
            if not isinstance(raw, dict):
                raise RegionError(f"Feature {index + 1} is not a GeoJSON object")
            properties = raw.get('properties') or {}
            name = properties.get('name') or f"Feature {index + 1}"
            geometry = cls._build_geometry(raw.get('geometry'), name)
            features.append(Feature(name=name, geometry=geometry))

        return cls(features=tuple(features))

    @staticmethod
    def _build_geometry(geometry_data: Any, name: str) -> BaseGeometry:
        if not geometry_data:
            raise RegionError(f"{name} has no geometry")
        try:
            geometry = shape(geometry_data)
        except Exception as e:
            raise RegionError(f"{name} has invalid geometry: {e}")
        if geometry.is_empty:
            raise RegionError(f"{name} has an empty geometry")
        # Repair keeps every part of a self-intersecting shape
        if not geometry.is_valid:
            geometry = make_valid(geometry)
            if geometry.is_empty:
                raise RegionError(f"{name} geometry could not be repaired")
        return geometry

    @property
    def bounds(self) -> List[float]:
        """Overall ``[minLon, minLat, maxLon, maxLat]`` of every feature"""
        all_bounds = [feature.geometry.bounds for feature in self.features]
        return [
            min(b[0] for b in all_bounds),
            min(b[1] for b in all_bounds),
            max(b[2] for b in all_bounds),
            max(b[3] for b in all_bounds),
        ]
