"""
Tests for region models
"""

import pytest
from shapely.geometry import Point

from geo_tile_downloader.exceptions.tile_downloader_exceptions import RegionError
from geo_tile_downloader.models.region import BoundingBox, GeometryRegion


class TestBoundingBox:

    def test_from_string(self):
        bbox = BoundingBox.from_string("-74.01,40.70,-73.96,40.75")

        assert bbox.to_list() == [-74.01, 40.70, -73.96, 40.75]

    @pytest.mark.parametrize("values", [
        [-73.96, 40.70, -74.01, 40.75],   # lon inverted
        [-74.01, 40.75, -73.96, 40.70],   # lat inverted
        [-74.01, 40.70, -74.01, 40.75],   # zero width
        [-200.0, 40.70, -73.96, 40.75],   # lon out of range
        [-74.01, -95.0, -73.96, 40.75],   # lat out of range
        [float('nan'), 40.70, -73.96, 40.75],
        [-74.01, 40.70, -73.96],
    ])
    def test_invalid_boxes(self, values):
        with pytest.raises(RegionError):
            BoundingBox.from_list(values)

    def test_non_numeric_string(self):
        with pytest.raises(RegionError):
            BoundingBox.from_string("a,b,c,d")


class TestGeometryRegion:

    def test_feature_collection_names(self):
        region = GeometryRegion.from_geojson({
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"name": "Park"},
                 "geometry": {"type": "Point", "coordinates": [1.0, 2.0]}},
                {"type": "Feature", "properties": None,
                 "geometry": {"type": "Point", "coordinates": [3.0, 4.0]}},
            ],
        })

        assert [f.name for f in region.features] == ["Park", "Feature 2"]

    def test_bare_geometry_is_wrapped(self):
        region = GeometryRegion.from_geojson({"type": "Point", "coordinates": [1.0, 2.0]})

        assert len(region.features) == 1
        assert region.bounds == [1.0, 2.0, 1.0, 2.0]

    def test_invalid_polygon_is_repaired(self):
        bowtie = {"type": "Polygon", "coordinates": [[[0, 0], [10, 10], [10, 0], [0, 10], [0, 0]]]}

        geometry = GeometryRegion.from_geojson(bowtie).features[0].geometry

        assert geometry.is_valid
        # Both triangles of the bowtie survive, 25 square degrees each
        assert geometry.area == pytest.approx(50.0)
        assert geometry.contains(Point(1, 5))
        assert geometry.contains(Point(9, 5))
        assert geometry.bounds == (0.0, 0.0, 10.0, 10.0)

    @pytest.mark.parametrize("geojson", [
        {"type": "FeatureCollection", "features": []},
        {"type": "Feature", "properties": {}, "geometry": None},
        {"type": "Polygon", "coordinates": []},
        {"type": "Banana", "coordinates": [1, 2]},
        {"coordinates": [1, 2]},
        [],
    ])
    def test_unusable_geojson(self, geojson):
        with pytest.raises(RegionError):
            GeometryRegion.from_geojson(geojson)
