"""
Tests for TilePathEncoder
"""

import os

from geo_tile_downloader.utils.tile_path import TilePathEncoder


ROOT = os.path.join("cache", "root")


class TestTilePathEncoder:
    """Test cases for the cache path layout"""

    def test_zoom_zero_sits_in_map_directory(self):
        path = TilePathEncoder(ROOT).tile_path("OSM_Map", 0, 0, 0, "png")

        assert path == os.path.join(ROOT, "OSM_Map", "OSM_Map_00_00000000_00000000.png")

    def test_one_directory_per_level(self):
        encoder = TilePathEncoder(ROOT)

        assert encoder.tile_path("OSM_Map", 1, 1, 0, "png") == os.path.join(
            ROOT, "OSM_Map", "1", "OSM_Map_01_00000001_00000000.png")
        assert encoder.tile_path("Sat", 2, 3, 2, "jpg") == os.path.join(
            ROOT, "Sat", "3", "1", "Sat_02_00000003_00000002.jpg")

    def test_quadrant_digits_most_significant_first(self):
        assert TilePathEncoder.quadrant_digits(0, 0, 0) == ""
        assert TilePathEncoder.quadrant_digits(3, 3, 5) == "213"
        assert TilePathEncoder.quadrant_digits(2, 0, 3) == "22"

    def test_level_path_empty_at_zoom_zero(self):
        assert TilePathEncoder.tile_level_path(0, 0, 0) == ""
        assert TilePathEncoder.tile_level_path(3, 3, 5) == os.path.join("2", "1", "3")

    def test_output_tile_name_padding(self):
        assert TilePathEncoder.output_tile_name("m", 5, 12, 345) == "m_05_00000012_00000345"
        assert TilePathEncoder.output_tile_name("m", 18, 99999999, 0) == "m_18_99999999_00000000"

    def test_output_tile_name_clamping(self):
        assert TilePathEncoder.output_tile_name("m", 100, 10 ** 8, -1) == "m_99_99999999_00000000"
        assert TilePathEncoder.output_tile_name("m", -3, 7, 10 ** 9) == "m_00_00000007_99999999"

    def test_paths_are_deterministic_and_distinct(self):
        encoder = TilePathEncoder(ROOT)
        paths = []
        for z in range(0, 5):
            for x in range(2 ** z):
                for y in range(2 ** z):
                    path = encoder.tile_path("OSM_Map", z, x, y, "png")
                    assert path == encoder.tile_path("OSM_Map", z, x, y, "png")
                    paths.append(path)

        assert len(paths) == len(set(paths))
