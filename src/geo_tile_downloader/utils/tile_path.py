import os


class TilePathEncoder:
    """Maps tiles to cache file paths.

    Layout: ``<cache>/<map>/<d1>/<d2>/.../<map>_<zz>_<xxxxxxxx>_<yyyyyyyy>.<format>``
    with one quadrant digit (0-3) directory per zoom level, most significant
    level first. Zoom 0 tiles sit directly in the ``<map>`` directory. The
    layout is shared with existing caches and must not change.
    """

    def __init__(self, cache_root: str):
        self.cache_root = cache_root

    @staticmethod
    def quadrant_digits(level: int, x: int, y: int) -> str:
        """Quadrant code per level: 1 for odd x, plus 2 for odd y"""
        digits = ''
        for _ in range(level):
            code = (1 if x % 2 == 1 else 0) + (2 if y % 2 == 1 else 0)
            x //= 2
            y //= 2
            digits = str(code) + digits
        return digits

    @staticmethod
    def tile_level_path(level: int, x: int, y: int) -> str:
        """Directory segments for a tile, empty at zoom 0"""
        digits = TilePathEncoder.quadrant_digits(level, x, y)
        return os.path.join(*digits) if digits else ''

    @staticmethod
    def _pad(value: int, width: int) -> str:
        upper = 10 ** width
        if value >= upper:
            return '9' * width
        if value < 0:
            return '0' * width
        return str(value).zfill(width)

    @staticmethod
    def output_tile_name(name_prefix: str, level: int, x: int, y: int) -> str:
        """``<prefix>_<zz>_<xxxxxxxx>_<yyyyyyyy>``, fixed width and clamped"""
        return '_'.join([
            name_prefix,
            TilePathEncoder._pad(level, 2),
            TilePathEncoder._pad(x, 8),
            TilePathEncoder._pad(y, 8),
        ])

    def tile_path(self, tile_map_name: str, zoom: int, x: int, y: int, file_format: str) -> str:
        """Full cache path of one tile"""
        file_name = f"{self.output_tile_name(tile_map_name, zoom, x, y)}.{file_format}"
        level_path = self.tile_level_path(zoom, x, y)
        if level_path:
            return os.path.join(self.cache_root, tile_map_name, level_path, file_name)
        return os.path.join(self.cache_root, tile_map_name, file_name)
