import argparse
import os
import sys
import threading
from typing import List, Optional

from geo_tile_downloader.models.region import BoundingBox, GeometryRegion
from geo_tile_downloader.models.tile import DownloadStatistics
from geo_tile_downloader.services.config_service import ConfigService
from geo_tile_downloader.services.tile_download_service import TileDownloadService
from geo_tile_downloader.utils.file_utils import FileUtils


class ProgressPrinter:
    """Single-line progress bar on stdout"""

    BAR_LENGTH = 30

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def __call__(self, stats: DownloadStatistics, percent: int) -> None:
        filled = round(self.BAR_LENGTH * percent / 100)
        bar = '#' * filled + '-' * (self.BAR_LENGTH - filled)
        line = (f"\r\x1b[KProgress: [{bar}] {percent}% | "
                f"Downloaded: {stats.downloaded_tiles} | "
                f"Skipped: {stats.skipped_tiles} | "
                f"Failed: {stats.failed_tiles} | "
                f"In Progress: {stats.in_progress} | "
                f"Total: {stats.total_tiles}")
        with self._lock:
            self.stream.write(line)
            self.stream.flush()


class TileDownloadManager:
    """Main manager class for tile downloading operations"""

    def __init__(self, config_path: str = "config.json", concurrency: Optional[int] = None,
                 show_progress: bool = True):
        self.config_service = ConfigService()
        self.config = self.config_service.load_config(config_path)
        self.download_service = TileDownloadService(self.config, concurrency=concurrency)
        if show_progress:
            self.download_service.set_progress_callback(ProgressPrinter())

    def list_tile_maps(self) -> None:
        """List available tile maps"""
        print("Available tile maps:")
        for tile_map in self.config.tile_maps:
            print(f"  - {tile_map.name}: {tile_map.url}")

    def download_bbox(self, tile_map_name: str, bbox: BoundingBox,
                      min_zoom: int, max_zoom: int, retries: int = 1) -> DownloadStatistics:
        """Download tiles for a bounding box, then retry failures"""
        print(f"Downloading tiles for bounding box: {bbox.to_list()} (zoom {min_zoom}-{max_zoom})")
        print("Press Ctrl+C to cancel\n")
        stats = self.download_service.download_region(tile_map_name, bbox, min_zoom, max_zoom)
        self.print_stats("Download Statistics", stats)
        return self._retry_failures(stats, retries)

    def download_geojson(self, tile_map_name: str, geojson_path: str,
                         min_zoom: int, max_zoom: int, retries: int = 1) -> DownloadStatistics:
        """Download tiles for a GeoJSON file, then retry failures"""
        geojson_path = os.path.abspath(geojson_path)
        region = GeometryRegion.from_geojson(FileUtils.read_json(geojson_path))
        print(f"Downloading tiles for GeoJSON: {geojson_path} (zoom {min_zoom}-{max_zoom})")
        print("Press Ctrl+C to cancel\n")
        stats = self.download_service.download_region(tile_map_name, region, min_zoom, max_zoom)
        self.print_stats("Download Statistics", stats)
        return self._retry_failures(stats, retries)

    def _retry_failures(self, stats: DownloadStatistics, retries: int) -> DownloadStatistics:
        attempt = 0
        while stats.failed_tiles > 0 and attempt < retries:
            attempt += 1
            print(f"\nRetrying {stats.failed_tiles} failed downloads (pass {attempt}/{retries})...")
            stats = self.download_service.retry_failed()
            self.print_stats("Retry Statistics", stats)
        return stats

    @staticmethod
    def print_stats(title: str, stats: DownloadStatistics) -> None:
        print(f"\n\n{title}:")
        print(f"- Total Tiles: {stats.total_tiles}")
        print(f"- Downloaded: {stats.downloaded_tiles}")
        print(f"- Skipped (Already Exist): {stats.skipped_tiles}")
        print(f"- Failed: {stats.failed_tiles}")
        print(f"- Success Rate: {stats.success_rate()}%")

    def run(self, args: argparse.Namespace) -> int:
        """Execute a parsed command; returns the process exit status"""
        if args.command == 'list-tilemaps':
            self.list_tile_maps()
            return 0

        if args.command == 'download-bbox':
            stats = self.download_bbox(args.tilemap, BoundingBox.from_string(args.bbox),
                                       args.min_zoom, args.max_zoom, args.retries)
        else:
            stats = self.download_geojson(args.tilemap, args.geojson,
                                          args.min_zoom, args.max_zoom, args.retries)

        if stats.failed_tiles > 0:
            print(f"\n{stats.failed_tiles} tiles could not be downloaded.")
            return 1
        print("\nDownload completed successfully!")
        return 0


def build_parser() -> argparse.ArgumentParser:
    """Command-line interface definition"""
    parser = argparse.ArgumentParser(
        prog='tile-downloader',
        description='Download map tiles for a bounding box or GeoJSON area into a local tile cache.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            'Examples:\n\n'
            '  tile-downloader download-bbox --tilemap OSM_Map --bbox=-74.01,40.70,-73.96,40.75 '
            '--min-zoom 10 --max-zoom 15\n'
            '  tile-downloader download-geojson --tilemap OSM_Map --geojson ./area.geojson '
            '--min-zoom 10 --max-zoom 15\n'
            '  tile-downloader list-tilemaps\n\n'
            'Output layout: <TileCacheFolder>/<tilemap>/<quadrant dirs>/<tilemap>_<zz>_<x>_<y>.<format>'
        )
    )
    parser.add_argument('--config', default='config.json', help='Path to config.json (default: ./config.json)')
    parser.add_argument('--log-level', default=None, help='Override the configured log level (e.g. DEBUG)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--tilemap', required=True, help='Tile map name from config.json -> TileMaps')
    common.add_argument('--min-zoom', type=int, default=0, help='Minimum zoom level (default: 0)')
    common.add_argument('--max-zoom', type=int, default=18, help='Maximum zoom level (default: 18)')
    common.add_argument('--concurrency', type=int, default=None,
                        help='Number of concurrent downloads (default: config Concurrency or 5)')
    common.add_argument('--retries', type=int, default=1,
                        help='Retry passes over failed tiles after the download (default: 1)')

    bbox_parser = subparsers.add_parser('download-bbox', parents=[common],
                                        help='Download tiles for a bounding box')
    bbox_parser.add_argument('--bbox', required=True, help='Bounding box as minLon,minLat,maxLon,maxLat (use --bbox=... when minLon is negative)')

    geojson_parser = subparsers.add_parser('download-geojson', parents=[common],
                                           help='Download tiles for a GeoJSON file')
    geojson_parser.add_argument('--geojson', required=True, help='Path to a GeoJSON file')

    subparsers.add_parser('list-tilemaps', help='List available tile maps')

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)
