#!/usr/bin/env python3
"""
Geo Tile Downloader - Main Entry Point
Downloads map tiles for a bounding box or GeoJSON area into a local tile cache
"""

import sys
import logging
from typing import List, Optional

from geo_tile_downloader.core.tile_download_manager import TileDownloadManager, parse_args
from geo_tile_downloader.exceptions.tile_downloader_exceptions import TileDownloaderException
from geo_tile_downloader.infrastructure.logging import LoggingManager


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tile downloader application"""
    args = parse_args(argv)
    try:
        # Setup logging (defaults until the config is loaded)
        LoggingManager.setup_logging({}, args.log_level)
        logger = logging.getLogger(__name__)

        concurrency = getattr(args, 'concurrency', None)
        manager = TileDownloadManager(args.config, concurrency=concurrency,
                                      show_progress=args.command != 'list-tilemaps')
        LoggingManager.setup_logging({'logging': manager.config.logging}, args.log_level)

        logger.info("Starting TileDownloader")
        return manager.run(args)

    except KeyboardInterrupt:
        print("\nDownload interrupted by user.")
        return 1
    except TileDownloaderException as e:
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
