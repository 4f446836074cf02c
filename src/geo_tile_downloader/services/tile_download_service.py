import logging
import os
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from geo_tile_downloader.exceptions.tile_downloader_exceptions import (
    ConfigurationError, FetchFailure, RegionError
)
from geo_tile_downloader.interfaces.tile_server import ITileFetcher, ITileStorage
from geo_tile_downloader.models.region import BoundingBox, GeometryRegion, Region
from geo_tile_downloader.models.tile import (
    DownloadStatistics, DownloadTask, TileCoordinate, TileState
)
from geo_tile_downloader.models.tile_map import DownloaderConfig
from geo_tile_downloader.services.http_fetch_service import HttpTileFetcher
from geo_tile_downloader.utils.file_utils import FileUtils
from geo_tile_downloader.utils.geometry_filter import GeometryFilter
from geo_tile_downloader.utils.tile_calculator import TileCalculator
from geo_tile_downloader.utils.tile_path import TilePathEncoder


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[DownloadStatistics, int], None]


class StatisticsTracker:
    """Lock-guarded statistics and failure set shared by the worker threads"""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats = DownloadStatistics()
        self._failed: List[DownloadTask] = []

    def reset(self, total_tiles: int = 0) -> DownloadStatistics:
        with self._lock:
            self._stats = DownloadStatistics(calculated_tiles=total_tiles,
                                             total_tiles=total_tiles)
            self._failed = []
            return self._stats.copy()

    def start_tile(self) -> None:
        with self._lock:
            self._stats.in_progress += 1

    def finish_tile(self, state: TileState,
                    task: Optional[DownloadTask] = None) -> DownloadStatistics:
        """Record a terminal state and return a consistent snapshot"""
        with self._lock:
            if state is TileState.SKIPPED:
                self._stats.skipped_tiles += 1
            elif state is TileState.DOWNLOADED:
                self._stats.downloaded_tiles += 1
            elif state is TileState.FAILED:
                self._stats.failed_tiles += 1
                self._failed.append(task)
            else:
                raise ValueError(f"Not a terminal tile state: {state}")
            self._stats.in_progress -= 1
            return self._stats.copy()

    def snapshot(self) -> DownloadStatistics:
        with self._lock:
            return self._stats.copy()

    def failed_tasks(self) -> List[DownloadTask]:
        with self._lock:
            return list(self._failed)

    def take_failed(self) -> List[DownloadTask]:
        """Swap the failure set for an empty one"""
        with self._lock:
            failed, self._failed = self._failed, []
            return failed

    def requeue_failed(self, tasks: Sequence[DownloadTask]) -> DownloadStatistics:
        """Count tasks that were never attempted as failed again"""
        with self._lock:
            self._stats.failed_tiles += len(tasks)
            self._failed.extend(tasks)
            return self._stats.copy()


class TileDownloadService:
    """Downloads the tiles of a region into the tile cache.

    Tiles are fetched by a pool of ``concurrency`` threads. A tile whose
    cache file already exists is skipped, so operations can be re-run.
    Per-tile failures never raise: they are counted in the statistics and
    kept in a failure set that ``retry_failed`` replays.
    """

    def __init__(self, config: DownloaderConfig,
                 concurrency: Optional[int] = None,
                 fetcher: Optional[ITileFetcher] = None,
                 storage: Optional[ITileStorage] = None,
                 geometry_filter: Optional[GeometryFilter] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.concurrency = concurrency if concurrency is not None else config.concurrency
        if self.concurrency < 1:
            raise ConfigurationError(f"Concurrency must be at least 1, got {self.concurrency}")
        self.timeout = config.timeout
        self.fetcher = fetcher or HttpTileFetcher(pool_size=self.concurrency)
        self.storage = storage or FileUtils()
        self.geometry_filter = geometry_filter or GeometryFilter(config.large_region_threshold)
        self.path_encoder = TilePathEncoder(config.tile_cache_folder)
        self._rng = rng or random.Random()

        self._tracker = StatisticsTracker()
        self._cancel_event = threading.Event()
        self._progress_callback: Optional[ProgressCallback] = None

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Register ``callback(stats, percent)``.

        It runs synchronously on the worker thread that finished a tile and
        must return quickly.
        """
        self._progress_callback = callback

    def get_stats(self) -> DownloadStatistics:
        return self._tracker.snapshot()

    def get_failed_tasks(self) -> List[DownloadTask]:
        return self._tracker.failed_tasks()

    def cancel(self) -> None:
        """Stop starting new tiles; tiles already in flight still finish"""
        self._cancel_event.set()

    def _update_progress(self, stats: DownloadStatistics) -> None:
        callback = self._progress_callback
        if callback is None:
            return
        try:
            callback(stats, stats.progress_percent())
        except Exception:
            logger.exception("Progress callback failed")

    def calculate_tiles(self, region: Region, min_zoom: int, max_zoom: int) -> List[TileCoordinate]:
        """Tiles covering ``region`` for every zoom in the range"""
        TileCalculator.validate_zoom_range(min_zoom, max_zoom)
        if isinstance(region, BoundingBox):
            return TileCalculator.get_tiles_for_bbox(region, min_zoom, max_zoom)
        if isinstance(region, GeometryRegion):
            logger.info("Calculating tiles for GeoJSON, this may take some time "
                        "for complex geometry or high zoom levels")
            return self.geometry_filter.get_tiles_for_geometry(region, min_zoom, max_zoom)
        raise RegionError(f"Unsupported region type: {type(region).__name__}")

    def download_tile(self, task: DownloadTask) -> Optional[bool]:
        """Fetch one tile unless it is cached.

        True on skip or download, False on failure, None when the operation
        was cancelled before the tile started.
        """
        if self._cancel_event.is_set():
            return None

        tile = task.tile
        tile_map = self.config.get_tile_map_by_name(task.tile_map_name)
        url = tile_map.get_tile_url(tile.z, tile.x, tile.y, self._rng)
        file_path = self.path_encoder.tile_path(task.tile_map_name, tile.z, tile.x, tile.y,
                                                tile_map.format)

        self._tracker.start_tile()
        try:
            if self.storage.file_exists(file_path):
                state = TileState.SKIPPED
                logger.debug("Tile already exists: %s", file_path)
            else:
                self.storage.ensure_directory_exists(os.path.dirname(file_path))
                content = self.fetcher.fetch(url, self.timeout, tile_map.get_headers())
                self.storage.write_file(file_path, content)
                state = TileState.DOWNLOADED
                logger.debug("Downloaded tile: %s", file_path)
        except FetchFailure as e:
            state = TileState.FAILED
            logger.warning("Failed to download tile (%s, %s): %s",
                           task.tile_map_name, tile.key(), e)
        except Exception as e:
            state = TileState.FAILED
            logger.warning("Failed to download tile (%s, %s): unexpected %s: %s",
                           task.tile_map_name, tile.key(), type(e).__name__, e)

        stats = self._tracker.finish_tile(state, task if state is TileState.FAILED else None)
        self._update_progress(stats)
        return state is not TileState.FAILED

    @staticmethod
    def _was_attempted(future: Future) -> bool:
        if future.cancelled() or future.exception() is not None:
            return False
        return future.result() is not None

    def _run(self, tasks: Sequence[DownloadTask],
             requeue_unstarted: bool = False) -> DownloadStatistics:
        """Reset statistics, drain ``tasks`` through the pool and wait.

        With ``requeue_unstarted`` the tasks a cancelled or interrupted pass
        never attempted stay in the failure set.
        """
        self._cancel_event.clear()
        self._update_progress(self._tracker.reset(len(tasks)))

        with ThreadPoolExecutor(max_workers=self.concurrency,
                                thread_name_prefix='tile-download') as executor:
            futures = {executor.submit(self.download_tile, task): task for task in tasks}
            try:
                for future in as_completed(futures):
                    future.result()
            except (ConfigurationError, KeyboardInterrupt):
                # Queued tiles return immediately so the pool can drain
                self._cancel_event.set()
                raise
            finally:
                if requeue_unstarted:
                    executor.shutdown(wait=True)
                    unstarted = [task for future, task in futures.items()
                                 if not self._was_attempted(future)]
                    if unstarted:
                        logger.warning("%d tiles were not retried and remain failed",
                                       len(unstarted))
                        self._tracker.requeue_failed(unstarted)

        stats = self._tracker.snapshot()
        self._update_progress(stats)
        return stats

    def download_region(self, tile_map_name: str, region: Region,
                        min_zoom: int, max_zoom: int) -> DownloadStatistics:
        """Download every tile of ``region`` and return the final statistics"""
        # Fail before touching the previous operation's results
        self.config.get_tile_map_by_name(tile_map_name)
        tiles = self.calculate_tiles(region, min_zoom, max_zoom)

        logger.info("Total tiles to download: %d (zoom %d-%d)", len(tiles), min_zoom, max_zoom)
        tasks = [DownloadTask(tile_map_name=tile_map_name, tile=tile) for tile in tiles]
        stats = self._run(tasks)
        self._log_summary("Download Statistics", stats)
        return stats

    def download_tiles_for_bounding_box(self, tile_map_name: str,
                                        bounding_box: Union[BoundingBox, Sequence[float]],
                                        min_zoom: int, max_zoom: int) -> DownloadStatistics:
        """Download tiles for ``[minLon, minLat, maxLon, maxLat]``"""
        if not isinstance(bounding_box, BoundingBox):
            bounding_box = BoundingBox.from_list(bounding_box)
        logger.info("Downloading tiles for bounding box: %s (zoom %d-%d)",
                    bounding_box.to_list(), min_zoom, max_zoom)
        return self.download_region(tile_map_name, bounding_box, min_zoom, max_zoom)

    def download_tiles_for_geojson(self, tile_map_name: str,
                                   geojson: Union[GeometryRegion, Dict[str, Any]],
                                   min_zoom: int, max_zoom: int) -> DownloadStatistics:
        """Download tiles intersecting a GeoJSON object"""
        if not isinstance(geojson, GeometryRegion):
            geojson = GeometryRegion.from_geojson(geojson)
        logger.info("Downloading tiles for GeoJSON with %d features (zoom %d-%d)",
                    len(geojson.features), min_zoom, max_zoom)
        return self.download_region(tile_map_name, geojson, min_zoom, max_zoom)

    def retry_failed(self) -> DownloadStatistics:
        """Re-run exactly the tiles that failed in the previous operation"""
        failed = self._tracker.take_failed()
        if not failed:
            logger.info("No failed downloads to retry")
            return DownloadStatistics()

        logger.info("Retrying %d failed downloads", len(failed))
        stats = self._run(failed, requeue_unstarted=True)
        self._log_summary("Retry Statistics", stats)
        return stats

    @staticmethod
    def _log_summary(title: str, stats: DownloadStatistics) -> None:
        logger.info(
            "%s: total=%d downloaded=%d skipped=%d failed=%d success_rate=%d%%",
            title, stats.total_tiles, stats.downloaded_tiles, stats.skipped_tiles,
            stats.failed_tiles, stats.success_rate()
        )
