from dataclasses import dataclass, replace
from enum import Enum


class TileState(Enum):
    """Lifecycle of one tile within an operation"""
    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    SKIPPED = 'skipped'
    DOWNLOADED = 'downloaded'
    FAILED = 'failed'


@dataclass(frozen=True)
class TileCoordinate:
    """One raster tile in the slippy-map scheme"""
    x: int
    y: int
    z: int

    def key(self) -> str:
        """Unique ``z/x/y`` key"""
        return f"{self.z}/{self.x}/{self.y}"


@dataclass(frozen=True)
class DownloadTask:
    """Unit of work for the fetch engine"""
    tile_map_name: str
    tile: TileCoordinate


@dataclass
class DownloadStatistics:
    """Counters for one download operation"""
    calculated_tiles: int = 0
    total_tiles: int = 0
    downloaded_tiles: int = 0
    skipped_tiles: int = 0
    failed_tiles: int = 0
    in_progress: int = 0

    @property
    def completed_tiles(self) -> int:
        """Tiles that reached a terminal state"""
        return self.downloaded_tiles + self.skipped_tiles + self.failed_tiles

    def progress_percent(self) -> int:
        """Completed share of the total, rounded half up to an integer percent"""
        if self.total_tiles <= 0:
            return 0
        return int(100 * self.completed_tiles / self.total_tiles + 0.5)

    def success_rate(self) -> int:
        """Downloaded share of attempted (downloaded + failed) tiles"""
        attempted = self.downloaded_tiles + self.failed_tiles
        if attempted == 0:
            return 100
        return int(100 * self.downloaded_tiles / attempted + 0.5)

    def copy(self) -> 'DownloadStatistics':
        return replace(self)
