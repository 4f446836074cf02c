class TileDownloaderException(Exception):
    """Base exception for tile downloader"""
    pass


class ConfigurationError(TileDownloaderException):
    """Configuration related errors (unknown tile map, unreadable config)"""
    pass


class ValidationError(ConfigurationError):
    """Structurally invalid configuration"""
    pass


class RegionError(TileDownloaderException):
    """Malformed bounding box or unusable geometry"""
    pass


class FetchFailure(TileDownloaderException):
    """A single tile could not be fetched or stored"""
    pass


class NetworkError(FetchFailure):
    """Timeout, connection failure or non-success HTTP status"""
    pass


class StorageError(FetchFailure):
    """Directory creation or tile write failed"""
    pass
