"""
Custom exception hierarchy for the DV metadata burn-in pipeline.

ConfigurationError, MissingMetadataError and ArtifactWriteError escape
a single item. SourceUnavailableError and RecordInvalidError are
recovered locally and only show up in the parse counters.
"""


class DVMetaError(Exception):
    """Base exception for all dvmeta errors."""
    pass


class ConfigurationError(DVMetaError):
    """Raised when a required parameter (frame rate, output path) is missing or invalid."""
    pass


class SourceUnavailableError(DVMetaError):
    """Raised by a frame reader when its source is missing, empty or unparsable."""
    pass


class RecordInvalidError(DVMetaError):
    """Raised when a single frame record cannot be normalized."""
    pass


class FrameRateDetectionError(DVMetaError):
    """Raised when the frame rate of a media file cannot be probed."""
    pass


class ArtifactWriteError(DVMetaError):
    """Raised when an output artifact cannot be written."""
    pass


class MissingMetadataError(DVMetaError):
    """Raised under the 'error' policy when no usable timeline could be built."""

    def __init__(self, message: str, status=None, stats=None):
        super().__init__(message)
        self.status = status
        self.stats = stats
