"""
sensorboard error taxonomy

Every error the query layer raises derives from SensorBoardError. The HTTP
layer maps each class to a status code in core/server.py.
"""

from typing import List, Optional


class SensorBoardError(Exception):
    """Base class for all sensorboard errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(SensorBoardError):
    """Organization has no resolvable endpoint/token, or does not exist."""

    status_code = 500


class InvalidRequestError(SensorBoardError):
    """Caller input is malformed (missing buckets, unsafe names, ...)."""

    status_code = 400


class InvalidTimeWindowError(InvalidRequestError):
    """Neither a valid relative range nor a valid start/stop pair was given."""


class BackendQueryError(SensorBoardError):
    """A time-series query failed for one bucket, or for every bucket."""

    status_code = 404

    def __init__(self, message: str, bucket: Optional[str] = None,
                 failed_buckets: Optional[List[str]] = None):
        super().__init__(message)
        self.bucket = bucket
        self.failed_buckets = failed_buckets or ([bucket] if bucket else [])


class DiscoveryError(BackendQueryError):
    """Listing buckets or measurements failed."""
