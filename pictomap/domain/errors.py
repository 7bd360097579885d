"""
Error taxonomy for the overlay pipeline.

"No match" is not an error: sources return an empty list and resolvers None.
"""
from typing import Optional


class PictomapError(Exception):
    """Base class for pipeline errors."""


class NetworkFailure(PictomapError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransientNetworkFailure(NetworkFailure):
    """Rate limited or server unavailable; safe to retry."""


class PermanentNetworkFailure(NetworkFailure):
    """Any other non-2xx status, transport error or unparsable body."""
