"""
Data acquisition for the ThoughtPolice analysis core.

Retrying JSON client, paginated listing streams and the Reddit user
history source built on them.
"""

from .http_client import HttpRetryClient
from .listing_stream import ListingStream, StopReason
from .reddit import RedditAcquisition

__all__ = ['HttpRetryClient', 'ListingStream', 'StopReason', 'RedditAcquisition']
