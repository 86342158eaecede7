"""Rail traffic feed client"""

from .feed_client import FeedClient

__all__ = ["FeedClient"]
