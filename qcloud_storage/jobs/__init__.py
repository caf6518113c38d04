"""Deferred jobs.

This module provides:
- DeferredUpdate / DeferredUpdateQueue: work run after a request finished
- PurgeCdnJob: CDN cache purge scheduled by deletes
"""

from .deferred import DeferredScheduler, DeferredUpdate, DeferredUpdateQueue
from .purge_cdn import PurgeCdnJob, create_cdn_client

__all__ = [
    "DeferredUpdate",
    "DeferredScheduler",
    "DeferredUpdateQueue",
    "PurgeCdnJob",
    "create_cdn_client",
]
