"""
Cluster module for chunkcache.

Tracks which configured memcache servers are still part of the active pool.
"""

from .failover import FailoverTracker

__all__ = ['FailoverTracker']
