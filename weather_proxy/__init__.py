"""
Weather Proxy

A thin caching proxy in front of a third-party weather API: city and
coordinate lookups are normalized, cached in memory for a short TTL, and
rate limited on the way upstream.
"""

__version__ = "1.0.0"
__author__ = "Weather Proxy Project"
