"""
otakuproxy - Scrape scheduling, caching and retry core for an anime catalog proxy

Fetches pages from the upstream catalog through rate-limited request
queues, retries transient failures with exponential backoff and caches
parsed results in Redis with an in-process fallback.
"""

__version__ = "0.1.0"
__author__ = "otakuproxy Team"
