"""Netlify tooling.

Components:
    client.py: Async Netlify API client with idempotent site, domain and SSL operations
"""

from tools.netlify.client import NetlifyClient, create_netlify_client

__all__ = ["NetlifyClient", "create_netlify_client"]
