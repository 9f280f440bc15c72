"""
Top‑level package for the Beauty Marketplace API.

The HTTP application lives under ``app`` and can be imported as
``beauty_marketplace_api.app.main``.  The requests based client used
by agent integrations and the maintenance scripts lives in
``beauty_marketplace_api.client``.
"""

__all__ = []
