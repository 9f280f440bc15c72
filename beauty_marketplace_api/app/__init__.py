"""
Application package initializer.

Each marketplace domain (services catalog, therapists, salons,
bookings, reviews, geocoding) has its own schema module, service
module and router under ``api/v1/endpoints``.  Versioning is handled
by grouping routers under the ``api/<version>/`` hierarchy.
"""

from .main import app  # noqa: F401
