"""
Version 1 of the marketplace API, mounted under ``/api/v1``.
"""
